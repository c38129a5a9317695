from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from core.database import get_db
from core.concurrency import ConcurrencyContext, concurrency_from_headers, etag_for
from core.errors import ConflictError, NotFoundError
from authz.deps import require_hr_editor, require_hr_viewer

from .schema import ClientSchema, ClientCreatePayload, ClientUpdate, ClientDeletePreview
from . import service

client_router = APIRouter(prefix="/clients", tags=["clients"])

@client_router.get("", response_model=list[ClientSchema])
def list_clients(
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.list_clients(db, principal)

# Get client by id
@client_router.get("/{client_id}", response_model=ClientSchema)
def client_detail(
    client_id: int,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    obj = service.get_client(db, principal, client_id)
    if not obj:
        raise NotFoundError("client not found")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@client_router.get("/{client_id}/delete-preview", response_model=ClientDeletePreview)
def client_delete_preview(
    client_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.client_delete_preview(db, principal, client_id)

# Create client
@client_router.post("", response_model=ClientSchema, status_code=status.HTTP_201_CREATED)
def client_post(
    payload: ClientCreatePayload,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    ):
    try:
        obj = service.create_client(db, principal, payload.model_dump(exclude_unset=True))
    except IntegrityError:
        db.rollback()
        raise ConflictError("company id already exists")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

# Update client
@client_router.patch("/{client_id}", response_model=ClientSchema)
def client_patch(
    client_id: int,
    payload: ClientUpdate,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    try:
        obj = service.update_client(db, principal, client_id, payload.model_dump(exclude_unset=True), concurrency)
    except IntegrityError:
        db.rollback()
        raise ConflictError("company id already exists")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

# Delete client and everything it owns
@client_router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def client_delete(
    client_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    service.delete_client(db, principal, client_id, concurrency)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

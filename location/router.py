from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.concurrency import ConcurrencyContext, concurrency_from_headers, etag_for
from core.errors import NotFoundError
from authz.deps import require_hr_editor, require_hr_viewer

from .schemas import LocationSchema, LocationCreatePayload, LocationUpdate, LocationDeletePreview
from . import service

location_router = APIRouter(prefix="/locations", tags=["locations"])

@location_router.get("", response_model=list[LocationSchema])
def list_locations(
    client_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.list_locations(db, principal, client_id=client_id)

@location_router.get("/{location_id}", response_model=LocationSchema)
def location_detail(
    location_id: int,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    obj = service.get_location(db, principal, location_id)
    if not obj:
        raise NotFoundError("location not found")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@location_router.get("/{location_id}/delete-preview", response_model=LocationDeletePreview)
def location_delete_preview(
    location_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.location_delete_preview(db, principal, location_id)

@location_router.post("", response_model=LocationSchema, status_code=status.HTTP_201_CREATED)
def location_create(
    payload: LocationCreatePayload,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    ):
    obj = service.create_location(db, principal, payload.model_dump(exclude_unset=True))
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@location_router.patch("/{location_id}", response_model=LocationSchema)
def location_update(
    location_id: int,
    payload: LocationUpdate,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    obj = service.update_location(db, principal, location_id, payload.model_dump(exclude_unset=True), concurrency)
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@location_router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def location_delete(
    location_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    service.delete_location(db, principal, location_id, concurrency)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

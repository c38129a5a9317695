from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from core.database import get_db
from core.concurrency import ConcurrencyContext, concurrency_from_headers, etag_for
from core.errors import ConflictError, NotFoundError
from authz.deps import require_hr_editor, require_hr_viewer

from .schema import CostCenterSchema, CostCenterCreatePayload, CostCenterUpdate, CostCenterDeletePreview
from . import service

costcenter_router = APIRouter(prefix="/costcenters", tags=["cost centers"])

@costcenter_router.get("", response_model=list[CostCenterSchema])
def list_cost_centers(
    client_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.list_cost_centers(db, principal, client_id=client_id)

@costcenter_router.get("/{cost_center_id}", response_model=CostCenterSchema)
def cost_center_detail(
    cost_center_id: int,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    obj = service.get_cost_center(db, principal, cost_center_id)
    if not obj:
        raise NotFoundError("cost center not found")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@costcenter_router.get("/{cost_center_id}/delete-preview", response_model=CostCenterDeletePreview)
def cost_center_delete_preview(
    cost_center_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.cost_center_delete_preview(db, principal, cost_center_id)

@costcenter_router.post("", response_model=CostCenterSchema, status_code=status.HTTP_201_CREATED)
def cost_center_create(
    payload: CostCenterCreatePayload,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    ):
    try:
        obj = service.create_cost_center(db, principal, payload.model_dump(exclude_unset=True))
    except IntegrityError:
        db.rollback()
        raise ConflictError("cost center code already exists")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@costcenter_router.patch("/{cost_center_id}", response_model=CostCenterSchema)
def cost_center_update(
    cost_center_id: int,
    payload: CostCenterUpdate,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    try:
        obj = service.update_cost_center(
            db, principal, cost_center_id, payload.model_dump(exclude_unset=True), concurrency
        )
    except IntegrityError:
        db.rollback()
        raise ConflictError("cost center code already exists")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@costcenter_router.delete("/{cost_center_id}", status_code=status.HTTP_204_NO_CONTENT)
def cost_center_delete(
    cost_center_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    service.delete_cost_center(db, principal, cost_center_id, concurrency)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.concurrency import ConcurrencyContext, concurrency_from_headers, etag_for
from core.errors import NotFoundError
from authz.deps import require_hr_editor, require_hr_viewer

from .schema import AssignmentSchema, AssignmentCreatePayload, AssignmentUpdate
from . import service


assignment_router = APIRouter(prefix="/assignments", tags=["Assignments"])

# List assignments (scoped to caller's companies). Optional filters.
@assignment_router.get("", response_model=list[AssignmentSchema])
def list_assignments(
    client_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    cost_center_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
):
    return service.list_assignments(
        db, principal, client_id=client_id, employee_id=employee_id, cost_center_id=cost_center_id
    )

@assignment_router.get("/{assignment_id}", response_model=AssignmentSchema)
def assignment_detail(
    assignment_id: int,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
):
    obj = service.get_assignment(db, principal, assignment_id)
    if not obj:
        raise NotFoundError("assignment not found")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@assignment_router.post("", response_model=AssignmentSchema, status_code=status.HTTP_201_CREATED)
def assignment_create(
    payload: AssignmentCreatePayload,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
):
    obj = service.create_assignment(db, principal, payload.model_dump(exclude_unset=True))
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@assignment_router.patch("/{assignment_id}", response_model=AssignmentSchema)
def assignment_update(
    assignment_id: int,
    payload: AssignmentUpdate,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
):
    obj = service.update_assignment(
        db, principal, assignment_id, payload.model_dump(exclude_unset=True), concurrency
    )
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@assignment_router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def assignment_delete(
    assignment_id: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
):
    service.delete_assignment(db, principal, assignment_id, concurrency)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from core.database import get_db
from core.concurrency import ConcurrencyContext, concurrency_from_headers, etag_for
from core.errors import ConflictError, NotFoundError
from authz.deps import require_hr_editor, require_hr_viewer

from .schema import (
    ActiveEmployeeSchema,
    AnonymizePayload,
    AnonymizeResult,
    EmployeeCreatePayload,
    EmployeeSchema,
    EmployeeUpdate,
)
from . import retention, service

employee_router = APIRouter(prefix="/employees", tags=["employees"])

@employee_router.get("", response_model=list[EmployeeSchema])
def list_employees(
    client_id: Optional[int] = None,
    cost_center_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.list_employees(
        db, principal, client_id=client_id, cost_center_id=cost_center_id, status=status
    )

@employee_router.get("/active", response_model=list[ActiveEmployeeSchema])
def list_active_employees(
    client_id: Optional[int] = None,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    return service.list_active_employees(db, principal, client_id=client_id)

# Anonymize employees who left before a cutoff date
@employee_router.post("/anonymize-former", response_model=AnonymizeResult)
def anonymize_former_employees(
    payload: AnonymizePayload,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    ):
    count = retention.anonymize_former_employees(db, principal, payload.before)
    return {"value": count}

@employee_router.get("/{employee_pk}", response_model=EmployeeSchema)
def employee_detail(
    employee_pk: int,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_viewer),
    ):
    obj = service.get_employee(db, principal, employee_pk)
    if not obj:
        raise NotFoundError("employee not found")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@employee_router.post("", response_model=EmployeeSchema, status_code=status.HTTP_201_CREATED)
def employee_create(
    payload: EmployeeCreatePayload,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    ):
    try:
        obj = service.create_employee(db, principal, payload.model_dump(exclude_unset=True))
    except IntegrityError:
        db.rollback()
        raise ConflictError("employee conflicts with an existing record")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@employee_router.patch("/{employee_pk}", response_model=EmployeeSchema)
def employee_update(
    employee_pk: int,
    payload: EmployeeUpdate,
    response: Response,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    try:
        obj = service.update_employee(
            db, principal, employee_pk, payload.model_dump(exclude_unset=True), concurrency
        )
    except IntegrityError:
        db.rollback()
        raise ConflictError("employee conflicts with an existing record")
    response.headers["ETag"] = etag_for(obj.modified_at)
    return obj

@employee_router.delete("/{employee_pk}", status_code=status.HTTP_204_NO_CONTENT)
def employee_delete(
    employee_pk: int,
    db: Session = Depends(get_db),
    principal = Depends(require_hr_editor),
    concurrency: ConcurrencyContext = Depends(concurrency_from_headers),
    ):
    service.delete_employee(db, principal, employee_pk, concurrency)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

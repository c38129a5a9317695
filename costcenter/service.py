from __future__ import annotations
import logging
from typing import Any, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from assignment.models import Assignment
from auth.principal import Principal
from authz.company import CompanyAuthorizationResolver, scope_to_companies
from core.concurrency import INTERNAL, ConcurrencyContext, ensure_optimistic_concurrency
from core.dates import today
from core.errors import ConflictError, NotFoundError
from core.lifecycle import WriteContext, WriteEvent
from employee.models import Employee
from integrity.service import check_references
from validators import validate_write

from .models import CostCenter

logger = logging.getLogger("orgdirectory.costcenter")


# ---------- Queries ----------

def get_cost_center(db: Session, principal: Principal, cost_center_id: int) -> Optional[CostCenter]:
    stmt = scope_to_companies(select(CostCenter).where(CostCenter.id == cost_center_id), CostCenter, principal)
    return db.scalar(stmt)

def list_cost_centers(db: Session, principal: Principal, *, client_id: Optional[int] = None) -> list[CostCenter]:
    stmt = scope_to_companies(select(CostCenter), CostCenter, principal)
    if client_id is not None:
        stmt = stmt.where(CostCenter.client_id == client_id)
    return list(db.scalars(stmt.order_by(CostCenter.code)))

def count_assigned_employees(db: Session, cost_center_id: int) -> int:
    return db.scalar(select(func.count(Employee.id)).where(Employee.cost_center_id == cost_center_id)) or 0

def count_active_assignments(db: Session, cost_center_id: int) -> int:
    ref = today()
    stmt = select(func.count(Assignment.id)).where(
        Assignment.cost_center_id == cost_center_id,
        Assignment.valid_from <= ref,
        or_(Assignment.valid_to.is_(None), Assignment.valid_to >= ref),
    )
    return db.scalar(stmt) or 0


# ---------- Writes ----------

def create_cost_center(db: Session, principal: Principal, payload: dict[str, Any]) -> CostCenter:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_cost_centers([payload])
    check_references(db, CostCenter, payload)

    ctx = WriteContext(db, WriteEvent.CREATE, payload, principal, authz=resolver)
    delta = validate_write("CostCenter", ctx)

    obj = CostCenter(**delta)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("cost_center_created", extra={"entity_id": obj.id, "client_id": obj.client_id, "code": obj.code})
    return obj

def update_cost_center(
    db: Session,
    principal: Principal,
    cost_center_id: int,
    payload: dict[str, Any],
    concurrency: ConcurrencyContext = INTERNAL,
) -> CostCenter:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_cost_centers([{**payload, "id": cost_center_id}])
    check_references(db, CostCenter, payload, db.get(CostCenter, cost_center_id))

    ctx = WriteContext(
        db, WriteEvent.UPDATE, payload, principal,
        target_id=cost_center_id, concurrency=concurrency, authz=resolver,
    )
    delta = validate_write("CostCenter", ctx)

    obj = ctx.existing
    for k, v in delta.items():
        setattr(obj, k, v)
    db.commit()
    db.refresh(obj)
    logger.info("cost_center_updated", extra={"entity_id": obj.id, "fields": sorted(delta)})
    return obj

def delete_cost_center(
    db: Session,
    principal: Principal,
    cost_center_id: int,
    concurrency: ConcurrencyContext = INTERNAL,
) -> None:
    ensure_optimistic_concurrency(db, CostCenter, cost_center_id, concurrency)
    obj = db.get(CostCenter, cost_center_id)
    if obj is None:
        raise NotFoundError(f"Cost center {cost_center_id} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_client(obj.client_id)

    active = count_active_assignments(db, cost_center_id)
    if active:
        raise ConflictError(f"Cannot delete cost center: {active} active assignment(s) still reference it.")
    employees = count_assigned_employees(db, cost_center_id)
    if employees:
        raise ConflictError(f"Cannot delete cost center: {employees} employee(s) are still assigned to it.")

    # only past or future assignments are left at this point
    db.execute(delete(Assignment).where(Assignment.cost_center_id == cost_center_id))
    db.delete(obj)
    db.commit()
    logger.info("cost_center_deleted", extra={"entity_id": cost_center_id})


def cost_center_delete_preview(db: Session, principal: Principal, cost_center_id: int) -> dict[str, Any]:
    obj = db.get(CostCenter, cost_center_id)
    if obj is None:
        raise NotFoundError(f"Cost center {cost_center_id} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_client(obj.client_id)

    assignment_count = db.scalar(
        select(func.count(Assignment.id)).where(Assignment.cost_center_id == cost_center_id)
    ) or 0
    return {
        "client_id": obj.client_id,
        "name": obj.name,
        "code": obj.code,
        "employee_count": count_assigned_employees(db, cost_center_id),
        "assignment_count": assignment_count,
    }

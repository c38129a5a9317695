from __future__ import annotations
import logging
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from assignment.cascade import handle_responsibility_removal, is_active_responsible
from assignment.models import Assignment
from auth.principal import Principal
from authz.company import CompanyAuthorizationResolver, scope_to_companies
from client.models import Client
from core.concurrency import INTERNAL, ConcurrencyContext, ensure_optimistic_concurrency
from core.config_loader import settings
from core.errors import ConflictError, InternalError, NotFoundError
from core.lifecycle import WriteContext, WriteEvent
from costcenter.models import CostCenter
from integrity.service import check_references
from validators import validate_write

from .identifier import ensure_identifier, is_allocation_conflict
from .models import Employee

logger = logging.getLogger("orgdirectory.employee")


# ---------- Queries ----------

def get_employee(db: Session, principal: Principal, employee_pk: int) -> Optional[Employee]:
    stmt = scope_to_companies(select(Employee).where(Employee.id == employee_pk), Employee, principal)
    return db.scalar(stmt)

def list_employees(
    db: Session,
    principal: Principal,
    *,
    client_id: Optional[int] = None,
    cost_center_id: Optional[int] = None,
    status: Optional[str] = None,
) -> list[Employee]:
    stmt = scope_to_companies(select(Employee), Employee, principal)
    if client_id is not None:
        stmt = stmt.where(Employee.client_id == client_id)
    if cost_center_id is not None:
        stmt = stmt.where(Employee.cost_center_id == cost_center_id)
    if status is not None:
        stmt = stmt.where(Employee.status == status.strip().lower())
    return list(db.scalars(stmt.order_by(Employee.employee_id, Employee.id)))

def list_active_employees(db: Session, principal: Principal, *, client_id: Optional[int] = None) -> list[Employee]:
    stmt = (
        select(Employee)
        .where(Employee.status == "active", Employee.exit_date.is_(None))
        .options(selectinload(Employee.cost_center), selectinload(Employee.manager))
    )
    stmt = scope_to_companies(stmt, Employee, principal)
    if client_id is not None:
        stmt = stmt.where(Employee.client_id == client_id)
    return list(db.scalars(stmt.order_by(Employee.last_name, Employee.first_name, Employee.id)))


# ---------- Writes ----------

def _with_inferred_client(db: Session, payload: dict[str, Any]) -> dict[str, Any]:
    # a cost center reference is enough to place a new employee
    data = dict(payload)
    if data.get("client_id") is None and data.get("cost_center_id") is not None:
        cost_center = db.get(CostCenter, data["cost_center_id"])
        if cost_center is not None:
            data["client_id"] = cost_center.client_id
    return data

def create_employee(db: Session, principal: Principal, payload: dict[str, Any]) -> Employee:
    data = _with_inferred_client(db, payload)
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_employees([data])
    check_references(db, Employee, data)

    requested_id = data.get("employee_id")
    for attempt in range(1, settings.EMPLOYEE_ID_RETRIES + 1):
        ctx = WriteContext(db, WriteEvent.CREATE, data, principal, authz=resolver)
        delta = validate_write("Employee", ctx)
        delta.pop("employee_id", None)
        client = db.get(Client, delta["client_id"])

        allocation = None
        try:
            allocation = ensure_identifier(db, client, requested_id)
            if not allocation.ok:
                break
            obj = Employee(**delta, employee_id=allocation.employee_id)
            db.add(obj)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not is_allocation_conflict(exc):
                raise
            if allocation is not None and allocation.ok and not allocation.generated:
                raise ConflictError(f"Employee ID {allocation.employee_id} already exists.")
            # lost a race the row lock did not cover; start over with a fresh counter read
            logger.warning("employee_id_retry", extra={"client_id": delta["client_id"], "attempt": attempt})
            continue

        db.refresh(obj)
        logger.info(
            "employee_created",
            extra={"entity_id": obj.id, "employee_id": obj.employee_id, "client_id": obj.client_id},
        )
        return obj

    logger.error("employee_id_exhausted", extra={"client_id": data.get("client_id")})
    raise InternalError("Failed to generate a unique employee identifier.")

def update_employee(
    db: Session,
    principal: Principal,
    employee_pk: int,
    payload: dict[str, Any],
    concurrency: ConcurrencyContext = INTERNAL,
) -> Employee:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_employees([{**payload, "id": employee_pk}])
    check_references(db, Employee, payload, db.get(Employee, employee_pk))

    ctx = WriteContext(
        db, WriteEvent.UPDATE, payload, principal,
        target_id=employee_pk, concurrency=concurrency, authz=resolver,
    )
    delta = validate_write("Employee", ctx)

    obj = ctx.existing
    for k, v in delta.items():
        setattr(obj, k, v)
    db.commit()
    db.refresh(obj)
    logger.info("employee_updated", extra={"entity_id": obj.id, "fields": sorted(delta)})
    return obj

def delete_employee(
    db: Session,
    principal: Principal,
    employee_pk: int,
    concurrency: ConcurrencyContext = INTERNAL,
) -> None:
    ensure_optimistic_concurrency(db, Employee, employee_pk, concurrency)
    obj = db.get(Employee, employee_pk)
    if obj is None:
        raise NotFoundError(f"Employee {employee_pk} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_client(obj.client_id)

    responsible_for = db.scalar(
        select(func.count(CostCenter.id)).where(CostCenter.responsible_id == employee_pk)
    ) or 0
    if responsible_for:
        raise ConflictError(
            f"Cannot delete employee: still responsible for {responsible_for} cost center(s)."
        )

    for assignment in list(db.scalars(select(Assignment).where(Assignment.employee_id == employee_pk))):
        was_responsible = is_active_responsible(assignment)
        db.delete(assignment)
        db.flush()
        if was_responsible:
            handle_responsibility_removal(db, assignment.cost_center_id, assignment.id)

    db.execute(
        update(Employee)
        .where(Employee.manager_id == employee_pk)
        .values(manager_id=None)
        .execution_options(synchronize_session="fetch")
    )
    db.delete(obj)
    db.commit()
    logger.info("employee_deleted", extra={"entity_id": employee_pk})

from __future__ import annotations
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth.principal import Principal
from authz.company import CompanyAuthorizationResolver, scope_to_companies
from core.concurrency import INTERNAL, ConcurrencyContext, ensure_optimistic_concurrency
from core.errors import NotFoundError
from core.lifecycle import WriteContext, WriteEvent
from integrity.service import check_references
from validators import validate_write

from .cascade import apply_responsibility, handle_responsibility_removal, is_active_responsible
from .models import Assignment

logger = logging.getLogger("orgdirectory.assignment")


# ---------- Queries ----------

def get_assignment(db: Session, principal: Principal, assignment_id: int) -> Optional[Assignment]:
    stmt = scope_to_companies(select(Assignment).where(Assignment.id == assignment_id), Assignment, principal)
    return db.scalar(stmt)

def list_assignments(
    db: Session,
    principal: Principal,
    *,
    client_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    cost_center_id: Optional[int] = None,
) -> list[Assignment]:
    stmt = scope_to_companies(select(Assignment), Assignment, principal)
    if client_id is not None:
        stmt = stmt.where(Assignment.client_id == client_id)
    if employee_id is not None:
        stmt = stmt.where(Assignment.employee_id == employee_id)
    if cost_center_id is not None:
        stmt = stmt.where(Assignment.cost_center_id == cost_center_id)
    return list(db.scalars(stmt.order_by(Assignment.valid_from, Assignment.id)))


# ---------- Writes ----------
# The cascade runs inside the same transaction; any failure rolls the
# whole mutation back.

def create_assignment(db: Session, principal: Principal, payload: dict[str, Any]) -> Assignment:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_assignments([payload])
    check_references(db, Assignment, payload)

    ctx = WriteContext(db, WriteEvent.CREATE, payload, principal, authz=resolver)
    delta = validate_write("Assignment", ctx)

    obj = Assignment(**delta)
    db.add(obj)
    db.flush()
    apply_responsibility(db, obj)
    db.commit()
    db.refresh(obj)
    logger.info("assignment_created", extra={"entity_id": obj.id, "cost_center_id": obj.cost_center_id})
    return obj

def update_assignment(
    db: Session,
    principal: Principal,
    assignment_id: int,
    payload: dict[str, Any],
    concurrency: ConcurrencyContext = INTERNAL,
) -> Assignment:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_assignments([{**payload, "id": assignment_id}])
    check_references(db, Assignment, payload, db.get(Assignment, assignment_id))

    ctx = WriteContext(
        db, WriteEvent.UPDATE, payload, principal,
        target_id=assignment_id, concurrency=concurrency, authz=resolver,
    )
    delta = validate_write("Assignment", ctx)

    obj = ctx.existing
    was_responsible = is_active_responsible(obj)
    previous_cost_center_id = obj.cost_center_id
    for k, v in delta.items():
        setattr(obj, k, v)
    db.flush()

    if was_responsible and (not obj.is_responsible or obj.cost_center_id != previous_cost_center_id):
        handle_responsibility_removal(db, previous_cost_center_id, obj.id)
    apply_responsibility(db, obj)

    db.commit()
    db.refresh(obj)
    logger.info("assignment_updated", extra={"entity_id": obj.id, "fields": sorted(delta)})
    return obj

def delete_assignment(
    db: Session,
    principal: Principal,
    assignment_id: int,
    concurrency: ConcurrencyContext = INTERNAL,
) -> None:
    ensure_optimistic_concurrency(db, Assignment, assignment_id, concurrency)
    obj = db.get(Assignment, assignment_id)
    if obj is None:
        raise NotFoundError(f"Assignment {assignment_id} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_client(obj.client_id)

    was_responsible = is_active_responsible(obj)
    cost_center_id = obj.cost_center_id
    db.delete(obj)
    db.flush()
    if was_responsible:
        handle_responsibility_removal(db, cost_center_id, assignment_id)

    db.commit()
    logger.info("assignment_deleted", extra={"entity_id": assignment_id, "cost_center_id": cost_center_id})

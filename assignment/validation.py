from __future__ import annotations
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from client.models import Client
from core.concurrency import ensure_optimistic_concurrency
from core.dates import ensure_window, ranges_overlap, to_date
from core.errors import NotFoundError, ValidationError
from core.lifecycle import WriteContext
from costcenter.models import CostCenter
from employee.models import Employee

from .models import Assignment

REQUIRED = (
    ("employee_id", "employee_ID"),
    ("cost_center_id", "costCenter_ID"),
    ("client_id", "client_ID"),
    ("valid_from", "validFrom"),
)


def validate_assignment_write(ctx: WriteContext) -> dict[str, Any]:
    db = ctx.db
    data = dict(ctx.incoming)

    if not ctx.is_create:
        ensure_optimistic_concurrency(db, Assignment, ctx.target_id, ctx.concurrency)
        ctx.existing = db.get(Assignment, ctx.target_id)
        if ctx.existing is None:
            raise NotFoundError(f"Assignment {ctx.target_id} not found.")

    for name in ("valid_from", "valid_to"):
        if name in data:
            data[name] = to_date(data[name], field=name)
    for name, label in REQUIRED:
        if ctx.current(data, name) is None:
            raise ValidationError(f"{label} is required.")
    if ctx.is_create:
        data["is_responsible"] = bool(data.get("is_responsible", False))
    elif "is_responsible" in data:
        data["is_responsible"] = bool(data["is_responsible"])

    client_id = ctx.current(data, "client_id")
    if ctx.existing is not None and client_id != ctx.existing.client_id:
        raise ValidationError("Assignments cannot be moved to another client.")
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found.")
    ctx.authz.ensure_company(client.company_id)

    valid_from = ctx.current(data, "valid_from")
    valid_to = ctx.current(data, "valid_to")
    ensure_window(valid_from, valid_to)

    employee = db.get(Employee, ctx.current(data, "employee_id"))
    if employee is None:
        raise NotFoundError("Employee not found.")
    if employee.client_id != client_id:
        raise ValidationError("Employee does not belong to the specified client.")

    cost_center = db.get(CostCenter, ctx.current(data, "cost_center_id"))
    if cost_center is None:
        raise NotFoundError("Cost center not found.")
    if cost_center.client_id != client_id:
        raise ValidationError("Cost center does not belong to the specified client.")

    ensure_within_cost_center(cost_center, valid_from, valid_to)

    if ctx.current(data, "is_responsible") and not employee.is_manager:
        raise ValidationError("Only managers can be marked as responsible for a cost center.")

    if not employee.is_manager:
        conflict = find_overlapping_assignment(db, employee.id, valid_from, valid_to, exclude_id=ctx.target_id)
        if conflict is not None:
            period = f"{conflict.valid_from.isoformat()} - {conflict.valid_to.isoformat() if conflict.valid_to else 'open'}"
            raise ValidationError(
                "Non-manager employees can only have one active cost center assignment. "
                f"Conflicting assignment exists for period: {period}"
            )

    return data


def ensure_within_cost_center(cost_center: CostCenter, valid_from: date, valid_to: Optional[date]) -> None:
    if valid_from < cost_center.valid_from:
        raise ValidationError(
            f"Assignment cannot start before cost center validity period ({cost_center.valid_from.isoformat()})."
        )
    if cost_center.valid_to is not None:
        if valid_to is None:
            raise ValidationError(
                f"Assignment must have an end date as cost center validity ends on {cost_center.valid_to.isoformat()}."
            )
        if valid_to > cost_center.valid_to:
            raise ValidationError(
                f"Assignment cannot end after cost center validity period ({cost_center.valid_to.isoformat()})."
            )


def find_overlapping_assignment(
    db: Session,
    employee_id: int,
    valid_from: date,
    valid_to: Optional[date],
    *,
    exclude_id: Optional[int] = None,
) -> Optional[Assignment]:
    stmt = select(Assignment).where(Assignment.employee_id == employee_id).order_by(Assignment.valid_from)
    if exclude_id is not None:
        stmt = stmt.where(Assignment.id != exclude_id)
    for other in db.scalars(stmt):
        if ranges_overlap(valid_from, valid_to, other.valid_from, other.valid_to):
            return other
    return None

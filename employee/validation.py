from __future__ import annotations
from typing import Any

from sqlalchemy import func, or_, select

from assignment.models import Assignment
from client.models import Client
from core.concurrency import ensure_optimistic_concurrency
from core.dates import to_date, today
from core.errors import NotFoundError, ValidationError
from core.lifecycle import WriteContext
from core.normalization import normalize_email, normalize_identifier, trim
from costcenter.models import CostCenter

from .models import Employee

STATUSES = ("active", "inactive")
EMPLOYMENT_TYPES = ("internal", "external")

COST_CENTER_MANAGER_MESSAGE = "Employees assigned to a cost center must be managed by the responsible employee."

# NOT NULL columns an UPDATE may change but never clear
REQUIRED_ON_UPDATE = (
    ("client_id", "Client reference"),
    ("status", "Status"),
    ("is_manager", "Manager flag"),
)


def validate_employee_write(ctx: WriteContext) -> dict[str, Any]:
    db = ctx.db
    data = dict(ctx.incoming)

    if not ctx.is_create:
        if ctx.target_id is None:
            raise ValidationError("Employee reference is required for updates.")
        ensure_optimistic_concurrency(db, Employee, ctx.target_id, ctx.concurrency)
        ctx.existing = db.get(Employee, ctx.target_id)
        if ctx.existing is None:
            raise NotFoundError(f"Employee {ctx.target_id} not found.")
        if "employee_id" in data:
            requested = normalize_identifier(data["employee_id"])
            if requested is None or requested != normalize_identifier(ctx.existing.employee_id):
                raise ValidationError("Employee ID cannot be modified.")
            del data["employee_id"]
        for name, label in REQUIRED_ON_UPDATE:
            if name in data and data[name] is None:
                raise ValidationError(f"{label} cannot be cleared.")

    _sanitize_strings(ctx, data)

    client = _resolve_client(ctx, data)
    ctx.authz.ensure_company(client.company_id)
    if ctx.is_create:
        data["client_id"] = client.id

    _validate_timeline(ctx, data)
    _validate_choices(ctx, data)

    if ctx.is_create and data.get("location_id") is None:
        raise ValidationError("Location is required.")

    # one-hop inheritance, CREATE only
    if ctx.is_create and data.get("cost_center_id") is None and data.get("manager_id") is not None:
        manager = db.get(Employee, data["manager_id"])
        if manager is not None and manager.cost_center_id is not None:
            data["cost_center_id"] = manager.cost_center_id

    _validate_manager_and_cost_center(ctx, data, client)

    manager_id = ctx.current(data, "manager_id")
    if ctx.target_id is not None and manager_id is not None and manager_id == ctx.target_id:
        raise ValidationError("An employee cannot be their own manager.")

    return data


# -------- helpers --------

def _sanitize_strings(ctx: WriteContext, data: dict[str, Any]) -> None:
    for name, label in (("first_name", "First name"), ("last_name", "Last name")):
        if ctx.is_create or name in data:
            value = trim(data.get(name))
            if not value:
                raise ValidationError(f"{label} is required.")
            data[name] = value
    if "email" in data:
        data["email"] = normalize_email(data["email"]) or None


def _resolve_client(ctx: WriteContext, data: dict[str, Any]) -> Client:
    db = ctx.db
    client_id = data.get("client_id")
    if ctx.existing is not None:
        if client_id is not None and client_id != ctx.existing.client_id:
            raise ValidationError("Employees cannot be moved to another client.")
        client_id = ctx.existing.client_id

    if client_id is None:
        raise ValidationError("Client reference is required.")
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found.")
    return client


def _validate_timeline(ctx: WriteContext, data: dict[str, Any]) -> None:
    for name in ("entry_date", "exit_date"):
        if name in data:
            data[name] = to_date(data[name], field=name)

    entry_date = ctx.current(data, "entry_date")
    exit_date = ctx.current(data, "exit_date")
    if entry_date is None:
        raise ValidationError("Entry date is required.")
    if exit_date is not None and exit_date < entry_date:
        raise ValidationError("Exit date must be on or after entry date.")

    if "status" in data and data["status"] is not None:
        data["status"] = str(data["status"]).strip().lower()
    status = ctx.current(data, "status") or "active"
    if status not in STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(STATUSES)}.")
    if ctx.is_create:
        data["status"] = status

    if status == "inactive" and exit_date is None:
        raise ValidationError("Inactive employees must have an exit date.")
    if status == "active" and exit_date is not None:
        raise ValidationError("Employees with an exit date must have status set to inactive.")


def _validate_choices(ctx: WriteContext, data: dict[str, Any]) -> None:
    if "employment_type" in data or ctx.is_create:
        value = (trim(data.get("employment_type")) or "internal").lower()
        if value not in EMPLOYMENT_TYPES:
            raise ValidationError(f"Employment type must be one of: {', '.join(EMPLOYMENT_TYPES)}.")
        data["employment_type"] = value
    if ctx.is_create:
        data["is_manager"] = bool(data.get("is_manager", False))
    elif "is_manager" in data:
        data["is_manager"] = bool(data["is_manager"])
        if ctx.existing.is_manager and not data["is_manager"]:
            _ensure_not_responsible(ctx)


def _ensure_not_responsible(ctx: WriteContext) -> None:
    # responsible employees must stay managers
    db = ctx.db
    cost_centers = db.scalar(
        select(func.count(CostCenter.id)).where(CostCenter.responsible_id == ctx.target_id)
    ) or 0
    if cost_centers:
        raise ValidationError(
            f"Employee is still responsible for {cost_centers} cost center(s) and must remain a manager."
        )
    ref = today()
    assignments = db.scalar(
        select(func.count(Assignment.id)).where(
            Assignment.employee_id == ctx.target_id,
            Assignment.is_responsible.is_(True),
            or_(Assignment.valid_to.is_(None), Assignment.valid_to >= ref),
        )
    ) or 0
    if assignments:
        raise ValidationError(
            f"Employee still holds {assignments} responsible assignment(s) and must remain a manager."
        )


def _validate_manager_and_cost_center(ctx: WriteContext, data: dict[str, Any], client: Client) -> None:
    cost_center_id = ctx.current(data, "cost_center_id")
    if cost_center_id is None:
        return

    cost_center = ctx.db.get(CostCenter, cost_center_id)
    if cost_center is None:
        raise NotFoundError(f"Cost center {cost_center_id} not found.")
    if cost_center.client_id != client.id:
        raise ValidationError("Cost center must belong to the same client.")

    existing_cost_center_id = ctx.existing.cost_center_id if ctx.existing is not None else None
    cost_center_changed = "cost_center_id" in data and cost_center_id != existing_cost_center_id
    manager_explicit = "manager_id" in data

    if (ctx.is_create or cost_center_changed) and not manager_explicit:
        data["manager_id"] = cost_center.responsible_id

    if ctx.is_create or manager_explicit or cost_center_changed:
        if ctx.current(data, "manager_id") != cost_center.responsible_id:
            raise ValidationError(COST_CENTER_MANAGER_MESSAGE)


from __future__ import annotations
from typing import Any

from sqlalchemy import select

from client.models import Client
from core.concurrency import ensure_optimistic_concurrency
from core.dates import ensure_window, to_date
from core.errors import ConflictError, NotFoundError, ValidationError
from core.lifecycle import WriteContext
from core.normalization import normalize_cost_center_code, trim
from employee.models import Employee

from .models import CostCenter


def validate_cost_center_write(ctx: WriteContext) -> dict[str, Any]:
    db = ctx.db
    data = dict(ctx.incoming)

    if not ctx.is_create:
        ensure_optimistic_concurrency(db, CostCenter, ctx.target_id, ctx.concurrency)
        ctx.existing = db.get(CostCenter, ctx.target_id)
        if ctx.existing is None:
            raise NotFoundError(f"Cost center {ctx.target_id} not found.")

    client_id = ctx.current(data, "client_id")
    if ctx.existing is not None and client_id != ctx.existing.client_id:
        raise ValidationError("Cost centers cannot be moved to another client.")
    if client_id is None:
        raise ValidationError("Client reference is required.")
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found.")
    ctx.authz.ensure_company(client.company_id)

    if ctx.is_create or "code" in data:
        code = normalize_cost_center_code(data.get("code"))
        if not code:
            raise ValidationError("Cost center code is required.")
        stmt = select(CostCenter.id).where(CostCenter.client_id == client_id, CostCenter.code == code)
        if ctx.target_id is not None:
            stmt = stmt.where(CostCenter.id != ctx.target_id)
        if db.scalar(stmt.limit(1)) is not None:
            raise ConflictError(f"Cost center code {code} already exists for client {client.company_id}.")
        data["code"] = code

    if ctx.is_create or "name" in data:
        name = trim(data.get("name"))
        if not name:
            raise ValidationError("Cost center name must not be empty.")
        data["name"] = name

    if ctx.is_create or "responsible_id" in data:
        responsible_id = data.get("responsible_id")
        if responsible_id is None:
            raise ValidationError("Responsible employee is required.")
        responsible = db.get(Employee, responsible_id)
        if responsible is None:
            raise NotFoundError(f"Responsible employee {responsible_id} not found.")
        if responsible.client_id != client_id:
            raise ValidationError("Responsible employee must belong to the same client.")
        if not responsible.is_manager:
            raise ValidationError("Responsible employee must be a manager.")

    for name in ("valid_from", "valid_to"):
        if name in data:
            data[name] = to_date(data[name], field=name)
    if ctx.current(data, "valid_from") is None:
        raise ValidationError("validFrom is required.")
    ensure_window(ctx.current(data, "valid_from"), ctx.current(data, "valid_to"))

    return data

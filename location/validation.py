from __future__ import annotations
from typing import Any

from sqlalchemy import func, select

from client.models import Client
from core.concurrency import ensure_optimistic_concurrency
from core.dates import ensure_window, to_date
from core.errors import ConflictError, NotFoundError, ValidationError
from core.lifecycle import WriteContext
from core.normalization import is_valid_country_code, normalize_company_id, trim
from employee.models import Employee

from .models import Location

REQUIRED_TEXT = (
    ("city", "City"),
    ("zip_code", "Zip code"),
    ("street", "Street"),
)


def count_assigned_employees(db, location_id: int) -> int:
    return db.scalar(select(func.count(Employee.id)).where(Employee.location_id == location_id)) or 0


def validate_location_write(ctx: WriteContext) -> dict[str, Any]:
    db = ctx.db
    data = dict(ctx.incoming)

    if not ctx.is_create:
        ensure_optimistic_concurrency(db, Location, ctx.target_id, ctx.concurrency)
        ctx.existing = db.get(Location, ctx.target_id)
        if ctx.existing is None:
            raise NotFoundError(f"Location {ctx.target_id} not found.")

    for name, label in REQUIRED_TEXT:
        if ctx.is_create or name in data:
            value = trim(data.get(name))
            if not value:
                raise ValidationError(f"{label} is required.")
            data[name] = value

    if "address_supplement" in data:
        data["address_supplement"] = trim(data["address_supplement"]) or None

    if ctx.is_create or "country_code" in data:
        code = normalize_company_id(data.get("country_code"))
        if not code:
            raise ValidationError("Country code is required.")
        if not is_valid_country_code(code):
            raise ValidationError(f"Invalid country code: {code}. Must be a valid ISO 3166-1 alpha-2 code.")
        data["country_code"] = code

    for name in ("valid_from", "valid_to"):
        if name in data:
            data[name] = to_date(data[name], field=name)
    if ctx.current(data, "valid_from") is None:
        raise ValidationError("validFrom is required.")
    ensure_window(ctx.current(data, "valid_from"), ctx.current(data, "valid_to"))

    client_id = ctx.current(data, "client_id")
    if client_id is None:
        raise ValidationError("Client reference is required.")
    client = db.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found.")
    ctx.authz.ensure_company(client.company_id)

    if ctx.existing is not None and client_id != ctx.existing.client_id:
        assigned = count_assigned_employees(db, ctx.existing.id)
        if assigned:
            raise ConflictError(
                f"Cannot change client of location: {assigned} employee(s) are still assigned to it."
            )

    return data

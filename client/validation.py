from __future__ import annotations
import re
from typing import Any

from sqlalchemy import select

from core.concurrency import ensure_optimistic_concurrency
from core.config_loader import settings
from core.errors import ConflictError, NotFoundError, ValidationError
from core.lifecycle import WriteContext
from core.normalization import is_valid_country_code, normalize_company_id, trim

from .models import Client

CLIENT_ID_FORMATS = {
    "strict": (
        re.compile(r"[0-9]{4}"),
        "Client ID must be exactly 4 numeric characters (e.g., 1010, 1026, 1069).",
    ),
    "relaxed": (
        re.compile(r"[A-Z0-9][A-Z0-9-]{0,19}"),
        "Client ID may only contain letters, digits and hyphens (at most 20 characters).",
    ),
}


def validate_company_id_format(company_id: str) -> None:
    pattern, message = CLIENT_ID_FORMATS[settings.CLIENT_ID_FORMAT]
    if not pattern.fullmatch(company_id):
        raise ValidationError(message)


def validate_client_write(ctx: WriteContext) -> dict[str, Any]:
    db = ctx.db
    data = dict(ctx.incoming)

    if not ctx.is_create:
        ensure_optimistic_concurrency(db, Client, ctx.target_id, ctx.concurrency)
        ctx.existing = db.get(Client, ctx.target_id)
        if ctx.existing is None:
            raise NotFoundError(f"Client {ctx.target_id} not found.")

    if ctx.is_create or "name" in data:
        name = trim(data.get("name"))
        if not name:
            raise ValidationError("Client name must not be empty.")
        data["name"] = name

    if ctx.is_create:
        company_id = normalize_company_id(data.get("company_id"))
        if not company_id:
            raise ValidationError("Client ID is required.")
        validate_company_id_format(company_id)
        taken = db.scalar(select(Client.id).where(Client.company_id == company_id))
        if taken is not None:
            raise ConflictError(f"Company ID {company_id} already exists.")
        data["company_id"] = company_id
    elif "company_id" in data:
        if normalize_company_id(data["company_id"]) != ctx.existing.company_id:
            raise ValidationError("Client ID cannot be modified.")
        del data["company_id"]

    if data.get("country_code") is not None:
        code = normalize_company_id(data["country_code"])
        if code is None:
            data["country_code"] = None
        elif not is_valid_country_code(code):
            raise ValidationError(f"Invalid country code: {code}")
        else:
            data["country_code"] = code

    ctx.authz.ensure_company(ctx.current(data, "company_id"))
    return data

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Type

from fastapi import Header
from sqlalchemy.orm import Session

from core.database import Base
from core.errors import (
    NotFoundError,
    PreconditionFailedError,
    PreconditionRequiredError,
    ValidationError,
)

logger = logging.getLogger("orgdirectory.concurrency")


@dataclass(frozen=True)
class ConcurrencyContext:
    """What the caller told us about the version it last read.

    ``has_transport_headers`` is True for every HTTP request; internal
    callers leave it False and may pass ``payload_version`` instead.
    """

    if_match: Optional[str] = None
    has_transport_headers: bool = False
    payload_version: Any = None


INTERNAL = ConcurrencyContext()


def version_token(value: Any) -> Optional[str]:
    """Canonical string form of a ``modified_at`` marker (UTC, naive ISO)."""
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        try:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return raw
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.isoformat(timespec="microseconds")
    return str(value)


def etag_for(value: Any) -> Optional[str]:
    token = version_token(value)
    return f'W/"{token}"' if token else None


def parse_if_match(header: str) -> list[str]:
    values: list[str] = []
    for part in header.split(","):
        part = part.strip()
        if part.startswith("W/"):
            part = part[2:]
        part = part.strip().strip('"').strip()
        if part:
            values.append(part)
    return values


def ensure_optimistic_concurrency(
    db: Session,
    model: Type[Base],
    target_id: Any,
    ctx: ConcurrencyContext = INTERNAL,
) -> None:
    entity = model.__name__

    # internal invocation without any version information
    if not ctx.has_transport_headers and ctx.if_match is None and ctx.payload_version is None:
        return

    record = db.get(model, target_id)
    if record is None:
        raise NotFoundError(f"{entity} {target_id} not found.")
    current = version_token(record.modified_at)

    if ctx.if_match is not None:
        values = parse_if_match(ctx.if_match)
        if not values:
            raise ValidationError("Invalid If-Match header.")
        if "*" in values:
            return
        if current not in {version_token(v) for v in values}:
            logger.info("precondition_failed", extra={"entity": entity, "entity_id": target_id})
            raise PreconditionFailedError()
        return

    if ctx.has_transport_headers:
        raise PreconditionRequiredError()

    if version_token(ctx.payload_version) != current:
        logger.info("precondition_failed", extra={"entity": entity, "entity_id": target_id})
        raise PreconditionFailedError()


def concurrency_from_headers(if_match: Optional[str] = Header(default=None)) -> ConcurrencyContext:
    """FastAPI dependency: every HTTP request counts as carrying transport headers."""
    return ConcurrencyContext(if_match=if_match, has_transport_headers=True)

from __future__ import annotations
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth.principal import Principal
from authz.company import CompanyAuthorizationResolver, scope_to_companies
from core.concurrency import INTERNAL, ConcurrencyContext, ensure_optimistic_concurrency
from core.errors import ConflictError, NotFoundError
from core.lifecycle import WriteContext, WriteEvent
from integrity.service import check_references
from validators import validate_write

from .models import Location
from .validation import count_assigned_employees

logger = logging.getLogger("orgdirectory.location")


def get_location(db: Session, principal: Principal, location_id: int) -> Optional[Location]:
    stmt = scope_to_companies(select(Location).where(Location.id == location_id), Location, principal)
    return db.scalar(stmt)

def list_locations(db: Session, principal: Principal, *, client_id: Optional[int] = None) -> list[Location]:
    stmt = scope_to_companies(select(Location), Location, principal)
    if client_id is not None:
        stmt = stmt.where(Location.client_id == client_id)
    return list(db.scalars(stmt.order_by(Location.city, Location.id)))

def create_location(db: Session, principal: Principal, payload: dict[str, Any]) -> Location:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_locations([payload])
    check_references(db, Location, payload)

    ctx = WriteContext(db, WriteEvent.CREATE, payload, principal, authz=resolver)
    delta = validate_write("Location", ctx)

    obj = Location(**delta)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("location_created", extra={"entity_id": obj.id, "client_id": obj.client_id})
    return obj

def update_location(
    db: Session,
    principal: Principal,
    location_id: int,
    payload: dict[str, Any],
    concurrency: ConcurrencyContext = INTERNAL,
) -> Location:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_locations([{**payload, "id": location_id}])
    check_references(db, Location, payload, db.get(Location, location_id))

    ctx = WriteContext(
        db, WriteEvent.UPDATE, payload, principal,
        target_id=location_id, concurrency=concurrency, authz=resolver,
    )
    delta = validate_write("Location", ctx)

    obj = ctx.existing
    for k, v in delta.items():
        setattr(obj, k, v)
    db.commit()
    db.refresh(obj)
    logger.info("location_updated", extra={"entity_id": obj.id, "fields": sorted(delta)})
    return obj

def delete_location(
    db: Session,
    principal: Principal,
    location_id: int,
    concurrency: ConcurrencyContext = INTERNAL,
) -> None:
    ensure_optimistic_concurrency(db, Location, location_id, concurrency)
    obj = db.get(Location, location_id)
    if obj is None:
        raise NotFoundError(f"Location {location_id} not found.")
    # authorize before counting so foreign locations reveal nothing
    CompanyAuthorizationResolver(db, principal).ensure_client(obj.client_id)

    assigned = count_assigned_employees(db, location_id)
    if assigned:
        raise ConflictError(f"Cannot delete location: {assigned} employee(s) are still assigned to it.")

    db.delete(obj)
    db.commit()
    logger.info("location_deleted", extra={"entity_id": location_id})

def location_delete_preview(db: Session, principal: Principal, location_id: int) -> dict[str, Any]:
    obj = db.get(Location, location_id)
    if obj is None:
        raise NotFoundError(f"Location {location_id} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_client(obj.client_id)
    return {
        "city": obj.city,
        "street": obj.street,
        "employee_count": count_assigned_employees(db, location_id),
    }

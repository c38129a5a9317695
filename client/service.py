from __future__ import annotations
import logging
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from assignment.models import Assignment
from auth.principal import Principal
from authz.company import CompanyAuthorizationResolver, scope_to_companies
from core.concurrency import INTERNAL, ConcurrencyContext, ensure_optimistic_concurrency
from core.errors import NotFoundError
from core.lifecycle import WriteContext, WriteEvent
from costcenter.models import CostCenter
from employee.models import Employee, EmployeeIdCounter
from location.models import Location
from validators import validate_write

from .models import Client

logger = logging.getLogger("orgdirectory.client")


# ---------- Queries ----------

def get_client(db: Session, principal: Principal, client_id: int) -> Optional[Client]:
    stmt = scope_to_companies(select(Client).where(Client.id == client_id), Client, principal)
    return db.scalar(stmt)

def list_clients(db: Session, principal: Principal) -> list[Client]:
    stmt = scope_to_companies(select(Client), Client, principal).order_by(Client.company_id)
    return list(db.scalars(stmt))


# ---------- Writes ----------

def create_client(db: Session, principal: Principal, payload: dict[str, Any]) -> Client:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_clients([payload])

    ctx = WriteContext(db, WriteEvent.CREATE, payload, principal, authz=resolver)
    delta = validate_write("Client", ctx)

    obj = Client(**delta)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("client_created", extra={"client_id": obj.id, "company_id": obj.company_id})
    return obj

def update_client(
    db: Session,
    principal: Principal,
    client_id: int,
    payload: dict[str, Any],
    concurrency: ConcurrencyContext = INTERNAL,
) -> Client:
    resolver = CompanyAuthorizationResolver(db, principal)
    resolver.authorize_clients([{**payload, "id": client_id}])

    ctx = WriteContext(
        db, WriteEvent.UPDATE, payload, principal,
        target_id=client_id, concurrency=concurrency, authz=resolver,
    )
    delta = validate_write("Client", ctx)

    obj = ctx.existing
    for k, v in delta.items():
        setattr(obj, k, v)
    db.commit()
    db.refresh(obj)
    logger.info("client_updated", extra={"client_id": obj.id, "fields": sorted(delta)})
    return obj

def delete_client(
    db: Session,
    principal: Principal,
    client_id: int,
    concurrency: ConcurrencyContext = INTERNAL,
) -> None:
    ensure_optimistic_concurrency(db, Client, client_id, concurrency)
    obj = db.get(Client, client_id)
    if obj is None:
        raise NotFoundError(f"Client {client_id} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_company(obj.company_id)

    # children first; employees and cost centers point at each other
    db.execute(delete(Assignment).where(Assignment.client_id == client_id))
    db.execute(
        update(Employee)
        .where(Employee.client_id == client_id)
        .values(manager_id=None, cost_center_id=None)
    )
    db.execute(delete(CostCenter).where(CostCenter.client_id == client_id))
    db.execute(delete(Employee).where(Employee.client_id == client_id))
    db.execute(delete(Location).where(Location.client_id == client_id))
    db.execute(delete(EmployeeIdCounter).where(EmployeeIdCounter.client_id == client_id))
    db.delete(obj)
    db.commit()
    logger.info("client_deleted", extra={"client_id": client_id})


def client_delete_preview(db: Session, principal: Principal, client_id: int) -> dict[str, Any]:
    obj = db.get(Client, client_id)
    if obj is None:
        raise NotFoundError(f"Client {client_id} not found.")
    CompanyAuthorizationResolver(db, principal).ensure_company(obj.company_id)

    def _count(model) -> int:
        return db.scalar(select(func.count(model.id)).where(model.client_id == client_id)) or 0

    return {
        "client_name": obj.name,
        "employee_count": _count(Employee),
        "cost_center_count": _count(CostCenter),
        "location_count": _count(Location),
        "assignment_count": _count(Assignment),
    }

from __future__ import annotations
from typing import Any, Optional, Type

from sqlalchemy.orm import Session

from assignment.models import Assignment
from client.models import Client
from core.database import Base
from core.errors import NotFoundError, ReferentialIntegrityError
from costcenter.models import CostCenter
from employee.models import Employee
from location.models import Location

# entity -> {foreign key field: (target model, label)}
REFERENCES: dict[Type[Base], dict[str, tuple[Type[Base], str]]] = {
    Employee: {
        "manager_id": (Employee, "manager"),
        "cost_center_id": (CostCenter, "cost center"),
        "location_id": (Location, "location"),
    },
    CostCenter: {
        "responsible_id": (Employee, "responsible employee"),
    },
    Location: {},
    Assignment: {
        "employee_id": (Employee, "employee"),
        "cost_center_id": (CostCenter, "cost center"),
    },
}


def owning_client_id(row: dict[str, Any], existing: Optional[Base] = None) -> Optional[int]:
    if row.get("client_id") is not None:
        return row["client_id"]
    return getattr(existing, "client_id", None)


def check_references(
    db: Session,
    model: Type[Base],
    row: dict[str, Any],
    existing: Optional[Base] = None,
) -> None:
    """Every association on ``row`` must exist and live under the row's client.

    Runs ahead of the lifecycle validators so a tampered foreign key is
    reported as an integrity failure, not as a business-rule one.
    """
    client_id = owning_client_id(row, existing)
    if client_id is not None and db.get(Client, client_id) is None:
        raise NotFoundError(f"Referenced client does not exist: {client_id}")

    for field, (target_model, label) in REFERENCES[model].items():
        ref = row.get(field)
        if ref is None:
            continue
        target = db.get(target_model, ref)
        if target is None:
            raise NotFoundError(f"Referenced {label} does not exist: {ref}")
        if client_id is not None and target.client_id != client_id:
            raise ReferentialIntegrityError(
                f"{label.capitalize()} {ref} does not belong to client {client_id}"
            )

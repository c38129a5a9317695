from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from client.models import Client
from core.config_loader import settings
from core.errors import ConflictError, ValidationError
from core.normalization import normalize_identifier

from .models import EMPLOYEE_ID_CONSTRAINT, Employee, EmployeeIdCounter

logger = logging.getLogger("orgdirectory.employee.identifier")

MAX_EMPLOYEE_ID_LENGTH = 32


class AllocationStatus(str, Enum):
    ALLOCATED = "allocated"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Allocation:
    status: AllocationStatus
    employee_id: Optional[str] = None
    # False when the caller supplied the identifier
    generated: bool = False

    @property
    def ok(self) -> bool:
        return self.status is AllocationStatus.ALLOCATED


def format_employee_id(company_id: str, counter: int) -> str:
    return f"{company_id}-{counter:0{settings.EMPLOYEE_ID_COUNTER_WIDTH}d}"


def employee_id_taken(db: Session, client_id: int, employee_id: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Employee.id).where(
        Employee.client_id == client_id,
        Employee.employee_id == employee_id,
    )
    if exclude_id is not None:
        stmt = stmt.where(Employee.id != exclude_id)
    return db.scalar(stmt.limit(1)) is not None


def is_allocation_conflict(exc: IntegrityError) -> bool:
    """True only for unique violations on the employee identifier or its counter."""
    message = str(exc.orig).lower()
    return (
        EMPLOYEE_ID_CONSTRAINT in message
        or "employees.employee_id" in message
        or EmployeeIdCounter.__tablename__ in message
    )


def validate_explicit_employee_id(
    db: Session, client: Client, candidate: str, exclude_id: Optional[int] = None
) -> str:
    employee_id = normalize_identifier(candidate)
    if employee_id is None:
        raise ValidationError("Employee ID must not be empty.")

    width = settings.EMPLOYEE_ID_COUNTER_WIDTH
    pattern = rf"{re.escape(client.company_id)}-[0-9]{{{width}}}"
    if len(employee_id) > MAX_EMPLOYEE_ID_LENGTH or not re.fullmatch(pattern, employee_id):
        raise ValidationError(
            f"Employee ID must have the format {client.company_id}-{'0' * (width - 1)}1."
        )

    if employee_id_taken(db, client.id, employee_id, exclude_id):
        raise ConflictError(f"Employee ID {employee_id} already exists.")
    return employee_id


def allocate_employee_id(db: Session, client: Client) -> Allocation:
    """Hand out the next counter value for ``client``.

    The counter row is read with ``FOR UPDATE`` so concurrent creates for
    the same client serialize here. Values that collide with an existing
    employee are burned, never reused.
    """
    capacity = settings.employee_id_capacity
    for attempt in range(1, settings.EMPLOYEE_ID_RETRIES + 1):
        counter = db.scalar(
            select(EmployeeIdCounter)
            .where(EmployeeIdCounter.client_id == client.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        next_value = (counter.last_counter if counter is not None else 0) + 1
        if next_value > capacity:
            raise ValidationError(
                f"Employee ID capacity exhausted for client {client.company_id} (maximum {capacity})."
            )

        if counter is None:
            counter = EmployeeIdCounter(client_id=client.id, last_counter=next_value)
            db.add(counter)
        else:
            counter.last_counter = next_value
        db.flush()

        candidate = format_employee_id(client.company_id, next_value)
        if employee_id_taken(db, client.id, candidate):
            logger.warning(
                "employee_id_skipped",
                extra={"client_id": client.id, "employee_id": candidate, "attempt": attempt},
            )
            continue

        logger.info("employee_id_allocated", extra={"client_id": client.id, "employee_id": candidate})
        return Allocation(AllocationStatus.ALLOCATED, candidate, generated=True)

    return Allocation(AllocationStatus.EXHAUSTED)


def ensure_identifier(db: Session, client: Client, candidate: Optional[str] = None) -> Allocation:
    if candidate is not None and str(candidate).strip():
        employee_id = validate_explicit_employee_id(db, client, candidate)
        return Allocation(AllocationStatus.ALLOCATED, employee_id, generated=False)
    return allocate_employee_id(db, client)

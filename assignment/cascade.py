from __future__ import annotations
import logging
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from core.dates import is_currently_active, ranges_overlap, today
from costcenter.models import CostCenter
from employee.models import Employee

from .models import Assignment

logger = logging.getLogger("orgdirectory.assignment.cascade")


# One-shot propagation: every function here is triggered by an assignment
# write and never re-triggers itself. Callers own the transaction.

def is_active_responsible(assignment: Assignment, *, on: Optional[date] = None) -> bool:
    return bool(assignment.is_responsible) and is_currently_active(
        assignment.valid_from, assignment.valid_to, on=on
    )


def apply_responsibility(db: Session, assignment: Assignment, *, on: Optional[date] = None) -> list[int]:
    """Make ``assignment.employee_id`` the responsible employee of its cost center.

    Returns the ids of co-located employees whose manager was switched.
    No-op unless the assignment is responsible and active today.
    """
    if not is_active_responsible(assignment, on=on):
        return []

    cost_center = db.get(CostCenter, assignment.cost_center_id)
    if cost_center is None:
        return []
    responsible_id = assignment.employee_id
    if cost_center.responsible_id != responsible_id:
        cost_center.responsible_id = responsible_id

    co_located = db.scalars(
        select(Assignment).where(
            Assignment.cost_center_id == assignment.cost_center_id,
            Assignment.employee_id != responsible_id,
        )
    )
    employee_ids = sorted({
        other.employee_id
        for other in co_located
        if ranges_overlap(assignment.valid_from, assignment.valid_to, other.valid_from, other.valid_to)
    })
    if employee_ids:
        db.execute(
            update(Employee)
            .where(Employee.id.in_(employee_ids), Employee.manager_id.is_distinct_from(responsible_id))
            .values(manager_id=responsible_id)
            .execution_options(synchronize_session="fetch")
        )
    db.flush()

    logger.info(
        "responsibility_transferred",
        extra={
            "cost_center_id": assignment.cost_center_id,
            "responsible_id": responsible_id,
            "count": len(employee_ids),
        },
    )
    return employee_ids


def find_successor(
    db: Session,
    cost_center_id: int,
    *,
    exclude_id: Optional[int] = None,
    on: Optional[date] = None,
) -> Optional[Assignment]:
    # latest valid_from wins among the remaining active responsible rows
    ref = on or today()
    stmt = (
        select(Assignment)
        .where(
            Assignment.cost_center_id == cost_center_id,
            Assignment.is_responsible.is_(True),
            Assignment.valid_from <= ref,
        )
        .order_by(Assignment.valid_from.desc(), Assignment.id.desc())
    )
    if exclude_id is not None:
        stmt = stmt.where(Assignment.id != exclude_id)
    for candidate in db.scalars(stmt):
        if is_currently_active(candidate.valid_from, candidate.valid_to, on=ref):
            return candidate
    return None


def handle_responsibility_removal(
    db: Session,
    cost_center_id: int,
    removed_id: int,
    *,
    on: Optional[date] = None,
) -> Optional[Assignment]:
    """Promote the next active responsible assignment, if any.

    With no successor the cost center keeps its current ``responsible_id``.
    """
    successor = find_successor(db, cost_center_id, exclude_id=removed_id, on=on)
    if successor is None:
        logger.info(
            "responsibility_unchanged",
            extra={"cost_center_id": cost_center_id, "assignment_id": removed_id},
        )
        return None
    apply_responsibility(db, successor, on=on)
    return successor

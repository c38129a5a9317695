"""Entity name -> lifecycle validator.

Every validator takes a ``WriteContext`` and returns the normalized field
delta for the write, or raises one of the ``core.errors`` types.
"""
from __future__ import annotations
from typing import Any, Callable

from assignment.validation import validate_assignment_write
from client.validation import validate_client_write
from core.lifecycle import WriteContext
from costcenter.validation import validate_cost_center_write
from employee.validation import validate_employee_write
from location.validation import validate_location_write

Validator = Callable[[WriteContext], dict[str, Any]]

VALIDATORS: dict[str, Validator] = {
    "Client": validate_client_write,
    "Employee": validate_employee_write,
    "CostCenter": validate_cost_center_write,
    "Location": validate_location_write,
    "Assignment": validate_assignment_write,
}


def validate_write(entity: str, ctx: WriteContext) -> dict[str, Any]:
    try:
        validator = VALIDATORS[entity]
    except KeyError:
        raise ValueError(f"No lifecycle validator registered for {entity}") from None
    return validator(ctx)

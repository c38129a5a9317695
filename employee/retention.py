from __future__ import annotations
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from auth.principal import Principal
from authz.company import allowed_company_codes, is_admin, scope_to_companies
from core.config_loader import settings
from core.database import utcnow
from core.dates import to_date
from core.errors import UnauthorizedCompanyError, ValidationError
from core.normalization import sanitize_identifier

from .models import Employee

logger = logging.getLogger("orgdirectory.employee.retention")

ANONYMIZED_PLACEHOLDER = "ANONYMIZED"
ANONYMIZED_EMAIL_DOMAIN = "example.invalid"
MAX_EMAIL_LOCAL_PART = 64


def parse_cutoff(value: Any):
    try:
        cutoff = to_date(value, field="before")
    except ValidationError:
        cutoff = None
    if cutoff is None:
        raise ValidationError('Parameter "before" must be a valid date.')
    return cutoff


def anonymized_email(employee_id: str) -> str:
    local = f"anonymized-{sanitize_identifier(employee_id or '') or 'employee'}"
    return f"{local[:MAX_EMAIL_LOCAL_PART]}@{ANONYMIZED_EMAIL_DOMAIN}"


def anonymize_former_employees(db: Session, principal: Principal, before: Any) -> int:
    """Scrub PII of employees who left before ``before``.

    Rows are processed and committed in batches; anonymized rows drop out
    of the selection, so the loop ends once nothing is left.
    """
    cutoff = parse_cutoff(before)

    if not is_admin(principal) and not allowed_company_codes(principal):
        raise UnauthorizedCompanyError("User is not authorized for any company.")

    stmt = select(Employee).where(
        Employee.exit_date.is_not(None),
        Employee.exit_date < cutoff,
        Employee.first_name != ANONYMIZED_PLACEHOLDER,
    )
    stmt = scope_to_companies(stmt, Employee, principal).order_by(Employee.id)

    batch_size = settings.ANONYMIZATION_BATCH_SIZE
    total = 0
    while True:
        batch = list(db.scalars(stmt.limit(batch_size)))
        if not batch:
            break
        now = utcnow()
        for emp in batch:
            emp.first_name = ANONYMIZED_PLACEHOLDER
            emp.last_name = ANONYMIZED_PLACEHOLDER
            emp.email = anonymized_email(emp.employee_id)
            emp.anonymized_at = now
        db.commit()
        total += len(batch)
        logger.info("anonymization_batch", extra={"count": len(batch), "cutoff": cutoff.isoformat()})

    logger.info("former_employees_anonymized", extra={"count": total, "cutoff": cutoff.isoformat()})
    return total

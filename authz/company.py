from __future__ import annotations
import logging
from typing import Any, Iterable, Optional, Type

from sqlalchemy import Select, false
from sqlalchemy.orm import Session

from auth.principal import Principal
from assignment.models import Assignment
from client.models import Client
from costcenter.models import CostCenter
from employee.models import Employee
from location.models import Location
from core.config_loader import settings
from core.database import Base
from core.errors import NotFoundError, UnauthorizedCompanyError, ValidationError
from core.normalization import normalize_company_id

logger = logging.getLogger("orgdirectory.authz")

COMPANY_CODE_ATTRIBUTES = ("CompanyCode", "companyCodes")


def is_admin(principal: Principal) -> bool:
    return principal.has_role(settings.ADMIN_ROLE)


def allowed_company_codes(principal: Principal) -> frozenset[str]:
    codes: set[str] = set()
    for name in COMPANY_CODE_ATTRIBUTES:
        value = principal.attribute(name)
        if value is None:
            continue
        for raw in [value] if isinstance(value, str) else value:
            code = normalize_company_id(raw)
            if code:
                codes.add(code)
    return frozenset(codes)


# -------- read path --------

def company_filter(principal: Principal):
    """WHERE clause on ``Client.company_id``; ``None`` means unrestricted."""
    if is_admin(principal):
        return None
    codes = allowed_company_codes(principal)
    if not codes:
        return false()
    return Client.company_id.in_(sorted(codes))


def scope_to_companies(stmt: Select, model: Type[Base], principal: Principal) -> Select:
    predicate = company_filter(principal)
    if predicate is None:
        return stmt
    if model is not Client:
        stmt = stmt.join(Client, Client.id == model.client_id)
    return stmt.where(predicate)


# -------- write path --------

class CompanyAuthorizationResolver:
    """Checks that every row a mutation touches belongs to an allowed company.

    One instance per request: the ``client_id -> company_id`` cache must
    never outlive the transaction it was filled in.
    """

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal
        self._client_companies: dict[int, Optional[str]] = {}
        self._allowed: Optional[frozenset[str]] = None

    @property
    def bypass(self) -> bool:
        return is_admin(self.principal)

    @property
    def allowed_companies(self) -> frozenset[str]:
        if self._allowed is None:
            self._allowed = allowed_company_codes(self.principal)
        return self._allowed

    def _deny(self, message: str) -> None:
        logger.info("authorization_denied", extra={"user_id": self.principal.user_id, "reason": message})
        raise UnauthorizedCompanyError(message)

    def _require_assignments(self) -> None:
        if not self.allowed_companies:
            self._deny("Forbidden: company code not assigned")

    def company_for_client(self, client_id: int) -> Optional[str]:
        if client_id not in self._client_companies:
            client = self.db.get(Client, client_id)
            self._client_companies[client_id] = normalize_company_id(client.company_id) if client else None
        return self._client_companies[client_id]

    def ensure_company(self, company_id: Any) -> None:
        if self.bypass:
            return
        self._require_assignments()
        code = normalize_company_id(company_id)
        if code is None or code not in self.allowed_companies:
            self._deny(f"User is not authorized for company: {code or company_id}")

    def ensure_client(self, client_id: Any) -> None:
        if self.bypass:
            return
        self._require_assignments()
        company = self.company_for_client(client_id) if client_id is not None else None
        if company is None:
            # unknown clients look exactly like foreign ones
            self._deny("Forbidden: company code not assigned")
        self.ensure_company(company)

    # rows are plain dicts: the incoming fields plus "id" for existing records

    def authorize_clients(self, rows: Iterable[dict]) -> None:
        if self.bypass:
            return
        self._require_assignments()
        for row in rows:
            if row.get("id") is not None:
                self.ensure_client(row["id"])
            if row.get("company_id") is not None:
                self.ensure_company(row["company_id"])

    def _authorize_owned(self, model: Type[Base], rows: Iterable[dict], label: str) -> None:
        if self.bypass:
            return
        self._require_assignments()
        for row in rows:
            client_ids = set()
            if row.get("id") is not None:
                existing = self.db.get(model, row["id"])
                if existing is None:
                    raise NotFoundError(f"{label} {row['id']} not found.")
                client_ids.add(existing.client_id)
            if row.get("client_id") is not None:
                client_ids.add(row["client_id"])
            if not client_ids:
                inferred = self._infer_client(row)
                if inferred is None:
                    raise ValidationError(f"{label} must reference a client.")
                client_ids.add(inferred)
            for client_id in client_ids:
                self.ensure_client(client_id)

    def _infer_client(self, row: dict) -> Optional[int]:
        # employees may arrive with only a cost center reference
        cost_center_id = row.get("cost_center_id")
        if cost_center_id is None:
            return None
        cost_center = self.db.get(CostCenter, cost_center_id)
        return cost_center.client_id if cost_center else None

    def authorize_employees(self, rows: Iterable[dict]) -> None:
        self._authorize_owned(Employee, rows, "Employee")

    def authorize_cost_centers(self, rows: Iterable[dict]) -> None:
        self._authorize_owned(CostCenter, rows, "Cost center")

    def authorize_locations(self, rows: Iterable[dict]) -> None:
        self._authorize_owned(Location, rows, "Location")

    def authorize_assignments(self, rows: Iterable[dict]) -> None:
        self._authorize_owned(Assignment, rows, "Assignment")

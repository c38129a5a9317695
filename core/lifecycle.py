from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from sqlalchemy.orm import Session

from auth.principal import Principal
from authz.company import CompanyAuthorizationResolver
from core.concurrency import INTERNAL, ConcurrencyContext


class WriteEvent(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"


@dataclass
class WriteContext:
    """Input shared by every entity validator.

    ``incoming`` only holds the fields the caller actually sent, so an
    explicit ``None`` (clear) is distinguishable from "not touched".
    Validators fill in ``existing`` on UPDATE and return the normalized
    delta to persist.
    """

    db: Session
    event: WriteEvent
    incoming: dict[str, Any]
    principal: Principal
    target_id: Optional[int] = None
    concurrency: ConcurrencyContext = INTERNAL
    authz: Optional[CompanyAuthorizationResolver] = None
    existing: Any = field(default=None)

    def __post_init__(self):
        if self.authz is None:
            self.authz = CompanyAuthorizationResolver(self.db, self.principal)

    @property
    def is_create(self) -> bool:
        return self.event is WriteEvent.CREATE

    def current(self, data: dict[str, Any], name: str) -> Any:
        # value after the write: delta first, then the stored row
        if name in data:
            return data[name]
        if self.existing is not None:
            return getattr(self.existing, name, None)
        return None

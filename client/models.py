from __future__ import annotations
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base, TimestampMixin


class Client(TimestampMixin, Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    # tenant-scoping business key, stored normalized (trimmed, uppercase)
    company_id: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    country_code: Mapped[str | None] = mapped_column(String(2), nullable=True)

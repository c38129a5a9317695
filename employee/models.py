from __future__ import annotations
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base, TimestampMixin

if TYPE_CHECKING:
    from costcenter.models import CostCenter
    from location.models import Location

EMPLOYEE_ID_CONSTRAINT = "uq_employees_client_employee_id"


class Employee(TimestampMixin, Base):
    __tablename__ = "employees"
    __table_args__ = (
        UniqueConstraint("client_id", "employee_id", name=EMPLOYEE_ID_CONSTRAINT),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)

    # business identifier, "<company id>-<counter>"
    employee_id: Mapped[str] = mapped_column(String(32), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    exit_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="active")
    employment_type: Mapped[str] = mapped_column(String(20), nullable=False, default="internal")
    is_manager: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("employees.id", ondelete="SET NULL"), index=True, nullable=True
    )
    cost_center_id: Mapped[int | None] = mapped_column(
        ForeignKey("cost_centers.id", ondelete="SET NULL", use_alter=True, name="fk_employees_cost_center_id"),
        index=True,
        nullable=True,
    )
    location_id: Mapped[int | None] = mapped_column(ForeignKey("locations.id"), index=True, nullable=True)

    anonymized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # relationships
    manager: Mapped["Employee | None"] = relationship("Employee", remote_side=[id])
    cost_center: Mapped["CostCenter | None"] = relationship("CostCenter", foreign_keys=[cost_center_id])
    location: Mapped["Location | None"] = relationship("Location")


class EmployeeIdCounter(Base):
    """Last counter value handed out per client; only the allocator writes it."""

    __tablename__ = "employee_id_counters"

    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), primary_key=True)
    last_counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

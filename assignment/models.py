from __future__ import annotations
from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base, TimestampMixin


class Assignment(TimestampMixin, Base):
    __tablename__ = "employee_cost_center_assignments"

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), index=True)
    cost_center_id: Mapped[int] = mapped_column(ForeignKey("cost_centers.id", ondelete="CASCADE"), index=True)

    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_responsible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


Index("ix_assignments_cost_center_responsible", Assignment.cost_center_id, Assignment.is_responsible)
Index("ix_assignments_employee_window", Assignment.employee_id, Assignment.valid_from)

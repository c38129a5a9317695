"""Create clients, employees, cost centers, locations, assignments

Revision ID: 3c1e9a4f7b20
Revises:
Create Date: 2026-10-18 09:12:41.503114
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1e9a4f7b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FK_EMPLOYEES_COST_CENTER = "fk_employees_cost_center_id"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("modified_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("country_code", sa.String(length=2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_company_id", "clients", ["company_id"], unique=True)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("country_code", sa.String(length=2), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=False),
        sa.Column("street", sa.String(length=255), nullable=False),
        sa.Column("address_supplement", sa.String(length=255), nullable=True),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_to", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_locations_client_id", "locations", ["client_id"])

    # cost_center_id FK is added after cost_centers exists
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.String(length=32), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("exit_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="active"),
        sa.Column("employment_type", sa.String(length=20), nullable=False, server_default="internal"),
        sa.Column("is_manager", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("cost_center_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("anonymized_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["manager_id"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("client_id", "employee_id", name="uq_employees_client_employee_id"),
    )
    op.create_index("ix_employees_client_id", "employees", ["client_id"])
    op.create_index("ix_employees_manager_id", "employees", ["manager_id"])
    op.create_index("ix_employees_cost_center_id", "employees", ["cost_center_id"])
    op.create_index("ix_employees_location_id", "employees", ["location_id"])

    op.create_table(
        "cost_centers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("responsible_id", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_to", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["responsible_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("client_id", "code", name="uq_cost_centers_client_code"),
    )
    op.create_index("ix_cost_centers_client_id", "cost_centers", ["client_id"])
    op.create_index("ix_cost_centers_responsible_id", "cost_centers", ["responsible_id"])

    op.create_foreign_key(
        FK_EMPLOYEES_COST_CENTER,
        "employees",
        "cost_centers",
        ["cost_center_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "employee_cost_center_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("cost_center_id", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_to", sa.Date(), nullable=True),
        sa.Column("is_responsible", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cost_center_id"], ["cost_centers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_employee_cost_center_assignments_client_id", "employee_cost_center_assignments", ["client_id"]
    )
    op.create_index(
        "ix_employee_cost_center_assignments_employee_id", "employee_cost_center_assignments", ["employee_id"]
    )
    op.create_index(
        "ix_employee_cost_center_assignments_cost_center_id",
        "employee_cost_center_assignments",
        ["cost_center_id"],
    )
    op.create_index(
        "ix_assignments_cost_center_responsible",
        "employee_cost_center_assignments",
        ["cost_center_id", "is_responsible"],
    )
    op.create_index(
        "ix_assignments_employee_window",
        "employee_cost_center_assignments",
        ["employee_id", "valid_from"],
    )

    op.create_table(
        "employee_id_counters",
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("last_counter", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("client_id"),
    )


def downgrade() -> None:
    op.drop_table("employee_id_counters")
    op.drop_index("ix_assignments_employee_window", table_name="employee_cost_center_assignments")
    op.drop_index("ix_assignments_cost_center_responsible", table_name="employee_cost_center_assignments")
    op.drop_table("employee_cost_center_assignments")
    op.drop_constraint(FK_EMPLOYEES_COST_CENTER, "employees", type_="foreignkey")
    op.drop_table("cost_centers")
    op.drop_table("employees")
    op.drop_table("locations")
    op.drop_table("clients")

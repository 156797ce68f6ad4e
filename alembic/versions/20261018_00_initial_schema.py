"""create tenants with usage counters, projects and expenses

Revision ID: 20261018_00
Revises: 
Create Date: 2026-10-18 09:10:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261018_00"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("clerk_org_id", sa.String(length=255), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("subscription_tier", sa.String(length=50), nullable=False, server_default="trial"),
        sa.Column("subscription_status", sa.String(length=20), nullable=False, server_default="trialing"),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_projects", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_users", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_month_expenses", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("expense_counter_reset_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("current_projects >= 0", name="ck_tenants_current_projects_non_negative"),
        sa.CheckConstraint("current_users >= 0", name="ck_tenants_current_users_non_negative"),
        sa.CheckConstraint(
            "current_month_expenses >= 0",
            name="ck_tenants_current_month_expenses_non_negative",
        ),
    )
    op.create_index("ix_tenants_clerk_org_id", "tenants", ["clerk_org_id"], unique=True)

    op.create_table(
        "projects",
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_expenses_tenant_id", "expenses", ["tenant_id"], unique=False)
    op.create_index("ix_expenses_project_id", "expenses", ["project_id"], unique=False)

    op.alter_column("projects", "description", server_default=None)
    op.alter_column("expenses", "description", server_default=None)


def downgrade() -> None:
    op.drop_index("ix_expenses_project_id", table_name="expenses")
    op.drop_index("ix_expenses_tenant_id", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_projects_tenant_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_tenants_clerk_org_id", table_name="tenants")
    op.drop_table("tenants")

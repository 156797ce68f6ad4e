"""add company users

Revision ID: 20261018_01
Revises: 20261018_00
Create Date: 2026-10-18 10:25:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = "20261018_00"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "company_users",
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="editor"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("clerk_user_id", sa.String(length=255), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_company_users_tenant_email"),
    )
    op.create_index("ix_company_users_tenant_id", "company_users", ["tenant_id"], unique=False)
    op.create_index("ix_company_users_clerk_user_id", "company_users", ["clerk_user_id"], unique=False)
    op.alter_column("company_users", "role", server_default=None)
    op.alter_column("company_users", "status", server_default=None)


def downgrade() -> None:
    op.drop_index("ix_company_users_clerk_user_id", table_name="company_users")
    op.drop_index("ix_company_users_tenant_id", table_name="company_users")
    op.drop_table("company_users")

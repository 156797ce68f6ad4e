"""reference projects from expenses

Revision ID: 20261018_02
Revises: 20261018_01
Create Date: 2026-10-18 14:40:00

"""
from __future__ import annotations

from alembic import op


# revision identifiers, used by Alembic.
revision = "20261018_02"
down_revision = "20261018_01"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_foreign_key(
        "fk_expenses_project_id_projects",
        "expenses",
        "projects",
        ["project_id"],
        ["id"],
        ondelete="RESTRICT",
    )


def downgrade() -> None:
    op.drop_constraint("fk_expenses_project_id_projects", "expenses", type_="foreignkey")

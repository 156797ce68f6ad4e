from __future__ import annotations

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TenantScopedBase


class CompanyUser(TenantScopedBase):
    __tablename__ = "company_users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_company_users_tenant_email"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="editor")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    clerk_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import TimestampedBase


class Tenant(TimestampedBase):
    __tablename__ = "tenants"
    __table_args__ = (
        CheckConstraint("current_projects >= 0", name="ck_tenants_current_projects_non_negative"),
        CheckConstraint("current_users >= 0", name="ck_tenants_current_users_non_negative"),
        CheckConstraint(
            "current_month_expenses >= 0",
            name="ck_tenants_current_month_expenses_non_negative",
        ),
    )

    clerk_org_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    subscription_tier: Mapped[str] = mapped_column(String(50), nullable=False, default="trial")
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False, default="trialing")
    trial_ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    current_projects: Mapped[int] = mapped_column(nullable=False, default=0)
    current_users: Mapped[int] = mapped_column(nullable=False, default=0)
    current_month_expenses: Mapped[int] = mapped_column(nullable=False, default=0)
    expense_counter_reset_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

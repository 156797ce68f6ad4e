from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from src.core.quota.decision import ResourceType
from src.core.quota.enforcer import is_current_period, period_start
from src.core.quota.store import TenantUsage
from src.core.quota.tiers import Limit, Limited, TierCatalog


@dataclass(slots=True)
class ResourceUsage:
    current: int
    limit: int | None
    unlimited: bool
    percentage: float

    @classmethod
    def build(cls, current: int, limit: Limit) -> ResourceUsage:
        if not isinstance(limit, Limited):
            return cls(current=current, limit=None, unlimited=True, percentage=0.0)
        if limit.value == 0:
            return cls(current=current, limit=0, unlimited=False, percentage=100.0)
        percentage = min(100.0, current / limit.value * 100)
        return cls(current=current, limit=limit.value, unlimited=False, percentage=round(percentage, 2))


@dataclass(slots=True)
class UsageStatus:
    tier: str
    tier_display_name: str
    subscription_status: str
    projects: ResourceUsage
    users: ResourceUsage
    expenses: ResourceUsage
    expense_reset_date: datetime | None


def build_usage_status(usage: TenantUsage, catalog: TierCatalog, now: datetime) -> UsageStatus:
    """Dashboard view from a plain read. May be stale; never use it to gate a creation."""
    tier = catalog.get_limits(usage.subscription_tier)
    start = period_start(now)

    if is_current_period(usage.expense_counter_reset_date, start):
        expenses_used = usage.current_month_expenses
        reset_date = usage.expense_counter_reset_date
    else:
        # Not rolled over yet; the next reservation resets it.
        expenses_used = 0
        reset_date = start

    return UsageStatus(
        tier=tier.name,
        tier_display_name=tier.display_name,
        subscription_status=usage.subscription_status,
        projects=ResourceUsage.build(usage.counter(ResourceType.PROJECT), tier.max_projects),
        users=ResourceUsage.build(usage.counter(ResourceType.USER), tier.max_users),
        expenses=ResourceUsage.build(expenses_used, tier.max_expenses_per_month),
        expense_reset_date=reset_date,
    )

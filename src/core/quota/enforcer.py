from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from src.core.quota.decision import (
    LIMIT_REACHED,
    SUBSCRIPTION_INACTIVE,
    QuotaDecision,
    ResourceType,
)
from src.core.quota.errors import TenantNotFoundError
from src.core.quota.store import QuotaStore, TenantUsage
from src.core.quota.tiers import Limit, Limited, TierCatalog, TierLimits, UpgradeAdvisor

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def period_start(moment: datetime) -> datetime:
    """First instant of the calendar month (UTC) containing ``moment``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def is_current_period(reset_date: datetime | None, start: datetime) -> bool:
    if reset_date is None:
        return False
    if reset_date.tzinfo is None:
        reset_date = reset_date.replace(tzinfo=timezone.utc)
    return reset_date >= start


_RESOURCE_LABELS = {
    ResourceType.PROJECT: "projects",
    ResourceType.USER: "users",
    ResourceType.EXPENSE: "expenses per month",
}


class QuotaEnforcer:
    """Admits one more unit of a resource against the tenant's current tier limit.

    Finite limits are enforced with a single conditional write against the
    tenant row, never a read followed by a write. The expense counter also
    rolls over lazily when a request lands in a new calendar month.
    """

    def __init__(
        self,
        store: QuotaStore,
        catalog: TierCatalog,
        *,
        advisor: UpgradeAdvisor | None = None,
        clock: Clock = utc_now,
        inactive_statuses: set[str] | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.advisor = advisor or UpgradeAdvisor(catalog)
        self.clock = clock
        self.inactive_statuses = {status.lower() for status in (inactive_statuses or set())}

    async def check_and_reserve(
        self,
        tenant_id: UUID,
        resource_type: ResourceType | str,
        amount: int = 1,
    ) -> QuotaDecision:
        resource = ResourceType.parse(resource_type)
        if amount < 1:
            raise ValueError(f"Reservation amount must be positive, got {amount}")

        usage = await self.store.get_usage(tenant_id)
        if usage is None:
            raise TenantNotFoundError(tenant_id)

        if usage.subscription_status.lower() in self.inactive_statuses:
            logger.info(
                "Quota denied for inactive subscription tenant=%s status=%s resource=%s",
                tenant_id,
                usage.subscription_status,
                resource.value,
            )
            return QuotaDecision(
                allowed=False,
                resource=resource,
                reason=SUBSCRIPTION_INACTIVE,
                current_usage=usage.counter(resource),
                suggested_tier=self.advisor.suggest(usage.subscription_tier),
                message="Subscription is not active",
            )

        tier = self.catalog.get_limits(usage.subscription_tier)
        limit = tier.limit_for(resource)

        if resource is ResourceType.EXPENSE:
            return await self._reserve_expense(usage, tier, limit, amount)

        if not isinstance(limit, Limited):
            await self._increment_unlimited(tenant_id, resource, amount)
            return QuotaDecision.allow(resource)

        after = await self.store.increment_within(tenant_id, resource, amount, limit.value)
        if after is None:
            return self._deny(usage, tier, resource, limit.value, usage.counter(resource))
        return QuotaDecision.allow(resource)

    async def _increment_unlimited(self, tenant_id: UUID, resource: ResourceType, amount: int) -> None:
        after = await self.store.increment(tenant_id, resource, amount)
        if after is None:
            raise TenantNotFoundError(tenant_id)

    async def _reserve_expense(
        self,
        usage: TenantUsage,
        tier: TierLimits,
        limit: Limit,
        amount: int,
    ) -> QuotaDecision:
        tenant_id = usage.tenant_id
        resource = ResourceType.EXPENSE
        start = period_start(self.clock())
        current = is_current_period(usage.expense_counter_reset_date, start)

        if not isinstance(limit, Limited):
            after = await self.store.increment_expenses(tenant_id, amount, start)
            if after is None:
                raise TenantNotFoundError(tenant_id)
            return QuotaDecision.allow(resource)

        if not current:
            if amount > limit.value:
                return self._deny(usage, tier, resource, limit.value, 0)

            after = await self.store.reset_expenses(
                tenant_id,
                usage.expense_counter_reset_date,
                start,
                amount,
            )
            if after is not None:
                logger.info(
                    "Expense counter rolled over tenant=%s period=%s previous=%s",
                    tenant_id,
                    start.date().isoformat(),
                    usage.current_month_expenses,
                )
                return QuotaDecision.allow(resource)

            # Another request already reset this period; fall through once to
            # the ordinary conditional increment against the new period.
            logger.debug("Expense rollover lost race tenant=%s, retrying in current period", tenant_id)

        after = await self.store.increment_expenses_within(tenant_id, amount, limit.value, start)
        if after is None:
            observed = usage.current_month_expenses if current else 0
            return self._deny(usage, tier, resource, limit.value, observed)
        return QuotaDecision.allow(resource)

    def _deny(
        self,
        usage: TenantUsage,
        tier: TierLimits,
        resource: ResourceType,
        limit: int,
        current_usage: int,
    ) -> QuotaDecision:
        logger.info(
            "Quota limit reached tenant=%s tier=%s resource=%s usage=%s/%s",
            usage.tenant_id,
            tier.name,
            resource.value,
            current_usage,
            limit,
        )
        return QuotaDecision(
            allowed=False,
            resource=resource,
            reason=LIMIT_REACHED,
            current_usage=current_usage,
            limit=limit,
            suggested_tier=self.advisor.suggest(tier.name),
            message=(
                f"{tier.display_name} plan allows up to {limit} {_RESOURCE_LABELS[resource]}. "
                "Upgrade to raise the limit."
            ),
        )

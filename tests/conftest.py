from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from src.core.quota.decision import ResourceType
from src.core.quota.store import QuotaStore, TenantUsage
from src.core.quota.tiers import DEFAULT_TIERS, TierCatalog

_FIELDS = {
    ResourceType.PROJECT: "current_projects",
    ResourceType.USER: "current_users",
    ResourceType.EXPENSE: "current_month_expenses",
}


@dataclass
class _TenantRow:
    subscription_tier: str
    subscription_status: str
    current_projects: int = 0
    current_users: int = 0
    current_month_expenses: int = 0
    expense_counter_reset_date: datetime | None = None


class InMemoryQuotaStore(QuotaStore):
    """Conditional-write store for tests.

    Every call yields to the event loop first so concurrent tasks interleave,
    then checks its precondition and applies the write with no await in between,
    which is the guarantee a single ``UPDATE ... WHERE ... RETURNING`` gives.
    """

    def __init__(self) -> None:
        self.rows: dict[UUID, _TenantRow] = {}
        self.fail_with: Exception | None = None
        self.calls: list[str] = []

    def add_tenant(
        self,
        *,
        tier: str = "trial",
        status: str = "active",
        projects: int = 0,
        users: int = 0,
        expenses: int = 0,
        reset_date: datetime | None = None,
    ) -> UUID:
        tenant_id = uuid4()
        self.rows[tenant_id] = _TenantRow(
            subscription_tier=tier,
            subscription_status=status,
            current_projects=projects,
            current_users=users,
            current_month_expenses=expenses,
            expense_counter_reset_date=reset_date,
        )
        return tenant_id

    def row(self, tenant_id: UUID) -> _TenantRow:
        return self.rows[tenant_id]

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with

    async def get_usage(self, tenant_id: UUID) -> TenantUsage | None:
        await self._enter("get_usage")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        snapshot = replace(row)
        return TenantUsage(
            tenant_id=tenant_id,
            subscription_tier=snapshot.subscription_tier,
            subscription_status=snapshot.subscription_status,
            current_projects=snapshot.current_projects,
            current_users=snapshot.current_users,
            current_month_expenses=snapshot.current_month_expenses,
            expense_counter_reset_date=snapshot.expense_counter_reset_date,
        )

    async def increment(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        await self._enter("increment")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        field = _FIELDS[resource]
        setattr(row, field, getattr(row, field) + amount)
        return getattr(row, field)

    async def increment_within(
        self,
        tenant_id: UUID,
        resource: ResourceType,
        amount: int,
        limit: int,
    ) -> int | None:
        await self._enter("increment_within")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        field = _FIELDS[resource]
        if getattr(row, field) + amount > limit:
            return None
        setattr(row, field, getattr(row, field) + amount)
        return getattr(row, field)

    async def increment_expenses_within(
        self,
        tenant_id: UUID,
        amount: int,
        limit: int,
        period_start: datetime,
    ) -> int | None:
        await self._enter("increment_expenses_within")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        if row.expense_counter_reset_date is None or row.expense_counter_reset_date < period_start:
            return None
        if row.current_month_expenses + amount > limit:
            return None
        row.current_month_expenses += amount
        return row.current_month_expenses

    async def reset_expenses(
        self,
        tenant_id: UUID,
        observed_reset_date: datetime | None,
        period_start: datetime,
        amount: int,
    ) -> int | None:
        await self._enter("reset_expenses")
        row = self.rows.get(tenant_id)
        if row is None or row.expense_counter_reset_date != observed_reset_date:
            return None
        row.current_month_expenses = amount
        row.expense_counter_reset_date = period_start
        return row.current_month_expenses

    async def increment_expenses(self, tenant_id: UUID, amount: int, period_start: datetime) -> int | None:
        await self._enter("increment_expenses")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        if row.expense_counter_reset_date is None or row.expense_counter_reset_date < period_start:
            row.current_month_expenses = amount
            row.expense_counter_reset_date = period_start
        else:
            row.current_month_expenses += amount
        return row.current_month_expenses

    async def decrement_available(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        await self._enter("decrement_available")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        field = _FIELDS[resource]
        if getattr(row, field) < amount:
            return None
        setattr(row, field, getattr(row, field) - amount)
        return getattr(row, field)

    async def decrement_clamped(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        await self._enter("decrement_clamped")
        row = self.rows.get(tenant_id)
        if row is None:
            return None
        field = _FIELDS[resource]
        setattr(row, field, max(getattr(row, field) - amount, 0))
        return getattr(row, field)


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store() -> InMemoryQuotaStore:
    return InMemoryQuotaStore()


@pytest.fixture
def catalog() -> TierCatalog:
    return TierCatalog(DEFAULT_TIERS)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 12, 5, 10, 30, tzinfo=timezone.utc))

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Update, case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import Executable

from src.core.quota.decision import ResourceType
from src.core.quota.errors import StoreUnavailableError
from src.models.tenant import Tenant

COUNTER_COLUMNS = {
    ResourceType.PROJECT: Tenant.current_projects,
    ResourceType.USER: Tenant.current_users,
    ResourceType.EXPENSE: Tenant.current_month_expenses,
}


@dataclass(slots=True, frozen=True)
class TenantUsage:
    tenant_id: UUID
    subscription_tier: str
    subscription_status: str
    current_projects: int
    current_users: int
    current_month_expenses: int
    expense_counter_reset_date: datetime | None

    def counter(self, resource: ResourceType) -> int:
        if resource is ResourceType.PROJECT:
            return self.current_projects
        if resource is ResourceType.USER:
            return self.current_users
        return self.current_month_expenses

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> TenantUsage:
        return cls(
            tenant_id=tenant.id,
            subscription_tier=tenant.subscription_tier,
            subscription_status=tenant.subscription_status,
            current_projects=tenant.current_projects or 0,
            current_users=tenant.current_users or 0,
            current_month_expenses=tenant.current_month_expenses or 0,
            expense_counter_reset_date=tenant.expense_counter_reset_date,
        )


class QuotaStore(ABC):
    """Shared per-tenant counters. Every mutation is a single atomic conditional write.

    Methods returning ``int | None`` give the counter value after the write, or
    ``None`` when the precondition did not hold (or the tenant row is missing).
    """

    @abstractmethod
    async def get_usage(self, tenant_id: UUID) -> TenantUsage | None: ...

    @abstractmethod
    async def increment(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None: ...

    @abstractmethod
    async def increment_within(
        self,
        tenant_id: UUID,
        resource: ResourceType,
        amount: int,
        limit: int,
    ) -> int | None: ...

    @abstractmethod
    async def increment_expenses_within(
        self,
        tenant_id: UUID,
        amount: int,
        limit: int,
        period_start: datetime,
    ) -> int | None:
        """Add to the expense counter only while it still counts ``period_start``'s period."""

    @abstractmethod
    async def reset_expenses(
        self,
        tenant_id: UUID,
        observed_reset_date: datetime | None,
        period_start: datetime,
        amount: int,
    ) -> int | None:
        """Start a new period at ``amount``, only if the reset date is still the observed one."""

    @abstractmethod
    async def increment_expenses(self, tenant_id: UUID, amount: int, period_start: datetime) -> int | None:
        """Unconditional increment that also rolls a stale period over."""

    @abstractmethod
    async def decrement_available(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        """Subtract ``amount`` only if the counter holds at least that much."""

    @abstractmethod
    async def decrement_clamped(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None: ...


class SqlQuotaStore(QuotaStore):
    """PostgreSQL store: each write is one ``UPDATE ... WHERE <precondition> RETURNING``.

    Postgres re-checks the WHERE clause after acquiring the row lock, so
    concurrent writers serialize on the tenant row without explicit locking.
    Writes run in their own short transaction so a reservation is committed
    before the caller persists the business record.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def _returning(
        self,
        stmt: Executable,
        tenant_id: UUID,
        resource: ResourceType | None,
    ) -> int | None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    return result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(tenant_id, resource.value if resource else None) from exc

    @staticmethod
    def _update(tenant_id: UUID, *conditions: object) -> Update:
        return (
            update(Tenant)
            .where(Tenant.id == tenant_id, *conditions)
            .execution_options(synchronize_session=False)
        )

    async def get_usage(self, tenant_id: UUID) -> TenantUsage | None:
        try:
            async with self.session_factory() as session:
                tenant = await session.scalar(select(Tenant).where(Tenant.id == tenant_id))
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(tenant_id) from exc
        if tenant is None:
            return None
        return TenantUsage.from_tenant(tenant)

    def increment_statement(self, tenant_id: UUID, resource: ResourceType, amount: int) -> Update:
        column = COUNTER_COLUMNS[resource]
        return self._update(tenant_id).values({column.key: column + amount}).returning(column)

    def increment_within_statement(
        self,
        tenant_id: UUID,
        resource: ResourceType,
        amount: int,
        limit: int,
    ) -> Update:
        column = COUNTER_COLUMNS[resource]
        return (
            self._update(tenant_id, column + amount <= limit)
            .values({column.key: column + amount})
            .returning(column)
        )

    def increment_expenses_within_statement(
        self,
        tenant_id: UUID,
        amount: int,
        limit: int,
        period_start: datetime,
    ) -> Update:
        column = Tenant.current_month_expenses
        return (
            self._update(
                tenant_id,
                column + amount <= limit,
                Tenant.expense_counter_reset_date >= period_start,
            )
            .values({column.key: column + amount})
            .returning(column)
        )

    def reset_expenses_statement(
        self,
        tenant_id: UUID,
        observed_reset_date: datetime | None,
        period_start: datetime,
        amount: int,
    ) -> Update:
        reset_column = Tenant.expense_counter_reset_date
        observed = (
            reset_column.is_(None)
            if observed_reset_date is None
            else reset_column == observed_reset_date
        )
        return (
            self._update(tenant_id, observed)
            .values(current_month_expenses=amount, expense_counter_reset_date=period_start)
            .returning(Tenant.current_month_expenses)
        )

    def increment_expenses_statement(self, tenant_id: UUID, amount: int, period_start: datetime) -> Update:
        reset_column = Tenant.expense_counter_reset_date
        stale = or_(reset_column.is_(None), reset_column < period_start)
        return (
            self._update(tenant_id)
            .values(
                current_month_expenses=case(
                    (stale, amount),
                    else_=Tenant.current_month_expenses + amount,
                ),
                expense_counter_reset_date=case((stale, period_start), else_=reset_column),
            )
            .returning(Tenant.current_month_expenses)
        )

    def decrement_available_statement(self, tenant_id: UUID, resource: ResourceType, amount: int) -> Update:
        column = COUNTER_COLUMNS[resource]
        return (
            self._update(tenant_id, column >= amount)
            .values({column.key: column - amount})
            .returning(column)
        )

    def decrement_clamped_statement(self, tenant_id: UUID, resource: ResourceType, amount: int) -> Update:
        column = COUNTER_COLUMNS[resource]
        return (
            self._update(tenant_id)
            .values({column.key: func.greatest(column - amount, 0)})
            .returning(column)
        )

    async def increment(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        return await self._returning(self.increment_statement(tenant_id, resource, amount), tenant_id, resource)

    async def increment_within(
        self,
        tenant_id: UUID,
        resource: ResourceType,
        amount: int,
        limit: int,
    ) -> int | None:
        stmt = self.increment_within_statement(tenant_id, resource, amount, limit)
        return await self._returning(stmt, tenant_id, resource)

    async def increment_expenses_within(
        self,
        tenant_id: UUID,
        amount: int,
        limit: int,
        period_start: datetime,
    ) -> int | None:
        stmt = self.increment_expenses_within_statement(tenant_id, amount, limit, period_start)
        return await self._returning(stmt, tenant_id, ResourceType.EXPENSE)

    async def reset_expenses(
        self,
        tenant_id: UUID,
        observed_reset_date: datetime | None,
        period_start: datetime,
        amount: int,
    ) -> int | None:
        stmt = self.reset_expenses_statement(tenant_id, observed_reset_date, period_start, amount)
        return await self._returning(stmt, tenant_id, ResourceType.EXPENSE)

    async def increment_expenses(self, tenant_id: UUID, amount: int, period_start: datetime) -> int | None:
        stmt = self.increment_expenses_statement(tenant_id, amount, period_start)
        return await self._returning(stmt, tenant_id, ResourceType.EXPENSE)

    async def decrement_available(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        stmt = self.decrement_available_statement(tenant_id, resource, amount)
        return await self._returning(stmt, tenant_id, resource)

    async def decrement_clamped(self, tenant_id: UUID, resource: ResourceType, amount: int) -> int | None:
        stmt = self.decrement_clamped_statement(tenant_id, resource, amount)
        return await self._returning(stmt, tenant_id, resource)

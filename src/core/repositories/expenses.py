from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.expense import Expense


class ExpenseRepository(TenantRepository[Expense]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Expense)

    async def list_for_project(self, project_id: UUID, *, limit: int = 100) -> list[Expense]:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select()
            .where(Expense.project_id == project_id)
            .order_by(Expense.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_project(self, project_id: UUID) -> int:
        await self._apply_rls()
        result = await self.session.execute(
            select(func.count(Expense.id))
            .where(Expense.tenant_id == self.tenant_id)
            .where(Expense.project_id == project_id)
        )
        return int(result.scalar_one() or 0)

    async def delete_for_project(self, project_id: UUID) -> int:
        await self._apply_rls()
        result = await self.session.execute(
            delete(Expense)
            .where(Expense.tenant_id == self.tenant_id)
            .where(Expense.project_id == project_id)
        )
        return result.rowcount or 0

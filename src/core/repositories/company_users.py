from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.company_user import CompanyUser


class CompanyUserRepository(TenantRepository[CompanyUser]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=CompanyUser)

    async def get_by_email(self, email: str) -> CompanyUser | None:
        await self._apply_rls()
        result = await self.session.execute(
            self._scoped_select().where(CompanyUser.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def count_active_admins(self) -> int:
        await self._apply_rls()
        result = await self.session.execute(
            select(func.count(CompanyUser.id))
            .where(CompanyUser.tenant_id == self.tenant_id)
            .where(CompanyUser.role == "admin")
            .where(CompanyUser.status == "active")
        )
        return int(result.scalar_one() or 0)

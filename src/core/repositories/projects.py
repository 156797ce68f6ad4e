from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.repositories.base import TenantRepository
from src.models.project import Project


class ProjectRepository(TenantRepository[Project]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session=session, model=Project)

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.config import settings
from src.core.db import get_session_factory
from src.core.quota.enforcer import QuotaEnforcer
from src.core.quota.releaser import QuotaReleaser
from src.core.quota.store import QuotaStore, SqlQuotaStore
from src.core.quota.tiers import TierCatalog, get_tier_catalog


def get_quota_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> QuotaStore:
    return SqlQuotaStore(session_factory)


def get_quota_enforcer(
    store: QuotaStore = Depends(get_quota_store),
    catalog: TierCatalog = Depends(get_tier_catalog),
) -> QuotaEnforcer:
    inactive = settings.quota_inactive_statuses() if settings.quota_block_inactive_tenants else set()
    return QuotaEnforcer(store, catalog, inactive_statuses=inactive)


def get_quota_releaser(store: QuotaStore = Depends(get_quota_store)) -> QuotaReleaser:
    return QuotaReleaser(store)

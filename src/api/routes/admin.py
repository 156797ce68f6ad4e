from __future__ import annotations

import logging

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.routes.billing import usage_status_response
from src.core.auth import AuthContext, require_super_admin
from src.core.config import settings
from src.core.db import get_db_session
from src.core.quota import TenantUsage, TierCatalog, build_usage_status, get_tier_catalog
from src.core.quota.enforcer import utc_now
from src.models.tenant import Tenant
from src.schemas.admin import SystemHealthResponse, TenantUsageSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/tenants/usage", response_model=list[TenantUsageSummary])
async def list_tenant_usage(
    _: AuthContext = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db_session),
    catalog: TierCatalog = Depends(get_tier_catalog),
) -> list[TenantUsageSummary]:
    tenants = (await session.scalars(select(Tenant).order_by(Tenant.created_at))).all()
    now = utc_now()
    return [
        TenantUsageSummary(
            tenant_id=str(tenant.id),
            clerk_org_id=tenant.clerk_org_id,
            company_name=tenant.company_name,
            usage=usage_status_response(
                build_usage_status(TenantUsage.from_tenant(tenant), catalog, now)
            ),
        )
        for tenant in tenants
    ]


@router.get("/system/health", response_model=SystemHealthResponse)
async def system_health(
    _: AuthContext = Depends(require_super_admin),
    session: AsyncSession = Depends(get_db_session),
) -> SystemHealthResponse:
    database_ok = True
    total_tenants = 0
    inactive_tenants = 0
    try:
        await session.execute(text("SELECT 1"))
        total_tenants = int(await session.scalar(select(func.count(Tenant.id))) or 0)
        inactive_tenants = int(
            await session.scalar(
                select(func.count(Tenant.id)).where(
                    Tenant.subscription_status.in_(sorted(settings.quota_inactive_statuses()))
                )
            )
            or 0
        )
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database_ok = False

    redis_ok = True
    redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        redis_ok = bool(await redis_client.ping())
    except (RedisError, OSError):
        logger.exception("Redis health check failed")
        redis_ok = False
    finally:
        await redis_client.aclose()

    status_value = "ok" if database_ok and redis_ok else "degraded"
    return SystemHealthResponse(
        status=status_value,
        database_ok=database_ok,
        redis_ok=redis_ok,
        total_tenants=total_tenants,
        inactive_tenants=inactive_tenants,
    )

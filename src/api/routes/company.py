from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, OrgClaims, require_auth_context, require_org_claims
from src.core.config import settings
from src.core.context import tenant_scope
from src.core.db import get_db_session
from src.core.quota import QuotaEnforcer, ResourceType, period_start
from src.core.quota.dependencies import get_quota_enforcer
from src.core.quota.enforcer import utc_now
from src.core.repositories.company_users import CompanyUserRepository
from src.models.tenant import Tenant
from src.schemas.billing import QuotaDeniedResponse
from src.schemas.company import CompanyRegisterRequest, CompanyResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/company", tags=["company"])


def _to_response(tenant: Tenant) -> CompanyResponse:
    return CompanyResponse(
        tenant_id=tenant.id,
        company_name=tenant.company_name,
        subscription_tier=tenant.subscription_tier,
        subscription_status=tenant.subscription_status,
        trial_ends_at=tenant.trial_ends_at,
    )


async def _discard_tenant(session: AsyncSession, tenant_id: UUID, org_id: str) -> None:
    await session.execute(delete(Tenant).where(Tenant.id == tenant_id))
    await session.commit()
    logger.warning("Discarded tenant=%s org=%s after founder setup failed", tenant_id, org_id)


@router.post(
    "/register",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": QuotaDeniedResponse}},
)
async def register_company(
    payload: CompanyRegisterRequest,
    identity: OrgClaims = Depends(require_org_claims),
    session: AsyncSession = Depends(get_db_session),
    enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
) -> CompanyResponse:
    admin_email = (payload.admin_email or identity.email or "").strip().lower()
    if not admin_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An admin email is required to register a company",
        )

    existing = await session.scalar(select(Tenant).where(Tenant.clerk_org_id == identity.org_id))
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Organization is already registered",
        )

    now = utc_now()
    tenant = Tenant(
        clerk_org_id=identity.org_id,
        company_name=payload.company_name.strip(),
        subscription_tier=settings.default_subscription_tier,
        subscription_status="trialing",
        trial_ends_at=now + timedelta(days=settings.trial_period_days),
        current_projects=0,
        current_users=0,
        current_month_expenses=0,
        expense_counter_reset_date=period_start(now),
    )
    session.add(tenant)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Organization is already registered",
        ) from exc

    tenant_id = tenant.id
    try:
        # The founder counts against the user limit like any invited member.
        decision = await enforcer.check_and_reserve(tenant_id, ResourceType.USER)
        decision.raise_for_denial()

        with tenant_scope(tenant_id):
            await CompanyUserRepository(session).create(
                email=admin_email,
                role="admin",
                status="active",
                clerk_user_id=identity.subject,
            )
            await session.commit()
    except Exception:
        # Without a founder the organization could never finish registering.
        await session.rollback()
        await _discard_tenant(session, tenant_id, identity.org_id)
        raise

    logger.info(
        "Registered company tenant=%s org=%s tier=%s",
        tenant.id,
        identity.org_id,
        tenant.subscription_tier,
    )
    return _to_response(tenant)


@router.get("", response_model=CompanyResponse)
async def get_company(
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> CompanyResponse:
    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return _to_response(tenant)

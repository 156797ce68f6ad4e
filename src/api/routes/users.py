from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_company_admin
from src.core.db import get_db_session
from src.core.quota import QuotaEnforcer, QuotaReleaser, ResourceType
from src.core.quota.dependencies import get_quota_enforcer, get_quota_releaser
from src.core.repositories.company_users import CompanyUserRepository
from src.schemas.billing import QuotaDeniedResponse
from src.schemas.resources import CompanyUserResponse, DeletedResponse, InvitationCreateRequest

router = APIRouter(prefix="/users", tags=["users"])


def _to_response(member) -> CompanyUserResponse:
    return CompanyUserResponse(
        id=member.id,
        email=member.email,
        role=member.role,
        status=member.status,
    )


@router.get("", response_model=list[CompanyUserResponse])
async def list_users(
    _: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[CompanyUserResponse]:
    members = await CompanyUserRepository(session).list()
    return [_to_response(member) for member in members]


@router.post(
    "/invitations",
    response_model=CompanyUserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": QuotaDeniedResponse}},
)
async def invite_user(
    payload: InvitationCreateRequest,
    auth: AuthContext = Depends(require_company_admin),
    session: AsyncSession = Depends(get_db_session),
    enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
    releaser: QuotaReleaser = Depends(get_quota_releaser),
) -> CompanyUserResponse:
    repository = CompanyUserRepository(session)
    email = payload.email.strip().lower()
    if await repository.get_by_email(email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member or has a pending invitation",
        )

    # Pending invitations hold a seat.
    decision = await enforcer.check_and_reserve(auth.tenant_id, ResourceType.USER)
    decision.raise_for_denial()

    try:
        member = await repository.create(email=email, role=payload.role, status="pending")
        await session.commit()
    except IntegrityError as exc:
        # A concurrent invite for the same email won the unique constraint.
        await session.rollback()
        await releaser.release(auth.tenant_id, ResourceType.USER)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member or has a pending invitation",
        ) from exc
    except Exception:
        await session.rollback()
        await releaser.release(auth.tenant_id, ResourceType.USER)
        raise
    return _to_response(member)


@router.delete("/{member_id}", response_model=DeletedResponse)
async def remove_user(
    member_id: UUID,
    auth: AuthContext = Depends(require_company_admin),
    session: AsyncSession = Depends(get_db_session),
    releaser: QuotaReleaser = Depends(get_quota_releaser),
) -> DeletedResponse:
    repository = CompanyUserRepository(session)
    member = await repository.get(member_id)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found in company",
        )
    if member.clerk_user_id is not None and member.clerk_user_id == auth.subject:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot remove yourself from the company",
        )
    if member.role == "admin" and member.status == "active":
        if await repository.count_active_admins() <= 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot remove the last admin",
            )

    deleted = await repository.delete(member_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found in company",
        )

    await session.commit()
    await releaser.release(auth.tenant_id, ResourceType.USER)
    return DeletedResponse(deleted=True, id=member_id)

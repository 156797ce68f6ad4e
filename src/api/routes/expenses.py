from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context
from src.core.db import get_db_session
from src.core.quota import QuotaEnforcer, QuotaReleaser, ResourceType
from src.core.quota.dependencies import get_quota_enforcer, get_quota_releaser
from src.core.repositories.expenses import ExpenseRepository
from src.core.repositories.projects import ProjectRepository
from src.schemas.billing import QuotaDeniedResponse
from src.schemas.resources import DeletedResponse, ExpenseCreateRequest, ExpenseResponse

router = APIRouter(prefix="/expenses", tags=["expenses"])


def _to_response(expense) -> ExpenseResponse:
    return ExpenseResponse(
        id=expense.id,
        project_id=expense.project_id,
        amount=expense.amount,
        description=expense.description,
        created_at=expense.created_at,
    )


@router.get("", response_model=list[ExpenseResponse])
async def list_expenses(
    project_id: UUID | None = Query(default=None),
    _: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[ExpenseResponse]:
    repository = ExpenseRepository(session)
    if project_id is None:
        expenses = await repository.list()
    else:
        expenses = await repository.list_for_project(project_id)
    return [_to_response(expense) for expense in expenses]


@router.post(
    "",
    response_model=ExpenseResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": QuotaDeniedResponse}},
)
async def create_expense(
    payload: ExpenseCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
    enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
    releaser: QuotaReleaser = Depends(get_quota_releaser),
) -> ExpenseResponse:
    project = await ProjectRepository(session).get(payload.project_id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    decision = await enforcer.check_and_reserve(auth.tenant_id, ResourceType.EXPENSE)
    decision.raise_for_denial()

    try:
        expense = await ExpenseRepository(session).create(
            project_id=payload.project_id,
            amount=payload.amount,
            description=payload.description,
            created_by=auth.subject,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        await releaser.release(auth.tenant_id, ResourceType.EXPENSE)
        raise
    return _to_response(expense)


@router.delete("/{expense_id}", response_model=DeletedResponse)
async def delete_expense(
    expense_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
    releaser: QuotaReleaser = Depends(get_quota_releaser),
) -> DeletedResponse:
    deleted = await ExpenseRepository(session).delete(expense_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expense not found",
        )

    await session.commit()
    await releaser.release(auth.tenant_id, ResourceType.EXPENSE)
    return DeletedResponse(deleted=True, id=expense_id)

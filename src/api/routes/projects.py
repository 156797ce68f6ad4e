from __future__ import annotations

import logging
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
from src.schemas.resources import DeletedResponse, ProjectCreateRequest, ProjectResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def _to_response(project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        created_at=project.created_at,
    )


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    _: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[ProjectResponse]:
    projects = await ProjectRepository(session).list()
    return [_to_response(project) for project in projects]


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": QuotaDeniedResponse}},
)
async def create_project(
    payload: ProjectCreateRequest,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
    enforcer: QuotaEnforcer = Depends(get_quota_enforcer),
    releaser: QuotaReleaser = Depends(get_quota_releaser),
) -> ProjectResponse:
    decision = await enforcer.check_and_reserve(auth.tenant_id, ResourceType.PROJECT)
    decision.raise_for_denial()

    try:
        project = await ProjectRepository(session).create(
            name=payload.name,
            description=payload.description,
        )
        await session.commit()
    except Exception:
        await session.rollback()
        await releaser.release(auth.tenant_id, ResourceType.PROJECT)
        raise
    return _to_response(project)


@router.delete(
    "/{project_id}",
    response_model=DeletedResponse,
    responses={409: {"description": "Project still has expenses and cascade was not requested"}},
)
async def delete_project(
    project_id: UUID,
    cascade: bool = Query(default=False),
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
    releaser: QuotaReleaser = Depends(get_quota_releaser),
) -> DeletedResponse:
    projects = ProjectRepository(session)
    project = await projects.get(project_id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    expenses = ExpenseRepository(session)
    expense_count = await expenses.count_for_project(project_id)
    if expense_count and not cascade:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f'Cannot delete project "{project.name}". It has {expense_count} associated expenses. '
                "Add ?cascade=true to delete the project and all its expenses."
            ),
        )

    removed_expenses = await expenses.delete_for_project(project_id) if expense_count else 0
    deleted = await projects.delete(project_id)
    if not deleted:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    await session.commit()
    await releaser.release(auth.tenant_id, ResourceType.PROJECT)
    if removed_expenses:
        # Cascaded expenses come off the monthly counter like single deletions.
        await releaser.release(auth.tenant_id, ResourceType.EXPENSE, removed_expenses)
        logger.info(
            "Deleted project with expenses tenant=%s project=%s expenses=%s",
            auth.tenant_id,
            project_id,
            removed_expenses,
        )
    return DeletedResponse(deleted=True, id=project_id)

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from fastapi import FastAPI, Request
from starlette import status
from starlette.responses import JSONResponse, Response

from src.core.context import tenant_scope
from src.core.quota.errors import LimitReachedError, StoreUnavailableError, TenantNotFoundError

logger = logging.getLogger(__name__)


async def tenant_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    tenant_header = request.headers.get("X-Tenant-Id")
    if not tenant_header:
        return await call_next(request)

    try:
        tenant_id = UUID(tenant_header)
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid X-Tenant-Id header"},
        )

    with tenant_scope(tenant_id):
        return await call_next(request)


async def limit_reached_handler(request: Request, exc: LimitReachedError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": exc.decision.payload()},
    )


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error(
        "Quota store unavailable tenant=%s resource=%s path=%s",
        exc.tenant_id,
        exc.resource,
        request.url.path,
        exc_info=exc.__cause__ or exc,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Quota service temporarily unavailable"},
        headers={"Retry-After": "1"},
    )


async def tenant_not_found_handler(request: Request, exc: TenantNotFoundError) -> JSONResponse:
    logger.warning("Quota check for missing tenant=%s path=%s", exc.tenant_id, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "Tenant not found"},
    )


def register_quota_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LimitReachedError, limit_reached_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)
    app.add_exception_handler(TenantNotFoundError, tenant_not_found_handler)

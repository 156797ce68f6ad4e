from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Final
from uuid import UUID

_CURRENT_TENANT_ID: Final[ContextVar[UUID | None]] = ContextVar(
    "current_tenant_id",
    default=None,
)


def set_current_tenant_id(tenant_id: UUID | None) -> Token:
    return _CURRENT_TENANT_ID.set(tenant_id)


def get_current_tenant_id() -> UUID | None:
    return _CURRENT_TENANT_ID.get()


def reset_current_tenant_id(token: Token) -> None:
    _CURRENT_TENANT_ID.reset(token)


@contextmanager
def tenant_scope(tenant_id: UUID) -> Iterator[UUID]:
    """Bind ``tenant_id`` for tenant-scoped repositories within the block."""
    token = set_current_tenant_id(tenant_id)
    try:
        yield tenant_id
    finally:
        reset_current_tenant_id(token)

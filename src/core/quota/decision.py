from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.core.quota.errors import InvalidResourceTypeError, LimitReachedError

LIMIT_REACHED = "LIMIT_REACHED"
SUBSCRIPTION_INACTIVE = "SUBSCRIPTION_INACTIVE"


class ResourceType(str, Enum):
    PROJECT = "project"
    USER = "user"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, value: str | ResourceType) -> ResourceType:
        if isinstance(value, ResourceType):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError as exc:
            raise InvalidResourceTypeError(f"Unknown resource type: {value!r}") from exc


@dataclass(slots=True, frozen=True)
class QuotaDecision:
    allowed: bool
    resource: ResourceType | None = None
    reason: str | None = None
    current_usage: int | None = None
    limit: int | None = None
    suggested_tier: str | None = None
    message: str | None = None

    @classmethod
    def allow(cls, resource: ResourceType) -> QuotaDecision:
        return cls(allowed=True, resource=resource)

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise LimitReachedError(self)

    def payload(self) -> dict[str, object]:
        return {
            "reason": self.reason,
            "message": self.message,
            "resource": self.resource.value if self.resource else None,
            "current_usage": self.current_usage,
            "limit": self.limit,
            "suggested_tier": self.suggested_tier,
        }

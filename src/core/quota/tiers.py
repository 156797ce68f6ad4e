from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from src.core.config import settings
from src.core.quota.decision import ResourceType
from src.core.quota.errors import UnknownTierError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Limited:
    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"Limit must be non-negative, got {self.value}")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(slots=True, frozen=True)
class Unlimited:
    def __str__(self) -> str:
        return "unlimited"


UNLIMITED = Unlimited()

Limit = Limited | Unlimited


def parse_limit(raw: object) -> Limit:
    """Read a limit from configuration: ``null`` or ``"unlimited"`` mean no ceiling."""
    if raw is None or (isinstance(raw, str) and raw.strip().lower() == "unlimited"):
        return UNLIMITED
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"Invalid limit value: {raw!r}")
    return Limited(raw)


def is_unlimited(limit: Limit) -> bool:
    return isinstance(limit, Unlimited)


def _limit_to_json(limit: Limit) -> int | None:
    return None if isinstance(limit, Unlimited) else limit.value


@dataclass(slots=True, frozen=True)
class TierLimits:
    name: str
    display_name: str
    max_projects: Limit
    max_users: Limit
    max_expenses_per_month: Limit
    next_tier: str | None = None
    price: Decimal = Decimal("0")
    currency: str = "ILS"

    def limit_for(self, resource: ResourceType) -> Limit:
        if resource is ResourceType.PROJECT:
            return self.max_projects
        if resource is ResourceType.USER:
            return self.max_users
        return self.max_expenses_per_month

    def restrictiveness(self) -> float:
        total = 0.0
        for limit in (self.max_projects, self.max_users, self.max_expenses_per_month):
            total += math.inf if isinstance(limit, Unlimited) else limit.value
        return total

    def payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "max_projects": _limit_to_json(self.max_projects),
            "max_users": _limit_to_json(self.max_users),
            "max_expenses_per_month": _limit_to_json(self.max_expenses_per_month),
            "next_tier": self.next_tier,
            "price": str(self.price),
            "currency": self.currency,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TierLimits:
        name = str(data["name"]).strip().lower()
        next_tier = data.get("next_tier")
        return cls(
            name=name,
            display_name=str(data.get("display_name") or name.title()),
            max_projects=parse_limit(data.get("max_projects")),
            max_users=parse_limit(data.get("max_users")),
            max_expenses_per_month=parse_limit(data.get("max_expenses_per_month")),
            next_tier=str(next_tier).strip().lower() if next_tier else None,
            price=Decimal(str(data.get("price", "0"))),
            currency=str(data.get("currency", "ILS")),
        )


# Canonical table. Which of the historical tier tables is authoritative is a
# pending product decision; this one matches the limits the API enforced.
DEFAULT_TIERS: tuple[TierLimits, ...] = (
    TierLimits(
        name="trial",
        display_name="Trial",
        max_projects=Limited(3),
        max_users=Limited(1),
        max_expenses_per_month=Limited(50),
        next_tier="starter",
    ),
    TierLimits(
        name="starter",
        display_name="Starter",
        max_projects=Limited(3),
        max_users=Limited(1),
        max_expenses_per_month=Limited(50),
        next_tier="professional",
        price=Decimal("49.99"),
    ),
    TierLimits(
        name="professional",
        display_name="Professional",
        max_projects=Limited(10),
        max_users=Limited(3),
        max_expenses_per_month=UNLIMITED,
        next_tier="enterprise",
        price=Decimal("99.99"),
    ),
    TierLimits(
        name="enterprise",
        display_name="Enterprise",
        max_projects=UNLIMITED,
        max_users=Limited(10),
        max_expenses_per_month=UNLIMITED,
        next_tier=None,
        price=Decimal("149.99"),
    ),
)


class TierCatalog:
    def __init__(
        self,
        tiers: Iterable[TierLimits],
        price_tier_map: Mapping[str, str] | None = None,
    ) -> None:
        self._tiers: dict[str, TierLimits] = {}
        for tier in tiers:
            if tier.name in self._tiers:
                raise ValueError(f"Duplicate tier in catalog: {tier.name}")
            self._tiers[tier.name] = tier
        if not self._tiers:
            raise ValueError("Tier catalog must define at least one tier")

        for tier in self._tiers.values():
            if tier.next_tier is not None and tier.next_tier not in self._tiers:
                raise ValueError(f"Tier {tier.name} points to unknown next tier {tier.next_tier}")

        self._price_tier_map = {
            price_id: tier_name.strip().lower()
            for price_id, tier_name in (price_tier_map or {}).items()
        }
        # min() keeps the first of equally restrictive tiers, i.e. catalog order.
        self._most_restrictive = min(self._tiers.values(), key=lambda tier: tier.restrictiveness())

    @classmethod
    def from_settings(cls) -> TierCatalog:
        raw_tiers = settings.quota_tiers()
        tiers = DEFAULT_TIERS if raw_tiers is None else [TierLimits.from_dict(item) for item in raw_tiers]
        return cls(tiers, price_tier_map=settings.quota_price_tier_map())

    @property
    def most_restrictive(self) -> TierLimits:
        return self._most_restrictive

    def tiers(self) -> list[TierLimits]:
        return list(self._tiers.values())

    def lookup(self, tier_name: str | None) -> TierLimits:
        normalized = (tier_name or "").strip().lower()
        tier = self._tiers.get(normalized)
        if tier is None:
            raise UnknownTierError(tier_name or "")
        return tier

    def get_limits(self, tier_name: str | None) -> TierLimits:
        try:
            return self.lookup(tier_name)
        except UnknownTierError as exc:
            logger.error(
                "Tier catalog misconfiguration: %s; falling back to tier=%s",
                exc,
                self._most_restrictive.name,
            )
            return self._most_restrictive

    def suggested_upgrade(self, tier_name: str | None) -> str | None:
        normalized = (tier_name or "").strip().lower()
        tier = self._tiers.get(normalized)
        if tier is None:
            return self._most_restrictive.next_tier
        return tier.next_tier

    def tier_for_price(self, price_id: str | None) -> str | None:
        if not price_id:
            return None
        return self._price_tier_map.get(price_id)


class UpgradeAdvisor:
    def __init__(self, catalog: TierCatalog) -> None:
        self.catalog = catalog

    def suggest(self, tier_name: str | None) -> str | None:
        return self.catalog.suggested_upgrade(tier_name)


@lru_cache(maxsize=1)
def get_tier_catalog() -> TierCatalog:
    return TierCatalog.from_settings()

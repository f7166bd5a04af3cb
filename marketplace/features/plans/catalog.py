"""
marketplace/features/plans/catalog.py

Generic, read-only plan catalog.

A catalog is built from a fixed list of templates, one per (tier, cadence),
each naming the settings key that holds its Stripe price id. Templates whose
price id is unset are skipped and reported in missing_config; lookups never
fail because of them.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from marketplace.core.errors import AppError
from marketplace.models.plan import Plan


PlanT = TypeVar("PlanT", bound=Plan)

PriceLookup = Callable[[str], Optional[str]]


class CatalogConfigError(AppError):
    """Two plans share a price id or a plan key."""
    code = "catalog_config_error"
    status_code = 500


@dataclass(frozen=True)
class PlanTemplate:
    """Everything about a plan except its configured price id."""
    env_key: str
    attributes: Mapping[str, Any]


class PlanCatalog(Generic[PlanT]):
    __slots__ = ("_plans", "_by_key", "_by_price_id", "_missing_config")

    def __init__(self, plans: Iterable[PlanT], missing_config: Iterable[str] = ()):
        by_key = {}
        by_price_id = {}
        for plan in plans:
            if plan.plan_key in by_key:
                raise CatalogConfigError(f"Duplicate plan key: {plan.plan_key}")
            if plan.price_id in by_price_id:
                other = by_price_id[plan.price_id]
                raise CatalogConfigError(
                    f"Price id configured for both {other.plan_key} and {plan.plan_key}"
                )
            by_key[plan.plan_key] = plan
            by_price_id[plan.price_id] = plan

        self._plans: Tuple[PlanT, ...] = tuple(by_key.values())
        self._by_key = MappingProxyType(by_key)
        self._by_price_id = MappingProxyType(by_price_id)
        self._missing_config: Tuple[str, ...] = tuple(missing_config)

    @classmethod
    def build(
        cls,
        plan_type: Type[PlanT],
        templates: Iterable[PlanTemplate],
        price_lookup: PriceLookup,
    ) -> "PlanCatalog[PlanT]":
        plans = []
        missing = []
        for template in templates:
            price_id = (price_lookup(template.env_key) or "").strip()
            if not price_id:
                missing.append(template.env_key)
                continue
            plans.append(
                plan_type(price_id=price_id, env_key=template.env_key, **template.attributes)
            )
        return cls(plans, missing)

    @property
    def plans(self) -> Tuple[PlanT, ...]:
        return self._plans

    @property
    def missing_config(self) -> Tuple[str, ...]:
        return self._missing_config

    @property
    def is_empty(self) -> bool:
        return not self._plans

    def get_plan_by_key(self, plan_key: Optional[str]) -> Optional[PlanT]:
        if not plan_key:
            return None
        return self._by_key.get(plan_key)

    def get_plan_by_price_id(self, price_id: Optional[str]) -> Optional[PlanT]:
        if not price_id:
            return None
        return self._by_price_id.get(price_id)

    def __len__(self) -> int:
        return len(self._plans)

    def __iter__(self):
        return iter(self._plans)


def settings_price_lookup(settings_obj) -> PriceLookup:
    """Read price ids from a Settings object by field name."""
    return lambda env_key: getattr(settings_obj, env_key, None)

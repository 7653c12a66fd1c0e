"""Plan catalog and renewal-date arithmetic."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import InvalidPlanError


class PlanInterval(str, Enum):
    """Billing interval units understood by Stripe recurring prices."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


MONTHLY_PLAN_NAME = "Plano Personalizado"
QUARTERLY_PLAN_NAME = "Plano Trimestral"
ANNUAL_PLAN_NAME = "Plano Anual"

# Checkout completion always schedules the first renewal this many months out;
# the following invoice.paid event moves it to the plan's real interval.
CHECKOUT_RENEWAL_MONTHS = 3


@dataclass(frozen=True)
class ResolvedPlan:
    """Internal plan name plus the rule that derives its next renewal date."""

    plan_name: str
    interval_unit: PlanInterval
    interval_count: int

    def renewal_rule(self, start: datetime) -> datetime:
        return add_interval(start, self.interval_unit, self.interval_count)


@dataclass(frozen=True)
class CatalogEntry:
    """A plan customers can buy through a checkout session."""

    plan_id: str
    display_name: str
    price_amount_minor_units: int
    currency: str
    interval_unit: PlanInterval
    interval_count: int

    def recurring(self) -> Dict[str, Any]:
        return {
            "interval": self.interval_unit.value,
            "interval_count": self.interval_count,
        }


CATALOG: Dict[str, CatalogEntry] = {
    "trimestral": CatalogEntry(
        plan_id="trimestral",
        display_name=QUARTERLY_PLAN_NAME,
        price_amount_minor_units=7500,
        currency="brl",
        interval_unit=PlanInterval.MONTH,
        interval_count=3,
    ),
    "anual": CatalogEntry(
        plan_id="anual",
        display_name=ANNUAL_PLAN_NAME,
        price_amount_minor_units=18000,
        currency="brl",
        interval_unit=PlanInterval.YEAR,
        interval_count=1,
    ),
}

_KNOWN_PLANS = {
    (PlanInterval.MONTH, 1): MONTHLY_PLAN_NAME,
    (PlanInterval.MONTH, 3): QUARTERLY_PLAN_NAME,
    (PlanInterval.YEAR, 1): ANNUAL_PLAN_NAME,
}


def resolve(interval_unit: Any, interval_count: Any) -> ResolvedPlan:
    """Map a Stripe plan interval to an internal plan name and renewal rule."""

    unit = normalize_interval(interval_unit)
    count = _coerce_count(interval_count)
    name = _KNOWN_PLANS.get((unit, count))
    if name is None:
        name = f"{MONTHLY_PLAN_NAME} ({count} {unit.value})"
    return ResolvedPlan(plan_name=name, interval_unit=unit, interval_count=count)


def resolve_by_catalog_id(plan_id: Optional[str]) -> CatalogEntry:
    key = (plan_id or "").strip().lower()
    entry = CATALOG.get(key)
    if entry is None:
        raise InvalidPlanError(f"Unknown plan: {plan_id!r}")
    return entry


def checkout_renewal(start: datetime) -> datetime:
    return add_interval(start, PlanInterval.MONTH, CHECKOUT_RENEWAL_MONTHS)


def normalize_interval(value: Any) -> PlanInterval:
    if isinstance(value, PlanInterval):
        return value
    candidate = str(value or "").strip().lower()
    aliases = {
        "daily": PlanInterval.DAY,
        "days": PlanInterval.DAY,
        "weekly": PlanInterval.WEEK,
        "weeks": PlanInterval.WEEK,
        "monthly": PlanInterval.MONTH,
        "months": PlanInterval.MONTH,
        "yearly": PlanInterval.YEAR,
        "annual": PlanInterval.YEAR,
        "years": PlanInterval.YEAR,
    }
    try:
        return PlanInterval(candidate)
    except ValueError:
        if candidate in aliases:
            return aliases[candidate]
    raise InvalidPlanError(f"Unsupported billing interval: {value!r}")


def add_interval(start: datetime, unit: PlanInterval, count: int) -> datetime:
    """Advance ``start`` by ``count`` units, clamping to the end of short months."""

    if unit == PlanInterval.DAY:
        return start + timedelta(days=count)
    if unit == PlanInterval.WEEK:
        return start + timedelta(weeks=count)
    if unit == PlanInterval.YEAR:
        return _add_months(start, 12 * count)
    return _add_months(start, count)


def _add_months(start: datetime, months: int) -> datetime:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def _coerce_count(value: Any) -> int:
    if value in (None, ""):
        return 1
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidPlanError(f"Invalid interval count: {value!r}") from exc
    if count < 1:
        raise InvalidPlanError(f"Invalid interval count: {value!r}")
    return count


__all__ = [
    "ANNUAL_PLAN_NAME",
    "CATALOG",
    "CHECKOUT_RENEWAL_MONTHS",
    "CatalogEntry",
    "MONTHLY_PLAN_NAME",
    "PlanInterval",
    "QUARTERLY_PLAN_NAME",
    "ResolvedPlan",
    "add_interval",
    "checkout_renewal",
    "normalize_interval",
    "resolve",
    "resolve_by_catalog_id",
]

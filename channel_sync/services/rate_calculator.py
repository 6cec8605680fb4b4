"""Sellable nightly rate calculation from a channel rate plan."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from ..core.config import settings

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

# Friday and Saturday with Monday=0
DEFAULT_WEEKEND_DAYS = (4, 5)


def _to_decimal(value: Any) -> Decimal:
    """Convert a stored amount to Decimal; anything unusable counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _field(plan: Any, name: str) -> Any:
    if isinstance(plan, dict):
        return plan.get(name)
    return getattr(plan, name, None)


def _seasonal_entries(raw: Any) -> Iterable[tuple[Any, Any, Any]]:
    """
    Yield (start, end, rate) from a seasonal table in stored order.

    Accepts the list form ``[{"start_date", "end_date", "rate"}]`` and the
    legacy mapping form ``{"YYYY-MM-DD_YYYY-MM-DD": {"rate": ...}}``.
    """
    if isinstance(raw, dict):
        for key, info in raw.items():
            start, _, end = str(key).partition("_")
            rate = info.get("rate") if isinstance(info, dict) else info
            yield start, end, rate
    elif isinstance(raw, (list, tuple)):
        for entry in raw:
            if isinstance(entry, dict):
                yield entry.get("start_date"), entry.get("end_date"), entry.get("rate")
            else:
                yield (
                    getattr(entry, "start_date", None),
                    getattr(entry, "end_date", None),
                    getattr(entry, "rate", None),
                )


class RateCalculator:
    """
    Computes the sellable rate of a rate plan on a given date.

    The calculation has no side effects and never raises for malformed plan
    data; missing or unparseable fields contribute nothing.

    Steps, in order: base rate, weekend surcharge, seasonal override (the
    first entry whose inclusive range contains the date replaces the running
    rate), discount/markup percentage, then half-up rounding to cents. The
    result is never negative.
    """

    def __init__(self, weekend_days: Optional[Iterable[int]] = None):
        if weekend_days is None:
            weekend_days = settings.weekend_days or DEFAULT_WEEKEND_DAYS
        self.weekend_days = frozenset(weekend_days)

    def is_weekend(self, day: date) -> bool:
        return day.weekday() in self.weekend_days

    def seasonal_override(self, plan: Any, day: date) -> Optional[Decimal]:
        """Return the override rate of the first seasonal entry covering ``day``."""
        for start_raw, end_raw, rate_raw in _seasonal_entries(_field(plan, "seasonal_rates")):
            start = _to_date(start_raw)
            end = _to_date(end_raw)
            if start is None or end is None or rate_raw is None:
                continue
            if start <= day <= end:
                return _to_decimal(rate_raw)
        return None

    def calculate_rate(self, plan: Any, day: date) -> Decimal:
        """
        Calculate the nightly sell rate for ``plan`` on ``day``.

        Args:
            plan: RatePlan model or mapping with the same field names
            day: Calendar date being priced

        Returns:
            Decimal: Non-negative rate rounded to two decimal places
        """
        rate = _to_decimal(_field(plan, "base_rate"))

        if self.is_weekend(day):
            rate += _to_decimal(_field(plan, "weekend_surcharge"))

        override = self.seasonal_override(plan, day)
        if override is not None:
            rate = override

        percentage = _to_decimal(_field(plan, "discount_percentage"))
        rate = rate * (1 + percentage / 100)

        rate = rate.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        return max(rate, ZERO.quantize(TWO_PLACES))

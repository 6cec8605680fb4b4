"""Property-based tests for rate calculation invariants."""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from channel_sync.services.rate_calculator import RateCalculator

# Strategies for generating plan data
amounts = st.decimals(min_value=0, max_value=100000, places=2, allow_nan=False, allow_infinity=False)
percentages = st.decimals(min_value=-200, max_value=500, places=2, allow_nan=False, allow_infinity=False)
days = st.dates(min_value=date(2024, 1, 1), max_value=date(2027, 12, 31))
junk = st.one_of(st.none(), st.text(alphabet="abcxyz -", max_size=10), st.booleans(), st.lists(st.integers(), max_size=3))

calculator = RateCalculator(weekend_days=(4, 5))


@given(base=amounts, surcharge=amounts, percentage=percentages, day=days)
def test_rate_is_non_negative_and_in_cents(base, surcharge, percentage, day):
    """Any plan yields a non-negative rate with exactly two decimal places."""
    plan = {"base_rate": base, "weekend_surcharge": surcharge, "discount_percentage": percentage}

    rate = calculator.calculate_rate(plan, day)

    assert rate >= 0
    assert rate == rate.quantize(Decimal("0.01"))


@given(base=amounts, day=days)
def test_plain_plan_returns_base_rate(base, day):
    """Without surcharge, seasons or percentage the rate is the base rate."""
    plan = {"base_rate": base, "weekend_surcharge": Decimal("0"), "discount_percentage": Decimal("0")}

    assert calculator.calculate_rate(plan, day) == base.quantize(Decimal("0.01"))


@given(base=amounts, surcharge=amounts, percentage=percentages, day=days, noise=junk)
def test_malformed_seasonal_table_never_raises(base, surcharge, percentage, day, noise):
    plan = {
        "base_rate": base,
        "weekend_surcharge": surcharge,
        "discount_percentage": percentage,
        "seasonal_rates": [noise, {"start_date": noise, "end_date": noise, "rate": noise}],
    }
    reference = dict(plan, seasonal_rates=[])

    assert calculator.calculate_rate(plan, day) == calculator.calculate_rate(reference, day)


@given(
    base=amounts,
    season_rate=amounts,
    start=days,
    length=st.integers(min_value=0, max_value=60),
    offset=st.integers(min_value=0, max_value=60),
)
def test_day_inside_season_gets_season_rate(base, season_rate, start, length, offset):
    end = start + timedelta(days=length)
    day = start + timedelta(days=min(offset, length))
    plan = {
        "base_rate": base,
        "weekend_surcharge": Decimal("250"),
        "discount_percentage": Decimal("0"),
        "seasonal_rates": [
            {"start_date": start.isoformat(), "end_date": end.isoformat(), "rate": str(season_rate)}
        ],
    }

    assert calculator.calculate_rate(plan, day) == season_rate.quantize(Decimal("0.01"))


@given(base=amounts, surcharge=amounts, day=days)
def test_surcharge_only_on_weekend_days(base, surcharge, day):
    plan = {"base_rate": base, "weekend_surcharge": surcharge, "discount_percentage": Decimal("0")}
    rate = calculator.calculate_rate(plan, day)

    if calculator.is_weekend(day):
        assert rate == (base + surcharge).quantize(Decimal("0.01"))
    else:
        assert rate == base.quantize(Decimal("0.01"))

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from timekeeping.core.exceptions import ValidationError
from timekeeping.time_entries.calculator import TieredHoursCalculator, calculate_hours

START = datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)


def _span(**kwargs):
    return START, START + timedelta(**kwargs)


def test_regular_only_up_to_eight_hours():
    h = calculate_hours(*_span(hours=9), break_minutes=60)
    assert h.regular == Decimal("8.00")
    assert h.overtime == Decimal("0.00")
    assert h.double_time == Decimal("0.00")
    assert h.total == Decimal("8.00")


def test_overtime_between_eight_and_twelve():
    h = calculate_hours(*_span(hours=10, minutes=30))
    assert (h.regular, h.overtime, h.double_time) == (Decimal("8.00"), Decimal("2.50"), Decimal("0.00"))


def test_double_time_beyond_twelve():
    h = calculate_hours(*_span(hours=14))
    assert (h.regular, h.overtime, h.double_time) == (Decimal("8.00"), Decimal("4.00"), Decimal("2.00"))
    assert h.total == Decimal("14.00")


def test_break_longer_than_span_floors_at_zero():
    h = calculate_hours(*_span(minutes=30), break_minutes=60)
    assert h.total == Decimal("0.00")


def test_clock_out_before_clock_in_is_rejected():
    with pytest.raises(ValidationError):
        calculate_hours(START, START - timedelta(minutes=1))


def test_negative_break_is_rejected():
    with pytest.raises(ValidationError):
        calculate_hours(*_span(hours=1), break_minutes=-5)


def test_net_is_rounded_half_up_before_tiering():
    # 8h 20s -> 8.0056 -> 8.01
    h = calculate_hours(*_span(hours=8, seconds=20))
    assert h.regular == Decimal("8.00")
    assert h.overtime == Decimal("0.01")
    assert h.total == Decimal("8.01")


@pytest.mark.parametrize("minutes", [1, 7, 29, 481, 500, 719, 721, 777, 1001])
def test_components_always_sum_to_total(minutes):
    h = calculate_hours(*_span(minutes=minutes), break_minutes=3)
    assert h.regular + h.overtime + h.double_time == h.total
    assert h.billable + h.non_billable == h.total


def test_billable_only_with_project():
    with_project = calculate_hours(*_span(hours=8), has_project=True)
    without = calculate_hours(*_span(hours=8))
    assert with_project.billable == Decimal("8.00") and with_project.non_billable == Decimal("0.00")
    assert without.billable == Decimal("0.00") and without.non_billable == Decimal("8.00")


def test_dst_change_counts_elapsed_time():
    zone = ZoneInfo("America/New_York")
    # 2025-03-09: clocks jump from 02:00 to 03:00
    clock_in = datetime(2025, 3, 9, 0, 0, tzinfo=zone)
    clock_out = datetime(2025, 3, 9, 9, 0, tzinfo=zone)
    assert calculate_hours(clock_in, clock_out).total == Decimal("8.00")


def test_custom_tier_limits():
    calc = TieredHoursCalculator(regular_limit=Decimal("7.5"), overtime_limit=Decimal("10"))
    h = calc.calculate(*_span(hours=11))
    assert (h.regular, h.overtime, h.double_time) == (Decimal("7.50"), Decimal("2.50"), Decimal("1.00"))


def test_invalid_tier_limits():
    with pytest.raises(ValueError):
        TieredHoursCalculator(regular_limit=Decimal("10"), overtime_limit=Decimal("8"))

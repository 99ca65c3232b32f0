from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from ...core.constants import HOURS_PRECISION, OVERTIME_HOURS_LIMIT, REGULAR_HOURS_LIMIT
from ...core.exceptions import ValidationError
from ..model import ZERO, HoursBreakdown
from .base import HoursCalculator

_SECONDS_PER_HOUR = Decimal(3600)


def _round(value: Decimal) -> Decimal:
    return value.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def _as_utc(value: datetime) -> datetime:
    # Same-tzinfo subtraction ignores DST offsets; compare instants instead.
    return value.astimezone(timezone.utc) if value.tzinfo else value


class TieredHoursCalculator(HoursCalculator):
    """Standard rule: first 8h regular, next 4h overtime, the rest double time.

    Net hours ((out - in) - break, floored at 0) are rounded half-up to 2 dp
    before tiering, each tier is rounded on its own, and the total is the sum
    of the rounded tiers. Timezones only matter through the aware timestamps.
    """

    def __init__(
        self,
        *,
        regular_limit: Decimal = REGULAR_HOURS_LIMIT,
        overtime_limit: Decimal = OVERTIME_HOURS_LIMIT,
    ):
        if not Decimal(0) < regular_limit <= overtime_limit:
            raise ValueError("Tier limits must satisfy 0 < regular <= overtime")
        self._regular_limit = regular_limit
        self._overtime_limit = overtime_limit

    def net_hours(self, clock_in: datetime, clock_out: datetime, break_minutes: int = 0) -> Decimal:
        if clock_out < clock_in:
            raise ValidationError("Clock-out cannot be before clock-in")
        if break_minutes < 0:
            raise ValidationError("Break minutes cannot be negative")

        seconds = Decimal(int((_as_utc(clock_out) - _as_utc(clock_in)).total_seconds()))
        seconds -= Decimal(int(break_minutes) * 60)
        return _round(max(seconds, Decimal(0)) / _SECONDS_PER_HOUR)

    def calculate(
        self,
        clock_in: datetime,
        clock_out: datetime,
        break_minutes: int = 0,
        *,
        has_project: bool = False,
    ) -> HoursBreakdown:
        net = self.net_hours(clock_in, clock_out, break_minutes)

        if net <= self._regular_limit:
            regular, overtime, double_time = net, ZERO, ZERO
        elif net <= self._overtime_limit:
            regular, overtime, double_time = self._regular_limit, net - self._regular_limit, ZERO
        else:
            regular = self._regular_limit
            overtime = self._overtime_limit - self._regular_limit
            double_time = net - self._overtime_limit

        regular, overtime, double_time = _round(regular), _round(overtime), _round(double_time)
        total = regular + overtime + double_time
        return HoursBreakdown(
            regular=regular,
            overtime=overtime,
            double_time=double_time,
            billable=total if has_project else ZERO,
            non_billable=ZERO if has_project else total,
        )


_default = TieredHoursCalculator()


def calculate_hours(
    clock_in: datetime,
    clock_out: datetime,
    break_minutes: int = 0,
    *,
    has_project: bool = False,
) -> HoursBreakdown:
    return _default.calculate(clock_in, clock_out, break_minutes, has_project=has_project)

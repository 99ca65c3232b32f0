from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal
from typing import FrozenSet, Optional

from ..common.datetime_utils import resolve_zone
from ..core.constants import DEFAULT_HOURS_PER_DAY, DEFAULT_TIMEZONE, DEFAULT_WORK_DAYS
from ..core.enums import ProcessingMode, Role
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class WorkSchedule:
    """Daily schedule used to synthesize auto-generated entries.

    ``work_days`` holds Python weekday numbers (Monday=0 ... Sunday=6).
    """

    start_time: time
    end_time: time
    hours_per_day: Decimal = DEFAULT_HOURS_PER_DAY
    work_days: FrozenSet[int] = field(default_factory=lambda: DEFAULT_WORK_DAYS)
    timezone: str = DEFAULT_TIMEZONE

    @property
    def span_minutes(self) -> int:
        start = datetime.combine(datetime.min.date(), self.start_time)
        end = datetime.combine(datetime.min.date(), self.end_time)
        return int((end - start).total_seconds() // 60)

    def validate(self) -> "WorkSchedule":
        if self.span_minutes <= 0:
            raise ValidationError("Schedule end time must be after start time")
        if self.hours_per_day <= 0:
            raise ValidationError("Hours per day must be positive")
        if self.hours_per_day * 60 > self.span_minutes:
            raise ValidationError("Hours per day exceed the scheduled span")
        if not self.work_days or any(d not in range(7) for d in self.work_days):
            raise ValidationError("Work days must be weekday numbers 0-6")
        resolve_zone(self.timezone)
        return self

    def break_minutes(self, clock_in: datetime, clock_out: datetime) -> int:
        """Unpaid time between two instants once ``hours_per_day`` is worked.

        Measured on the elapsed interval, so a day that gains or loses an hour
        to a DST switch still yields ``hours_per_day`` worked.
        """
        elapsed = int((clock_out - clock_in).total_seconds() // 60)
        return max(elapsed - int(self.hours_per_day * 60), 0)


@dataclass(frozen=True)
class AutoClockingProfile:
    enabled: bool
    processing_mode: ProcessingMode
    schedule: Optional[WorkSchedule]
    requires_approval: bool = True


@dataclass(frozen=True)
class Contractor:
    """Domain entity: a contractor and its auto-clocking configuration."""

    contractor_id: int
    tenant_id: int
    full_name: str
    email: Optional[str] = None
    role: Role = Role.CONTRACTOR
    is_active: bool = True
    default_project_rate: Decimal = Decimal("0")
    auto_clocking: Optional[AutoClockingProfile] = None

    @property
    def auto_clocking_enabled(self) -> bool:
        return bool(self.is_active and self.auto_clocking and self.auto_clocking.enabled)

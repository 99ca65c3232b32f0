from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from ..common.datetime_utils import Clock, parse_hhmm
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


@dataclass(frozen=True)
class TriggerTime:
    """Wall-clock time a trigger fires, daily or on one weekday (Monday=0)."""

    at: time
    weekday: Optional[int] = None

    @classmethod
    def parse(cls, value: str) -> "TriggerTime":
        """Parse ``"HH:MM"`` (daily) or ``"FRI 23:00"`` (weekly)."""
        parts = (value or "").strip().upper().split()
        if len(parts) == 1:
            return cls(at=parse_hhmm(parts[0]))
        if len(parts) == 2 and parts[0] in _WEEKDAYS:
            return cls(at=parse_hhmm(parts[1]), weekday=_WEEKDAYS.index(parts[0]))
        raise ValidationError(f"Invalid trigger time {value!r}")

    def next_after(self, moment: datetime, zone: ZoneInfo) -> datetime:
        """First firing strictly after ``moment``.

        Candidates are compared as UTC instants so a repeated wall-clock hour
        on a fall-back night is ordered correctly.
        """
        instant = moment.astimezone(timezone.utc)
        day: date = moment.astimezone(zone).date()
        for offset in range(8):
            candidate_day = day + timedelta(days=offset)
            if self.weekday is not None and candidate_day.weekday() != self.weekday:
                continue
            candidate = datetime.combine(candidate_day, self.at, tzinfo=zone)
            if candidate.astimezone(timezone.utc) > instant:
                return candidate
        raise RuntimeError("No trigger time found within a week")


class RecurringTrigger:
    """Background loop that calls ``action`` every time ``when`` comes around.

    The loop waits on an event so ``stop()`` interrupts the sleep.
    """

    def __init__(
        self,
        name: str,
        when: TriggerTime,
        action: Callable[[], object],
        *,
        clock: Clock,
        zone: ZoneInfo,
    ):
        self.name = name
        self.when = when
        self._action = action
        self._clock = clock
        self._zone = zone
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_run_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return bool(self._thread and self._thread.is_alive() and not self._stop.is_set())

    def next_run_at(self) -> datetime:
        return self.when.next_after(self._clock.now(), self._zone)

    def start(self) -> None:
        if self.is_active:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"autoclock-{self.name}", daemon=True)
        self._thread.start()
        logger.info("Started auto-clocking trigger: %s (next run %s)", self.name, self.next_run_at().isoformat())

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        logger.info("Stopped auto-clocking trigger: %s", self.name)

    def fire(self) -> None:
        """Run the action once; errors are logged and kept for health reporting."""
        self.last_run_at = self._clock.now()
        try:
            self._action()
            self.last_error = None
        except Exception as e:
            self.last_error = str(e)
            logger.exception("Auto-clocking trigger %s failed", self.name)

    def _loop(self) -> None:
        while not self._stop.is_set():
            next_run = self.next_run_at()
            delay = max((next_run - self._clock.now()).total_seconds(), 0.0)
            if self._stop.wait(timeout=delay):
                break
            self.fire()

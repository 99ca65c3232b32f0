from __future__ import annotations

from datetime import date
from typing import Sequence

from ...core.enums import ProcessingMode
from .base import ProcessingStrategy


class ProactiveStrategy(ProcessingStrategy):
    """Runs at the start of the day for that same day."""

    mode = ProcessingMode.PROACTIVE

    def target_dates(self, *, today: date) -> Sequence[date]:
        return [today]

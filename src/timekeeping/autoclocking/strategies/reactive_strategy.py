from __future__ import annotations

from datetime import date
from typing import Sequence

from ...core.enums import ProcessingMode
from .base import ProcessingStrategy


class ReactiveStrategy(ProcessingStrategy):
    """Runs near the end of the day for that same day.

    A manual entry clocked earlier that day does not block generation.
    """

    mode = ProcessingMode.REACTIVE

    def target_dates(self, *, today: date) -> Sequence[date]:
        return [today]

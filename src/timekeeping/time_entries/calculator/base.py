from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..model import HoursBreakdown


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for hour tiers)."""

    @abstractmethod
    def calculate(
        self,
        clock_in: datetime,
        clock_out: datetime,
        break_minutes: int = 0,
        *,
        has_project: bool = False,
    ) -> HoursBreakdown:
        raise NotImplementedError

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Sequence

from ...core.enums import ProcessingMode


class ProcessingStrategy(ABC):
    """Strategy Pattern: which dates one trigger cycle materializes for a mode."""

    mode: ProcessingMode

    @abstractmethod
    def target_dates(self, *, today: date) -> Sequence[date]:
        raise NotImplementedError

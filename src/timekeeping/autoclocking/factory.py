from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import ProcessingMode
from .strategies.base import ProcessingStrategy
from .strategies.proactive_strategy import ProactiveStrategy
from .strategies.reactive_strategy import ReactiveStrategy
from .strategies.weekly_batch_strategy import WeeklyBatchStrategy


@dataclass
class ProcessingStrategyFactory:
    """Factory Pattern: choose the strategy for a contractor's processing mode."""

    def for_mode(self, mode: ProcessingMode) -> ProcessingStrategy:
        if mode == ProcessingMode.PROACTIVE:
            return ProactiveStrategy()
        if mode == ProcessingMode.REACTIVE:
            return ReactiveStrategy()
        if mode == ProcessingMode.WEEKLY_BATCH:
            return WeeklyBatchStrategy()
        raise ValueError(f"Unsupported processing mode: {mode!r}")

from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

from ...common.datetime_utils import week_start
from ...core.constants import WEEKLY_BATCH_DAYS
from ...core.enums import ProcessingMode
from .base import ProcessingStrategy


class WeeklyBatchStrategy(ProcessingStrategy):
    """Monday through Friday of the week containing ``today``."""

    mode = ProcessingMode.WEEKLY_BATCH

    def target_dates(self, *, today: date) -> Sequence[date]:
        monday = week_start(today)
        return [monday + timedelta(days=i) for i in range(WEEKLY_BATCH_DAYS)]

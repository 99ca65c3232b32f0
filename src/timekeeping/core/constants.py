"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

REGULAR_HOURS_LIMIT = Decimal("8")
OVERTIME_HOURS_LIMIT = Decimal("12")
HOURS_PRECISION = Decimal("0.01")

DEFAULT_TIMEZONE = "America/New_York"
DEFAULT_HOURS_PER_DAY = Decimal("8")
DEFAULT_WORK_DAYS = frozenset({0, 1, 2, 3, 4})

DEFAULT_PROACTIVE_AT = "00:00"
DEFAULT_REACTIVE_AT = "18:00"
DEFAULT_WEEKLY_AT = "FRI 23:00"
DEFAULT_MAX_WORKERS = 4

DEFAULT_LIST_LIMIT = 200
WEEKLY_BATCH_DAYS = 5

"""Example: drive the service layer directly (no Flask).

Runs one proactive cycle and prints the scheduler statistics for a tenant.
"""

import importlib

from dotenv import load_dotenv

from timekeeping.config import get_settings_module
from timekeeping.container import build_container
from timekeeping.core.enums import ProcessingMode


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    report = container.scheduler.run_daily_cycle(ProcessingMode.PROACTIVE)
    print(report.to_dict())
    print(container.scheduler.statistics(tenant_id=1).to_dict())


if __name__ == "__main__":
    main()

from __future__ import annotations

import importlib

from dotenv import load_dotenv

from timekeeping.common.logging_utils import setup_logging
from timekeeping.config import get_settings_module
from timekeeping.database.bootstrap import apply_schema, list_tables
from timekeeping.database.connection import DatabaseConnection, DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    config = DBConfig.from_mapping(dict(settings.DB_CONFIG))
    conn = DatabaseConnection(config)
    apply_schema(conn)
    tables = list_tables(conn)
    print(f"OK: Applied schema.sql -> {config.user}@{config.host}:{config.port}/{config.database} (tables={len(tables)})")


if __name__ == "__main__":
    main()

from __future__ import annotations

import atexit
import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .absences.controller import register as register_absences
from .approvals.controller import register as register_approvals
from .autoclocking.controller import register as register_autoclocking
from .common.http import register_error_handlers
from .common.logging_utils import setup_logging
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DatabaseConnection, DBConfig
from .reports.controller import register as register_reports
from .time_entries.controller import register as register_time_entries

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None, *, start_scheduler: Optional[bool] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", None))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            conn = DatabaseConnection(DBConfig.from_mapping(db_config))
            apply_schema(conn)
            logger.info("Schema ready (tables=%d)", len(list_tables(conn)))

        container = build_container(db_config=db_config, settings=settings)

    app.extensions["timekeeping"] = container

    register_error_handlers(app)
    register_time_entries(app, container)
    register_approvals(app, container)
    register_absences(app, container)
    register_reports(app, container)
    register_autoclocking(app, container)

    if start_scheduler is None:
        start_scheduler = bool(getattr(settings, "AUTOCLOCK_ENABLED", False))
    if start_scheduler:
        container.scheduler.start()
        atexit.register(container.scheduler.stop)
        logger.info("Auto-clocking scheduler started")

    return app

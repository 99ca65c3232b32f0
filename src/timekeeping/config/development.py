import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE") or None

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

AUTOCLOCK_ENABLED = bool(int(os.getenv("AUTOCLOCK_ENABLED", "0")))
AUTOCLOCK_PROACTIVE_AT = os.getenv("AUTOCLOCK_PROACTIVE_AT", "00:00")
AUTOCLOCK_REACTIVE_AT = os.getenv("AUTOCLOCK_REACTIVE_AT", "18:00")
AUTOCLOCK_WEEKLY_AT = os.getenv("AUTOCLOCK_WEEKLY_AT", "FRI 23:00")
AUTOCLOCK_TIMEZONE = os.getenv("AUTOCLOCK_TIMEZONE", "America/New_York")
AUTOCLOCK_MAX_WORKERS = int(os.getenv("AUTOCLOCK_MAX_WORKERS", "4"))

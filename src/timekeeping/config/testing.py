import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
LOG_FILE = None

AUTO_INIT_DB = False

AUTOCLOCK_ENABLED = False
AUTOCLOCK_PROACTIVE_AT = "00:00"
AUTOCLOCK_REACTIVE_AT = "18:00"
AUTOCLOCK_WEEKLY_AT = "FRI 23:00"
AUTOCLOCK_TIMEZONE = "America/New_York"
AUTOCLOCK_MAX_WORKERS = 2

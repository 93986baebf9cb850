from .base import *  # noqa

DEBUG = True

# Use local memory cache and SQLite in development to avoid requiring Redis or PostgreSQL.
if os.getenv("DB_ENGINE", "sqlite").lower() == "sqlite":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

LOG_LEVEL = "DEBUG"
LOGGING["loggers"]["apps"]["level"] = LOG_LEVEL

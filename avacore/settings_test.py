# avacore/settings_test.py
from .settings import *  # noqa

DEBUG = False

# ========================================
# Database (SQLite in memory for tests)
# ========================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}


class DisableMigrations:
    """Disable migrations for tests to speed them up."""
    def __contains__(self, item):
        return True

    def __getitem__(self, item):
        return None


MIGRATION_MODULES = DisableMigrations()

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "avacore-tests",
    }
}

KRATOS_PUBLIC_URL = "http://kratos.test:4433"
KRATOS_ADMIN_URL = "http://kratos.test:4434"
KRATOS_BROWSER_URL = "kratos.test:4433"
KRATOS_WEBHOOK_TOKEN = "test-hook-token"

# ========================================
# Logging (Minimal for Tests)
# ========================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}

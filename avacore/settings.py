"""
Django settings for avacore project.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

# === Core ===
SECRET_KEY = os.getenv(
    "DJANGO_SECRET_KEY",
    "django-insecure-9c#r1v2k$y@7w_ava-dev-only-0q!u3m8z%p6l^t4e&h5s",
)
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

# Accetta richieste da 127.0.0.1/localhost/0.0.0.0 in dev (docker)
ALLOWED_HOSTS = ["127.0.0.1", "localhost", "0.0.0.0", "django", "testserver"]

# Se fai POST/redirect cross-origin da UI → Django, aggiungi gli origin fidati
CSRF_TRUSTED_ORIGINS = [
    "http://127.0.0.1:8000",
    "http://localhost:8000",
    "http://127.0.0.1:4455",
    "http://localhost:4455",
    "http://127.0.0.1:4433",  # Kratos public
    "http://localhost:4433",  # Kratos public
]

# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "corsheaders",
    "accounts",
    "core",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "core.kratos_auth.KratosSessionMiddleware",
]

ROOT_URLCONF = "avacore.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "avacore.wsgi.application"

# === Database Configuration ===
# Se POSTGRES_HOST è "postgres", usa configurazione Docker
if os.getenv("POSTGRES_HOST") == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "avacore"),
            "USER": os.getenv("POSTGRES_USER", "ava"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD"),
            "HOST": os.getenv("POSTGRES_HOST", "postgres"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": 60,
            "OPTIONS": {"sslmode": "disable"},
        }
    }
else:
    # Database gestito remoto
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "avacore"),
            "USER": os.getenv("POSTGRES_USER"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD"),
            "HOST": os.getenv("POSTGRES_HOST"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": 60,
            "OPTIONS": {"sslmode": "require"},
        }
    }

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# I18N / TZ
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# WhiteNoise: auto-reload in debug (comodo in dev)
WHITENOISE_AUTOREFRESH = DEBUG

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Cookie policy
SESSION_COOKIE_SAMESITE = "Lax"
CSRF_COOKIE_SAMESITE = "Lax"

# The pre-signup society draft lives in the Django session
SESSION_ENGINE = "django.contrib.sessions.backends.signed_cookies"

# Il lock di provisioning (cache.add) vale solo dentro un processo con LocMem.
# Con più worker usa AVA_CACHE_BACKEND=db (poi: python manage.py createcachetable)
if os.getenv("AVA_CACHE_BACKEND") == "db":
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.db.DatabaseCache",
            "LOCATION": "ava_cache",
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "avacore",
        }
    }

# === Kratos Configuration ===
KRATOS_ADMIN_URL = os.getenv("KRATOS_ADMIN_URL", "http://localhost:4434")
KRATOS_PUBLIC_URL = os.getenv("KRATOS_PUBLIC_URL", "http://localhost:4433")
KRATOS_BROWSER_URL = os.getenv("KRATOS_BROWSER_URL", "localhost:4433")
KRATOS_WEBHOOK_TOKEN = os.getenv("KRATOS_WEBHOOK_TOKEN", "dev-secret-123")
KRATOS_HTTP_TIMEOUT = float(os.getenv("KRATOS_HTTP_TIMEOUT", "5.0"))

# === AVA ===
AVA_NAVIGATION_TARGETS = {
    "admin-dashboard": "/admin/dashboard",
    "admin-setup": "/admin/setup",
    "tenant-setup": "/tenant/setup",
    "home": "/home",
    "presignup-setup": "/admin/presignup-setup",
    "auth": "/auth",
}
AVA_SETUP_REDIRECT_DELAY_MS = 1000
AVA_PRESIGNUP_DRAFT_KEY = "ava_presignup_society_data"
AVA_PROVISIONING_LOCK_SECONDS = 30

# === Django REST Framework ===
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "core.kratos_auth.KratosSessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "UNAUTHENTICATED_USER": None,
}

# === CORS Configuration ===
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOWED_ORIGINS = [
    "http://127.0.0.1:4455",    # Kratos UI
    "http://localhost:4455",    # Kratos UI
    "http://127.0.0.1:4433",    # Kratos Public
    "http://localhost:4433",    # Kratos Public
    "http://127.0.0.1:8000",    # Django stesso
    "http://localhost:8000",    # Django stesso
    "http://127.0.0.1:3000",    # Frontend
    "http://localhost:3000",    # Frontend
]

CORS_ALLOW_HEADERS = [
    "accept",
    "accept-encoding",
    "authorization",
    "content-type",
    "dnt",
    "origin",
    "user-agent",
    "x-csrftoken",
    "x-requested-with",
    "x-session-token",
    "x-kratos-webhook-token",
    "cookie",
]

CORS_ALLOW_METHODS = [
    "DELETE",
    "GET",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
]

# === Logging Configuration ===
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose" if DEBUG else "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "core": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": False,
        },
        "accounts": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

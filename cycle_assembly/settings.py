"""
Django settings for the cycle_assembly project.
Role-based cycle assembly tracking with PostgreSQL, JWT, DRF,
workflow enforcement, audit safety, and Celery background tasks.
"""

from pathlib import Path
from decouple import config
from datetime import timedelta
from celery.schedules import crontab


# ===============================================================
# Base paths
# ===============================================================
BASE_DIR = Path(__file__).resolve().parent.parent


# ===============================================================
# Security
# ===============================================================
SECRET_KEY = config("SECRET_KEY", default="insecure-key-change-me")
DEBUG = config("DEBUG", default=False, cast=bool)

# - strip whitespace
# - drop empty entries
# - convert "*.domain" to ".domain" (Django expects leading dot, not wildcard)
_raw_hosts = config("ALLOWED_HOSTS", default="127.0.0.1,localhost")

ALLOWED_HOSTS = []
for h in str(_raw_hosts).split(","):
    h = h.strip()
    if not h:
        continue
    ALLOWED_HOSTS.append("." + h[2:] if h.startswith("*.") else h)

# Django test client
if "testserver" not in ALLOWED_HOSTS:
    ALLOWED_HOSTS.append("testserver")

CSRF_TRUSTED_ORIGINS = [
    o.strip()
    for o in config("CSRF_TRUSTED_ORIGINS", default="").split(",")
    if o.strip()
]


# ===============================================================
# Installed apps
# ===============================================================
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt.token_blacklist",
    "django_filters",
    "drf_spectacular",
    "drf_spectacular_sidecar",
    "assembly_core.apps.AssemblyCoreConfig",
    "django_celery_results",
    "django_celery_beat",
]


# ===============================================================
# Middleware
# ===============================================================
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "cycle_assembly.urls"
WSGI_APPLICATION = "cycle_assembly.wsgi.application"


# ===============================================================
# Templates
# ===============================================================
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
    }
]


# ===============================================================
# Database
# ===============================================================
DJANGO_ENV = config("DJANGO_ENV", default="development").lower()

if DJANGO_ENV == "production":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": config("DB_NAME", default="cycle_assembly"),
            "USER": config("DB_USER", default="cycle_assembly"),
            "PASSWORD": config("DB_PASSWORD", default=""),
            "HOST": config("DB_HOST", default="127.0.0.1"),
            "PORT": config("DB_PORT", default="5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


# ===============================================================
# Password validation
# ===============================================================
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# ===============================================================
# Internationalization
# ===============================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = config("TIME_ZONE", default="UTC")
USE_I18N = True
USE_TZ = True


# ===============================================================
# Static
# ===============================================================
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ===============================================================
# CORS
# ===============================================================
CORS_ALLOW_ALL_ORIGINS = config("CORS_ALLOW_ALL_ORIGINS", default=DEBUG, cast=bool)
CORS_ALLOWED_ORIGINS = [
    o.strip()
    for o in config("CORS_ALLOWED_ORIGINS", default="").split(",")
    if o.strip()
]


# ===============================================================
# Django REST Framework
# ===============================================================
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer",
    ),
    "DEFAULT_FILTER_BACKENDS": (
        "django_filters.rest_framework.DjangoFilterBackend",
    ),
    "EXCEPTION_HANDLER": "assembly_core.exceptions.workflow_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_PAGINATION_CLASS": "cycle_assembly.pagination.DefaultPagination",
    "PAGE_SIZE": 50,
}


# ===============================================================
# OpenAPI / Swagger
# ===============================================================
SPECTACULAR_SETTINGS = {
    "TITLE": "Cycle Assembly API",
    "DESCRIPTION": "Role-based tracking of cycle assembly from creation to dispatch",
    "VERSION": "0.1.0",
    "SWAGGER_UI_DIST": "SIDECAR",
    "SWAGGER_UI_FAVICON_HREF": "SIDECAR",
    "REDOC_DIST": "SIDECAR",
}


# ===============================================================
# JWT
# ===============================================================
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=config("JWT_ACCESS_MINUTES", default=30, cast=int)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=1),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": True,
    "AUTH_HEADER_TYPES": ("Bearer",),
}


# ===============================================================
# Workflow
# ===============================================================
# When True, a failed audit write rolls back the operation it belongs to.
CYCLE_AUDIT_STRICT = config("CYCLE_AUDIT_STRICT", default=False, cast=bool)
CYCLE_OVERDUE_SCAN_MINUTES = config("CYCLE_OVERDUE_SCAN_MINUTES", default=30, cast=int)


# ===============================================================
# Logging
# ===============================================================
LOG_LEVEL = config("LOG_LEVEL", default="INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "assembly_core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "celery": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


# ===============================================================
# Celery configuration
# ===============================================================
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://127.0.0.1:6379/0")
CELERY_RESULT_BACKEND = "django-db"

CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"

CELERY_TIMEZONE = TIME_ZONE

CELERY_BEAT_SCHEDULE = {
    "scan-overdue-assignments": {
        "task": "assembly_core.tasks.scan_overdue_assignments",
        "schedule": crontab(minute=f"*/{CYCLE_OVERDUE_SCAN_MINUTES}"),
        "args": (),
    }
}

"""
Settings for the radiopharm service.

Values are read from the process environment; a .env file next to
manage.py is loaded first when present. The JSON API needs no templates
or static files, so neither is configured.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


def env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_list(name, default=""):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-radiopharm-secret")
DEBUG = env_flag("DEBUG", "true")
ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    # shared building blocks
    "radiopharm.core",
    "radiopharm.accounts",
    "radiopharm.audit",
    "radiopharm.notifications",
    "radiopharm.lifecycle",
    "radiopharm.approvals",
    # business apps
    "radiopharm.orders",
    "radiopharm.production",
    "radiopharm.logistics",
    "radiopharm.billing",
    "radiopharm.helpdesk",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    # needs request.user, so it sits below auth
    "radiopharm.audit.middleware.AuditContextMiddleware",
    "radiopharm.api.middleware.ApiErrorMiddleware",
]

ROOT_URLCONF = "radiopharm.urls"
WSGI_APPLICATION = "radiopharm.wsgi.application"

_engine = os.getenv("DATABASE_ENGINE", "sqlite").lower()
if _engine in {"postgres", "postgresql"}:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "radiopharm"),
            "USER": os.getenv("POSTGRES_USER", "radiopharm"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("POSTGRES_CONN_MAX_AGE", "60")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "radiopharm.sqlite3")),
        }
    }

AUTH_USER_MODEL = "accounts.User"
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 10}},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
]

TIME_ZONE = "UTC"
USE_TZ = True
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Field names masked in audit snapshots
AUDIT_REDACT_FIELDS = ["password", "secret", "token", "api_key", "electronic_signature"]

# "*" validators run for every entity type, ahead of the type's own
LIFECYCLE_VALIDATORS = {
    "*": ["radiopharm.approvals.validators.PendingApprovalValidator"],
    "INVOICE": ["radiopharm.billing.validators.InvoiceVoidValidator"],
}

# (entity type, from, to) moves that wait on the entity's latest approval request
APPROVALS_GATED_TRANSITIONS = [
    ("ORDER", "SUBMITTED", "VALIDATED"),
    ("BATCH", "QC_PASSED", "RELEASED"),
]
APPROVALS_REMINDER_HOURS = int(os.getenv("APPROVAL_REMINDER_HOURS", "4"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "stderr": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["stderr"], "level": os.getenv("LOG_LEVEL", "INFO")},
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
        "radiopharm": {"level": os.getenv("RADIOPHARM_LOG_LEVEL", "INFO")},
    },
}

"""Django settings for radiopharm tests."""

SECRET_KEY = "test-secret-key-not-for-production"

DEBUG = True

ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "radiopharm.core",
    "radiopharm.accounts",
    "radiopharm.audit",
    "radiopharm.notifications",
    "radiopharm.lifecycle",
    "radiopharm.approvals",
    "radiopharm.orders",
    "radiopharm.production",
    "radiopharm.logistics",
    "radiopharm.billing",
    "radiopharm.helpdesk",
]

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "radiopharm.audit.middleware.AuditContextMiddleware",
    "radiopharm.api.middleware.ApiErrorMiddleware",
]

ROOT_URLCONF = "radiopharm.urls"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

AUTH_USER_MODEL = "accounts.User"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

AUDIT_REDACT_FIELDS = ["password", "secret", "token", "api_key", "electronic_signature"]

LIFECYCLE_VALIDATORS = {
    "*": ["radiopharm.approvals.validators.PendingApprovalValidator"],
    "INVOICE": ["radiopharm.billing.validators.InvoiceVoidValidator"],
}

APPROVALS_GATED_TRANSITIONS = [
    ("ORDER", "SUBMITTED", "VALIDATED"),
    ("BATCH", "QC_PASSED", "RELEASED"),
]

APPROVALS_REMINDER_HOURS = 4

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "INFO"},
}

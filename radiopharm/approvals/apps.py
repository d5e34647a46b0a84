"""Django app configuration for approval workflows."""

from django.apps import AppConfig


class ApprovalsConfig(AppConfig):
    name = "radiopharm.approvals"
    label = "approvals"
    verbose_name = "Approvals"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        from . import receivers  # noqa: F401

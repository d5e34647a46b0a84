"""Django app configuration for the status lifecycle."""

from django.apps import AppConfig


class LifecycleConfig(AppConfig):
    name = "radiopharm.lifecycle"
    label = "lifecycle"
    verbose_name = "Lifecycle"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # Builds and graph-checks every machine at startup
        from . import machines  # noqa: F401

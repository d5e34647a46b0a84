"""Django app configuration for core building blocks."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Base models, sequences and shared exceptions."""

    name = "radiopharm.core"
    label = "core"
    verbose_name = "Core"
    default_auto_field = "django.db.models.BigAutoField"

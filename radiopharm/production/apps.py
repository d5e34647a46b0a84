"""Django app configuration for production batches and release."""

from django.apps import AppConfig


class ProductionConfig(AppConfig):
    name = "radiopharm.production"
    label = "production"
    verbose_name = "Production"
    default_auto_field = "django.db.models.BigAutoField"

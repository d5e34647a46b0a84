"""Django app configuration for shipments and delivery."""

from django.apps import AppConfig


class LogisticsConfig(AppConfig):
    name = "radiopharm.logistics"
    label = "logistics"
    verbose_name = "Logistics"
    default_auto_field = "django.db.models.BigAutoField"

"""Django app configuration for invoicing and payments."""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    name = "radiopharm.billing"
    label = "billing"
    verbose_name = "Billing"
    default_auto_field = "django.db.models.BigAutoField"

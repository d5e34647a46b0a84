"""Django app configuration for the support helpdesk."""

from django.apps import AppConfig


class HelpdeskConfig(AppConfig):
    name = "radiopharm.helpdesk"
    label = "helpdesk"
    verbose_name = "Helpdesk"
    default_auto_field = "django.db.models.BigAutoField"

"""Django app configuration for in-app notifications."""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    name = "radiopharm.notifications"
    label = "notifications"
    verbose_name = "Notifications"
    default_auto_field = "django.db.models.BigAutoField"

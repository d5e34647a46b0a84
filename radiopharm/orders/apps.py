"""Django app configuration for customers, products and orders."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    name = "radiopharm.orders"
    label = "orders"
    verbose_name = "Orders"
    default_auto_field = "django.db.models.BigAutoField"

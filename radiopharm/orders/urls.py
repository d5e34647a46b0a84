"""URL configuration for orders, customers and products."""

from django.urls import path

from . import views

app_name = "orders"

urlpatterns = [
    path("orders", views.api_orders, name="orders"),
    path("orders/<uuid:order_id>", views.api_order_detail, name="order_detail"),
    path("orders/<uuid:order_id>/status", views.api_order_status, name="order_status"),
    path("orders/<uuid:order_id>/calculate-activity", views.api_order_activity, name="order_activity"),
    path("customers", views.api_customers, name="customers"),
    path("customers/<uuid:customer_id>", views.api_customer_detail, name="customer_detail"),
    path("products", views.api_products, name="products"),
]

"""URL configuration for shipments."""

from django.urls import path

from . import views

app_name = "logistics"

urlpatterns = [
    path("shipments", views.api_shipments, name="shipments"),
    path("shipments/<uuid:shipment_id>", views.api_shipment_detail, name="shipment_detail"),
    path("shipments/<uuid:shipment_id>/dispatch", views.api_shipment_dispatch, name="shipment_dispatch"),
    path("shipments/<uuid:shipment_id>/deliver", views.api_shipment_deliver, name="shipment_deliver"),
    path("shipments/<uuid:shipment_id>/status", views.api_shipment_status, name="shipment_status"),
]

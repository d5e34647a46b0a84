"""URL configuration for invoices and payments."""

from django.urls import path

from . import views

app_name = "billing"

urlpatterns = [
    path("invoices", views.api_invoices, name="invoices"),
    path("invoices/generate-from-shipment", views.api_generate_from_shipment, name="generate_from_shipment"),
    path("invoices/<uuid:invoice_id>", views.api_invoice_detail, name="invoice_detail"),
    path("invoices/<uuid:invoice_id>/events", views.api_invoice_events, name="invoice_events"),
    path("invoices/<uuid:invoice_id>/submit-for-approval", views.api_invoice_submit, name="invoice_submit"),
    path("invoices/<uuid:invoice_id>/approve-post", views.api_invoice_approve_post, name="invoice_approve_post"),
    path("invoices/<uuid:invoice_id>/void", views.api_invoice_void, name="invoice_void"),
    path("invoices/<uuid:invoice_id>/close", views.api_invoice_close, name="invoice_close"),
    path("payments", views.api_payments, name="payments"),
    path("payments/<uuid:payment_id>", views.api_payment_detail, name="payment_detail"),
    path("payments/<uuid:payment_id>/confirm", views.api_payment_confirm, name="payment_confirm"),
    path("payments/<uuid:payment_id>/reject", views.api_payment_reject, name="payment_reject"),
]

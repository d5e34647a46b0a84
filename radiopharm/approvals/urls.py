"""URL configuration for approvals."""

from django.urls import path

from . import views

app_name = "approvals"

urlpatterns = [
    path("pending", views.api_pending, name="pending"),
    path("requests", views.api_requests, name="requests"),
    path("history/<str:entity_type>/<str:entity_id>", views.api_history, name="history"),
    path("trigger", views.api_trigger, name="trigger"),
    path("workflows", views.api_workflows, name="workflows"),
    path("workflows/<uuid:workflow_id>", views.api_workflow_detail, name="workflow_detail"),
    path("<uuid:request_id>/action", views.api_action, name="action"),
    path("<uuid:request_id>/approve", views.api_approve, name="approve"),
    path("<uuid:request_id>/reject", views.api_reject, name="reject"),
]

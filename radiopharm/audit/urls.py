"""URL configuration for the audit trail."""

from django.urls import path

from . import views

app_name = "audit"

urlpatterns = [
    path("audit", views.api_audit_logs, name="list"),
    path("audit/actions", views.api_actions, name="actions"),
    path("audit/entity-types", views.api_entity_types, name="entity_types"),
    path("audit/entity/<str:entity_type>/<str:entity_id>", views.api_entity_history, name="entity_history"),
]

"""URL configuration for batches."""

from django.urls import path

from . import views

app_name = "production"

urlpatterns = [
    path("batches", views.api_batches, name="batches"),
    path("batches/<uuid:batch_id>", views.api_batch_detail, name="batch_detail"),
    path("batches/<uuid:batch_id>/transition", views.api_batch_transition, name="batch_transition"),
    path("batches/<uuid:batch_id>/status", views.api_batch_transition, name="batch_status"),
    path("batches/<uuid:batch_id>/release", views.api_batch_release, name="batch_release"),
    path("batches/<uuid:batch_id>/events", views.api_batch_events, name="batch_events"),
]

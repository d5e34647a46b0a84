"""URL configuration for notifications."""

from django.urls import path

from . import views

app_name = "notifications"

urlpatterns = [
    path("notifications", views.api_notifications, name="list"),
    path("notifications/read-all", views.api_mark_all_read, name="read_all"),
    path("notifications/<uuid:notification_id>/read", views.api_mark_read, name="read"),
]

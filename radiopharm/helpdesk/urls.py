"""URL configuration for the helpdesk."""

from django.urls import path

from . import views

app_name = "helpdesk"

urlpatterns = [
    path("tickets", views.api_tickets, name="tickets"),
    path("tickets/<uuid:ticket_id>", views.api_ticket_detail, name="ticket_detail"),
    path("tickets/<uuid:ticket_id>/reply", views.api_ticket_reply, name="ticket_reply"),
    path("admin/tickets/<uuid:ticket_id>", views.api_admin_ticket, name="admin_ticket"),
]

"""URL configuration for authentication endpoints."""

from django.urls import path

from . import views

app_name = "auth"

urlpatterns = [
    path("login", views.api_login, name="login"),
    path("logout", views.api_logout, name="logout"),
    path("me", views.api_me, name="me"),
]

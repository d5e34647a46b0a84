"""Root URL configuration. Every endpoint lives under /api/."""

from django.urls import include, path

from radiopharm.core.views import health_check

urlpatterns = [
    path("api/health", health_check, name="health"),
    path("api/auth/", include("radiopharm.api.urls")),
    path("api/approvals/", include("radiopharm.approvals.urls")),
    path("api/helpdesk/", include("radiopharm.helpdesk.urls")),
    path("api/", include("radiopharm.audit.urls")),
    path("api/", include("radiopharm.notifications.urls")),
    path("api/", include("radiopharm.orders.urls")),
    path("api/", include("radiopharm.production.urls")),
    path("api/", include("radiopharm.logistics.urls")),
    path("api/", include("radiopharm.billing.urls")),
]

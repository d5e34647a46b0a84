"""Liveness endpoint."""

import logging

from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.views.decorators.http import require_GET

logger = logging.getLogger(__name__)


@require_GET
def health_check(request):
    """200 with database "ok", or 503 when the default database is unreachable."""
    try:
        connections["default"].ensure_connection()
    except DatabaseError as e:
        logger.error(f"Health check could not reach the database: {e}")
        return JsonResponse({"status": "degraded", "database": "unavailable"}, status=503)
    return JsonResponse({"status": "ok", "database": "ok"})

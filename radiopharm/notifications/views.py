"""Notification inbox API."""
from uuid import UUID

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from radiopharm.api.decorators import api_login_required
from radiopharm.api.serializers import iso, paginate

from . import services
from .models import Notification


def serialize_notification(n):
    return {
        "id": str(n.pk),
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "entityType": n.entity_type,
        "entityId": n.entity_id,
        "isRead": n.is_read,
        "readAt": iso(n.read_at),
        "createdAt": iso(n.created_at),
    }


@require_GET
@api_login_required
def api_notifications(request):
    qs = Notification.objects.filter(user=request.user)
    if request.GET.get("unreadOnly") in ("1", "true", "True"):
        qs = qs.filter(is_read=False)
    items, meta = paginate(qs, request)
    return JsonResponse({
        "notifications": [serialize_notification(n) for n in items],
        "unreadCount": Notification.objects.filter(user=request.user, is_read=False).count(),
        "pagination": meta,
    })


@csrf_exempt
@require_http_methods(["PATCH"])
@api_login_required
def api_mark_read(request, notification_id: UUID):
    notification = get_object_or_404(Notification, pk=notification_id, user=request.user)
    return JsonResponse(serialize_notification(services.mark_read(notification)))


@csrf_exempt
@require_http_methods(["PATCH"])
@api_login_required
def api_mark_all_read(request):
    return JsonResponse({"updated": services.mark_all_read(request.user)})

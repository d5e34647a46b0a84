"""Audit trail API (read-only)."""
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from radiopharm.accounts import roles
from radiopharm.api.decorators import require_roles
from radiopharm.api.parsing import parse_datetime_field
from radiopharm.api.serializers import iso, paginate

from .models import AuditLog

AUDIT_READERS = (roles.ADMIN, roles.QUALIFIED_PERSON)


def serialize_audit_log(entry):
    return {
        "id": str(entry.pk),
        "createdAt": iso(entry.created_at),
        "userId": entry.actor_user_id,
        "actor": entry.actor_display or "System",
        "action": entry.action,
        "entityType": entry.entity_type,
        "entityId": entry.entity_id,
        "objectRepr": entry.object_repr,
        "oldValues": entry.old_values,
        "newValues": entry.new_values,
        "changes": entry.changes,
        "ipAddress": entry.ip_address,
        "userAgent": entry.user_agent,
        "requestId": entry.request_id,
        "metadata": entry.metadata,
        "isSystem": entry.is_system,
    }


@require_GET
@require_roles(*AUDIT_READERS)
def api_audit_logs(request):
    qs = AuditLog.objects.all()
    params = request.GET
    if params.get("entityType"):
        qs = qs.filter(entity_type=params["entityType"])
    if params.get("entityId"):
        qs = qs.filter(entity_id=params["entityId"])
    if params.get("userId"):
        qs = qs.filter(actor_user_id=params["userId"])
    if params.get("action"):
        qs = qs.filter(action=params["action"])
    from_date = parse_datetime_field(params, "fromDate", required=False)
    to_date = parse_datetime_field(params, "toDate", required=False)
    if from_date:
        qs = qs.filter(created_at__gte=from_date)
    if to_date:
        qs = qs.filter(created_at__lte=to_date)

    items, meta = paginate(qs, request, default_limit=50, max_limit=200)
    return JsonResponse({"logs": [serialize_audit_log(e) for e in items], "pagination": meta})


@require_GET
@require_roles(*AUDIT_READERS)
def api_entity_history(request, entity_type, entity_id):
    qs = AuditLog.objects.filter(entity_type=entity_type, entity_id=entity_id).order_by("created_at")
    return JsonResponse({"logs": [serialize_audit_log(e) for e in qs]})


@require_GET
@require_roles(*AUDIT_READERS)
def api_actions(request):
    actions = AuditLog.objects.order_by("action").values_list("action", flat=True).distinct()
    return JsonResponse({"actions": list(actions)})


@require_GET
@require_roles(*AUDIT_READERS)
def api_entity_types(request):
    types = (
        AuditLog.objects.exclude(entity_type="")
        .order_by("entity_type")
        .values_list("entity_type", flat=True)
        .distinct()
    )
    return JsonResponse({"entityTypes": list(types)})

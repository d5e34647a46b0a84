"""Batch API."""
from uuid import UUID

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from radiopharm.accounts import roles
from radiopharm.api.decorators import api_login_required, require_roles
from radiopharm.api.parsing import (
    parse_choice,
    parse_datetime_field,
    parse_decimal,
    parse_expected_version,
    parse_json_body,
    parse_uuid,
    parse_uuid_list,
    require_fields,
)
from radiopharm.api.serializers import paginate
from radiopharm.lifecycle.services import allowed_next
from radiopharm.lifecycle.statuses import BatchStatus

from . import services
from .models import Batch, ReleaseType
from .serializers import serialize_batch, serialize_event, serialize_release

BATCH_PLANNERS = (roles.ADMIN, roles.PRODUCTION_MANAGER)
BATCH_WORKERS = (
    roles.ADMIN,
    roles.PRODUCTION_MANAGER,
    roles.OPERATOR,
    roles.QC_ANALYST,
    roles.QUALIFIED_PERSON,
)


def _optional_float(data, field):
    value = parse_decimal(data, field, required=False)
    return float(value) if value is not None else None


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_batches(request):
    if request.method == "GET":
        qs = Batch.objects.select_related("product")
        status = parse_choice(request.GET, "status", BatchStatus, required=False)
        if status:
            qs = qs.filter(status=status)
        items, meta = paginate(qs, request)
        return JsonResponse({"batches": [serialize_batch(b, include_orders=False) for b in items], "pagination": meta})

    return _create_batch(request)


@require_roles(*BATCH_PLANNERS)
def _create_batch(request):
    data = parse_json_body(request)
    require_fields(data, "productId", "plannedStart", "plannedEnd")
    batch = services.create_batch(
        request.user,
        product_id=parse_uuid(data["productId"], "productId"),
        planned_start=parse_datetime_field(data, "plannedStart"),
        planned_end=parse_datetime_field(data, "plannedEnd"),
        order_ids=parse_uuid_list(data, "orderIds", required=False),
        target_activity=_optional_float(data, "targetActivity"),
        activity_unit=data.get("activityUnit") or "mCi",
        notes=data.get("notes", ""),
    )
    return JsonResponse(serialize_batch(batch), status=201)


@require_GET
@api_login_required
def api_batch_detail(request, batch_id: UUID):
    batch = get_object_or_404(Batch.objects.select_related("product"), pk=batch_id)
    return JsonResponse(serialize_batch(batch, allowed_next=allowed_next(batch, request.user)))


@csrf_exempt
@require_http_methods(["POST", "PATCH"])
@require_roles(*BATCH_WORKERS)
def api_batch_transition(request, batch_id: UUID):
    batch = get_object_or_404(Batch, pk=batch_id)
    data = parse_json_body(request)
    batch = services.change_batch_status(
        batch,
        parse_choice(data, "status", BatchStatus),
        actor=request.user,
        note=data.get("note") or data.get("notes") or "",
        actual_activity=_optional_float(data, "actualActivity"),
        expected_version=parse_expected_version(request, data),
    )
    return JsonResponse(serialize_batch(batch, allowed_next=allowed_next(batch, request.user)))


@csrf_exempt
@require_POST
@require_roles(*services.RELEASERS)
def api_batch_release(request, batch_id: UUID):
    batch = get_object_or_404(Batch, pk=batch_id)
    data = parse_json_body(request)
    release = services.release_batch(
        batch,
        request.user,
        signature=data.get("electronicSignature", ""),
        reason=data.get("reason", ""),
        release_type=parse_choice(data, "releaseType", ReleaseType, required=False, default=ReleaseType.FULL),
    )
    batch.refresh_from_db()
    return JsonResponse({"batch": serialize_batch(batch), "release": serialize_release(release)})


@require_GET
@api_login_required
def api_batch_events(request, batch_id: UUID):
    batch = get_object_or_404(Batch, pk=batch_id)
    return JsonResponse({"events": [serialize_event(e) for e in batch.events.select_related("actor")]})

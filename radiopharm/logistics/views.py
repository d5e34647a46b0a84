"""Shipment API."""
from uuid import UUID

from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from radiopharm.accounts import roles
from radiopharm.api.decorators import api_login_required, require_roles
from radiopharm.api.parsing import (
    parse_choice,
    parse_datetime_field,
    parse_expected_version,
    parse_json_body,
    parse_uuid,
    parse_uuid_list,
    require_fields,
)
from radiopharm.api.serializers import paginate
from radiopharm.core.exceptions import DomainValidationError
from radiopharm.lifecycle.services import allowed_next
from radiopharm.lifecycle.statuses import ShipmentStatus

from . import services
from .models import Shipment
from .serializers import serialize_shipment


def _driver(data):
    driver_id = data.get("driverId")
    if not driver_id:
        return None
    driver = get_user_model().objects.filter(pk=driver_id).first()
    if driver is None:
        raise DomainValidationError("Driver not found", field_errors={"driverId": ["Unknown user"]})
    return driver


def _visible_shipments(user):
    qs = Shipment.objects.select_related("customer", "driver")
    if services.is_driver_only(user):
        qs = qs.filter(driver=user)
    return qs


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_shipments(request):
    if request.method == "GET":
        qs = _visible_shipments(request.user)
        status = parse_choice(request.GET, "status", ShipmentStatus, required=False)
        if status:
            qs = qs.filter(status=status)
        items, meta = paginate(qs, request)
        return JsonResponse({"shipments": [serialize_shipment(s) for s in items], "pagination": meta})

    return _create_shipment(request)


@require_roles(*services.DISPATCHERS)
def _create_shipment(request):
    data = parse_json_body(request)
    require_fields(data, "customerId", "orderIds")
    shipment = services.create_shipment(
        request.user,
        customer_id=parse_uuid(data["customerId"], "customerId"),
        order_ids=parse_uuid_list(data, "orderIds"),
        driver=_driver(data),
        courier_name=data.get("courierName", ""),
        vehicle_info=data.get("vehicleInfo", ""),
        expected_arrival=parse_datetime_field(data, "expectedArrival", required=False),
    )
    return JsonResponse(serialize_shipment(shipment, include_events=True), status=201)


@require_GET
@api_login_required
def api_shipment_detail(request, shipment_id: UUID):
    shipment = get_object_or_404(_visible_shipments(request.user), pk=shipment_id)
    return JsonResponse(
        serialize_shipment(shipment, include_events=True, allowed_next=allowed_next(shipment, request.user))
    )


@csrf_exempt
@require_POST
@require_roles(*services.DISPATCHERS)
def api_shipment_dispatch(request, shipment_id: UUID):
    shipment = get_object_or_404(Shipment, pk=shipment_id)
    data = parse_json_body(request)
    shipment = services.dispatch_shipment(
        shipment,
        request.user,
        driver=_driver(data),
        courier_name=data.get("courierName"),
        vehicle_info=data.get("vehicleInfo"),
    )
    shipment.refresh_from_db()
    return JsonResponse(serialize_shipment(shipment, include_events=True))


@csrf_exempt
@require_POST
@require_roles(*services.DISPATCHERS, roles.DRIVER)
def api_shipment_deliver(request, shipment_id: UUID):
    shipment = get_object_or_404(Shipment, pk=shipment_id)
    data = parse_json_body(request)
    shipment = services.deliver_shipment(
        shipment,
        request.user,
        received_by=data.get("receivedBy", ""),
        notes=data.get("notes", ""),
    )
    shipment.refresh_from_db()
    return JsonResponse(serialize_shipment(shipment, include_events=True))


@csrf_exempt
@require_http_methods(["PATCH", "PUT"])
@require_roles(*services.DISPATCHERS, roles.DRIVER)
def api_shipment_status(request, shipment_id: UUID):
    shipment = get_object_or_404(Shipment, pk=shipment_id)
    data = parse_json_body(request)
    shipment = services.change_shipment_status(
        shipment,
        parse_choice(data, "status", ShipmentStatus),
        actor=request.user,
        note=data.get("note") or data.get("notes") or "",
        driver=_driver(data),
        expected_version=parse_expected_version(request, data),
    )
    return JsonResponse(
        serialize_shipment(shipment, include_events=True, allowed_next=allowed_next(shipment, request.user))
    )

"""Orders, customers and products API."""
from uuid import UUID

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods

from radiopharm.accounts import roles
from radiopharm.accounts.services import require_linked_customer
from radiopharm.api.decorators import api_login_required, require_roles
from radiopharm.api.parsing import (
    parse_choice,
    parse_date_field,
    parse_datetime_field,
    parse_decimal,
    parse_expected_version,
    parse_int,
    parse_json_body,
    parse_uuid,
    parse_uuid_list,
    require_fields,
)
from radiopharm.api.serializers import paginate
from radiopharm.core.exceptions import DomainValidationError
from radiopharm.lifecycle.services import allowed_next
from radiopharm.lifecycle.statuses import OrderStatus

from . import services
from .models import Customer, Order, Product
from .serializers import serialize_customer, serialize_order, serialize_product

ORDER_DESK = (roles.ADMIN, roles.PRODUCTION_MANAGER, roles.CUSTOMER_SERVICE)
CUSTOMER_DESK = (roles.ADMIN, roles.CUSTOMER_SERVICE)


def _is_portal_user(user) -> bool:
    return user.has_role(roles.CUSTOMER) and not user.has_role(*roles.STAFF_ROLES)


def _visible_orders(user):
    qs = Order.objects.select_related("customer", "product")
    if _is_portal_user(user):
        qs = qs.filter(customer=require_linked_customer(user))
    return qs


def _order_fields(data, partial=False):
    required = not partial
    fields = {
        "delivery_date": parse_date_field(data, "deliveryDate", required=required),
        "delivery_time_start": parse_datetime_field(data, "deliveryTimeStart", required=required),
        "delivery_time_end": parse_datetime_field(data, "deliveryTimeEnd", required=required),
        "requested_activity": parse_decimal(data, "requestedActivity", required=required),
        "number_of_doses": parse_int(data, "numberOfDoses"),
        "injection_time": parse_datetime_field(data, "injectionTime", required=False),
        "patient_count": parse_int(data, "patientCount"),
        "activity_unit": data.get("activityUnit"),
        "special_notes": data.get("specialNotes"),
    }
    if partial:
        keys = {
            "delivery_date": "deliveryDate",
            "delivery_time_start": "deliveryTimeStart",
            "delivery_time_end": "deliveryTimeEnd",
            "requested_activity": "requestedActivity",
            "number_of_doses": "numberOfDoses",
            "injection_time": "injectionTime",
            "patient_count": "patientCount",
            "activity_unit": "activityUnit",
            "special_notes": "specialNotes",
        }
        return {name: value for name, value in fields.items() if keys[name] in data}
    if fields["requested_activity"] is not None:
        fields["requested_activity"] = float(fields["requested_activity"])
    fields["activity_unit"] = fields["activity_unit"] or "mCi"
    fields["special_notes"] = fields["special_notes"] or ""
    return fields


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_orders(request):
    if request.method == "GET":
        qs = _visible_orders(request.user)
        status = parse_choice(request.GET, "status", OrderStatus, required=False)
        if status:
            qs = qs.filter(status=status)
        customer_id = request.GET.get("customerId")
        if customer_id:
            qs = qs.filter(customer_id=parse_uuid(customer_id, "customerId"))
        items, meta = paginate(qs, request)
        return JsonResponse({"orders": [serialize_order(o) for o in items], "pagination": meta})

    return _create_order(request)


@require_roles(*ORDER_DESK)
def _create_order(request):
    data = parse_json_body(request)
    require_fields(data, "customerId", "productId")
    order = services.create_order(
        request.user,
        customer_id=parse_uuid(data["customerId"], "customerId"),
        product_id=parse_uuid(data["productId"], "productId"),
        status=parse_choice(data, "status", services.CREATE_STATUSES, required=False, default=OrderStatus.DRAFT),
        **_order_fields(data),
    )
    return JsonResponse(serialize_order(order, include_history=True), status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT"])
@api_login_required
def api_order_detail(request, order_id: UUID):
    order = get_object_or_404(_visible_orders(request.user), pk=order_id)
    if request.method == "GET":
        return JsonResponse(
            serialize_order(order, include_history=True, allowed_next=allowed_next(order, request.user))
        )
    return _update_order(request, order)


@require_roles(*ORDER_DESK)
def _update_order(request, order):
    data = parse_json_body(request)
    fields = _order_fields(data, partial=True)
    if "requested_activity" in fields:
        fields["requested_activity"] = float(fields["requested_activity"])
    order = services.update_order(
        order,
        actor=request.user,
        expected_version=parse_expected_version(request, data),
        **fields,
    )
    return JsonResponse(serialize_order(order, include_history=True))


@csrf_exempt
@require_http_methods(["PATCH", "PUT"])
@require_roles(*roles.STAFF_ROLES)
def api_order_status(request, order_id: UUID):
    order = get_object_or_404(Order, pk=order_id)
    data = parse_json_body(request)
    status = parse_choice(data, "status", OrderStatus)
    order = services.change_order_status(
        order,
        status,
        actor=request.user,
        note=data.get("notes") or data.get("note") or "",
        expected_version=parse_expected_version(request, data),
    )
    return JsonResponse(
        serialize_order(order, include_history=True, allowed_next=allowed_next(order, request.user))
    )


@require_GET
@api_login_required
def api_order_activity(request, order_id: UUID):
    order = get_object_or_404(_visible_orders(request.user), pk=order_id)
    at = parse_datetime_field(request.GET, "at", required=False) or timezone.now()
    return JsonResponse({
        "orderId": str(order.pk),
        "at": at.isoformat(),
        "calibrationTime": order.calculated_calibration_time.isoformat() if order.calculated_calibration_time else None,
        "calibratedActivity": order.calculated_production_activity,
        "activity": services.activity_at(order, at),
        "activityUnit": order.activity_unit,
    })


def _customer_fields(data):
    fields = {}
    simple = {
        "code": "code",
        "name": "name",
        "email": "email",
        "phone": "phone",
        "address": "address",
        "licenseNumber": "license_number",
        "isActive": "is_active",
    }
    for key, attr in simple.items():
        if key in data:
            fields[attr] = data[key]
    if "licenseExpiryDate" in data:
        fields["license_expiry_date"] = parse_date_field(data, "licenseExpiryDate", required=False)
    if "travelTimeMinutes" in data:
        travel = parse_int(data, "travelTimeMinutes", required=True)
        if travel < 0:
            raise DomainValidationError(
                "Travel time cannot be negative",
                field_errors={"travelTimeMinutes": ["Must be zero or more"]},
            )
        fields["travel_time_minutes"] = travel
    return fields


def _permitted_products(data):
    if "permittedProducts" not in data:
        return None
    ids = parse_uuid_list(data, "permittedProducts", required=False)
    products = list(Product.objects.filter(pk__in=ids))
    if len(products) != len(set(ids)):
        raise DomainValidationError(
            "Unknown product in permittedProducts",
            field_errors={"permittedProducts": ["One or more products do not exist"]},
        )
    return products


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_customers(request):
    if request.method == "GET":
        qs = Customer.objects.prefetch_related("permitted_products")
        search = request.GET.get("search")
        if search:
            qs = qs.filter(name__icontains=search)
        items, meta = paginate(qs, request)
        return JsonResponse({"customers": [serialize_customer(c) for c in items], "pagination": meta})

    return _create_customer(request)


@require_roles(*CUSTOMER_DESK)
def _create_customer(request):
    data = parse_json_body(request)
    require_fields(data, "code", "name")
    customer = services.create_customer(
        actor=request.user,
        permitted_products=_permitted_products(data),
        **_customer_fields(data),
    )
    return JsonResponse(serialize_customer(customer), status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
@api_login_required
def api_customer_detail(request, customer_id: UUID):
    customer = get_object_or_404(Customer, pk=customer_id)
    if request.method == "GET":
        return JsonResponse(serialize_customer(customer))
    return _modify_customer(request, customer)


@require_roles(*CUSTOMER_DESK)
def _modify_customer(request, customer):
    if request.method == "DELETE":
        services.delete_customer(customer, actor=request.user)
        return JsonResponse({"message": "Customer deleted"})
    data = parse_json_body(request)
    customer = services.update_customer(
        customer,
        actor=request.user,
        permitted_products=_permitted_products(data),
        **_customer_fields(data),
    )
    return JsonResponse(serialize_customer(customer))


@require_GET
@api_login_required
def api_products(request):
    qs = Product.objects.all()
    if request.GET.get("activeOnly") == "true":
        qs = qs.filter(is_active=True)
    return JsonResponse({"products": [serialize_product(p) for p in qs]})

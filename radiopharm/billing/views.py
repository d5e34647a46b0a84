"""Invoice and payment API."""
from decimal import Decimal
from uuid import UUID

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from radiopharm.accounts import roles
from radiopharm.accounts.services import require_linked_customer
from radiopharm.api.decorators import api_login_required, require_roles
from radiopharm.api.parsing import (
    parse_choice,
    parse_date_field,
    parse_decimal,
    parse_json_body,
    parse_uuid,
    require_fields,
)
from radiopharm.api.serializers import paginate
from radiopharm.core.exceptions import DomainValidationError
from radiopharm.lifecycle.services import allowed_next
from radiopharm.lifecycle.statuses import InvoiceStatus, PaymentRequestStatus
from radiopharm.logistics.models import Shipment
from radiopharm.orders.models import Customer, Order
from radiopharm.orders.serializers import serialize_history

from . import services
from .models import Invoice, PaymentMethod, PaymentRequest
from .serializers import serialize_invoice, serialize_payment, serialize_receipt

INVOICE_WRITERS = (roles.ADMIN, roles.SALES, roles.FINANCE)
INVOICE_GENERATORS = (roles.ADMIN, roles.SALES, roles.FINANCE, roles.LOGISTICS)
FINANCE_DESK = (roles.ADMIN, roles.FINANCE)


def _is_portal_user(user) -> bool:
    return user.has_role(roles.CUSTOMER) and not user.has_role(*roles.STAFF_ROLES)


def _visible_invoices(user):
    qs = Invoice.objects.select_related("customer", "approved_by")
    if _is_portal_user(user):
        qs = qs.filter(customer=require_linked_customer(user))
    return qs


def _visible_payments(user):
    qs = PaymentRequest.objects.select_related("invoice", "submitted_by", "reviewed_by")
    if _is_portal_user(user):
        qs = qs.filter(customer=require_linked_customer(user))
    return qs


def _parse_items(data):
    raw = data.get("items")
    if not isinstance(raw, list) or not raw:
        raise DomainValidationError("items must be a non-empty list", field_errors={"items": ["Required"]})
    items = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise DomainValidationError("Invalid invoice item", field_errors={f"items[{index}]": ["Must be an object"]})
        require_fields(entry, "description", "unitPrice")
        item = {
            "description": entry["description"],
            "quantity": parse_decimal(entry, "quantity", required=False, default=Decimal("1")),
            "unit_price": parse_decimal(entry, "unitPrice"),
        }
        if entry.get("orderId"):
            item["order"] = get_object_or_404(Order, pk=parse_uuid(entry["orderId"], "orderId"))
        items.append(item)
    return items


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_invoices(request):
    if request.method == "GET":
        qs = _visible_invoices(request.user)
        status = parse_choice(request.GET, "status", InvoiceStatus, required=False)
        if status:
            qs = qs.filter(status=status)
        customer_id = request.GET.get("customerId")
        if customer_id:
            qs = qs.filter(customer_id=parse_uuid(customer_id, "customerId"))
        items, meta = paginate(qs, request)
        return JsonResponse({"invoices": [serialize_invoice(i, include_items=False) for i in items], "pagination": meta})

    return _create_invoice(request)


@require_roles(*INVOICE_WRITERS)
def _create_invoice(request):
    data = parse_json_body(request)
    require_fields(data, "customerId", "items")
    customer = get_object_or_404(Customer, pk=parse_uuid(data["customerId"], "customerId"))
    invoice = services.create_invoice(
        request.user,
        customer,
        _parse_items(data),
        tax_rate=parse_decimal(data, "taxRate", required=False, default=services.DEFAULT_TAX_RATE),
        due_date=parse_date_field(data, "dueDate", required=False),
        currency=data.get("currency") or "SAR",
        notes=data.get("notes", ""),
    )
    return JsonResponse(serialize_invoice(invoice), status=201)


@csrf_exempt
@require_POST
@require_roles(*INVOICE_GENERATORS)
def api_generate_from_shipment(request):
    data = parse_json_body(request)
    require_fields(data, "shipmentId")
    shipment = get_object_or_404(Shipment, pk=parse_uuid(data["shipmentId"], "shipmentId"))
    invoice = services.generate_from_shipment(
        request.user,
        shipment,
        tax_rate=parse_decimal(data, "taxRate", required=False, default=services.DEFAULT_TAX_RATE),
    )
    return JsonResponse(serialize_invoice(invoice), status=201)


@require_GET
@api_login_required
def api_invoice_detail(request, invoice_id: UUID):
    invoice = get_object_or_404(_visible_invoices(request.user), pk=invoice_id)
    return JsonResponse(serialize_invoice(invoice, allowed_next=allowed_next(invoice, request.user)))


@require_GET
@api_login_required
def api_invoice_events(request, invoice_id: UUID):
    invoice = get_object_or_404(_visible_invoices(request.user), pk=invoice_id)
    return JsonResponse({"events": [serialize_history(e) for e in invoice.events.select_related("actor")]})


@csrf_exempt
@require_http_methods(["PUT", "POST"])
@require_roles(*INVOICE_WRITERS)
def api_invoice_submit(request, invoice_id: UUID):
    invoice = get_object_or_404(Invoice, pk=invoice_id)
    data = parse_json_body(request)
    invoice = services.submit_for_approval(invoice, request.user, note=data.get("note", ""))
    return JsonResponse(serialize_invoice(invoice))


@csrf_exempt
@require_http_methods(["PUT", "POST"])
@require_roles(*FINANCE_DESK)
def api_invoice_approve_post(request, invoice_id: UUID):
    invoice = get_object_or_404(Invoice, pk=invoice_id)
    invoice = services.approve_and_post(invoice, request.user)
    return JsonResponse(serialize_invoice(invoice))


@csrf_exempt
@require_http_methods(["PUT", "POST"])
@require_roles(*FINANCE_DESK)
def api_invoice_void(request, invoice_id: UUID):
    invoice = get_object_or_404(Invoice, pk=invoice_id)
    data = parse_json_body(request)
    invoice = services.void_invoice(invoice, request.user, reason=data.get("reason", ""))
    return JsonResponse(serialize_invoice(invoice))


@csrf_exempt
@require_http_methods(["PUT", "POST"])
@require_roles(*FINANCE_DESK)
def api_invoice_close(request, invoice_id: UUID):
    invoice = get_object_or_404(Invoice, pk=invoice_id)
    invoice = services.close_invoice(invoice, request.user)
    return JsonResponse(serialize_invoice(invoice))


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_payments(request):
    if request.method == "GET":
        qs = _visible_payments(request.user)
        status = parse_choice(request.GET, "status", PaymentRequestStatus, required=False)
        if status:
            qs = qs.filter(status=status)
        items, meta = paginate(qs, request)
        return JsonResponse({"payments": [serialize_payment(p) for p in items], "pagination": meta})

    data = parse_json_body(request)
    require_fields(data, "invoiceId", "amount")
    invoice = get_object_or_404(_visible_invoices(request.user), pk=parse_uuid(data["invoiceId"], "invoiceId"))
    payment = services.submit_payment_request(
        request.user,
        invoice,
        parse_decimal(data, "amount"),
        payment_method=parse_choice(
            data, "paymentMethod", PaymentMethod, required=False, default=PaymentMethod.BANK_TRANSFER
        ),
        reference=data.get("reference", ""),
    )
    return JsonResponse(serialize_payment(payment), status=201)


@require_GET
@api_login_required
def api_payment_detail(request, payment_id: UUID):
    payment = get_object_or_404(_visible_payments(request.user), pk=payment_id)
    return JsonResponse(serialize_payment(payment))


@csrf_exempt
@require_POST
@require_roles(*FINANCE_DESK)
def api_payment_confirm(request, payment_id: UUID):
    payment = get_object_or_404(PaymentRequest, pk=payment_id)
    receipt = services.confirm_payment(payment, request.user)
    payment.refresh_from_db()
    return JsonResponse({"payment": serialize_payment(payment), "receipt": serialize_receipt(receipt)})


@csrf_exempt
@require_POST
@require_roles(*FINANCE_DESK)
def api_payment_reject(request, payment_id: UUID):
    payment = get_object_or_404(PaymentRequest, pk=payment_id)
    data = parse_json_body(request)
    payment = services.reject_payment(payment, request.user, reason=data.get("reason", ""))
    return JsonResponse(serialize_payment(payment))

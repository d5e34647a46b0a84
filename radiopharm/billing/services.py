"""Invoice and payment services.

Invoices:
- create_invoice / generate_from_shipment
- submit_for_approval / approve_and_post / void_invoice / close_invoice

Payments:
- submit_payment_request / confirm_payment / reject_payment
"""
import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.utils import timezone

from radiopharm.accounts import roles
from radiopharm.accounts.services import require_linked_customer
from radiopharm.core.exceptions import DomainValidationError, DuplicateEntry, Forbidden
from radiopharm.core.sequence import next_sequence
from radiopharm.lifecycle.exceptions import InvalidStatusTransition
from radiopharm.lifecycle.services import record_creation, transition
from radiopharm.lifecycle.statuses import InvoiceStatus, PaymentRequestStatus, ShipmentStatus
from radiopharm.notifications.models import NotificationType
from radiopharm.notifications.services import notify, notify_role
from radiopharm.orders.models import Customer

from .models import Invoice, InvoiceItem, PaymentMethod, PaymentRequest, ReceiptVoucher

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
DEFAULT_TAX_RATE = Decimal("15")
DEFAULT_PAYMENT_TERMS_DAYS = 30

PAYABLE_STATUSES = (InvoiceStatus.ISSUED_POSTED, InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.OVERDUE)


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# Invoices
# =============================================================================


@transaction.atomic
def create_invoice(
    actor,
    customer: Customer,
    items: list[dict],
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    due_date=None,
    currency: str = "SAR",
    notes: str = "",
    shipment=None,
) -> Invoice:
    """
    Create a DRAFT invoice.

    Args:
        items: dicts with description, quantity, unit_price and optional order
    """
    if not items:
        raise DomainValidationError("An invoice needs at least one item", field_errors={"items": ["Required"]})
    if tax_rate is None:
        tax_rate = DEFAULT_TAX_RATE
    if tax_rate < 0:
        raise DomainValidationError("Tax rate cannot be negative", field_errors={"taxRate": ["Must be zero or more"]})

    lines = []
    for index, item in enumerate(items):
        quantity = Decimal(item.get("quantity", 1))
        unit_price = Decimal(item["unit_price"])
        if quantity <= 0 or unit_price < 0:
            raise DomainValidationError(
                "Invalid invoice item",
                field_errors={f"items[{index}]": ["Quantity must be positive and price not negative"]},
            )
        lines.append((item, quantity, unit_price, _money(quantity * unit_price)))

    subtotal = _money(sum(line_total for *_, line_total in lines))
    tax_amount = _money(subtotal * Decimal(tax_rate) / 100)

    invoice = Invoice.objects.create(
        invoice_number=next_sequence("invoice", prefix="INV-"),
        customer=customer,
        shipment=shipment,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
        currency=currency or "SAR",
        due_date=due_date or (timezone.localdate() + timedelta(days=DEFAULT_PAYMENT_TERMS_DAYS)),
        notes=notes or "",
        created_by=actor,
    )
    InvoiceItem.objects.bulk_create([
        InvoiceItem(
            invoice=invoice,
            order=item.get("order"),
            description=item["description"],
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total,
        )
        for item, quantity, unit_price, line_total in lines
    ])
    record_creation(invoice, actor=actor, note="Invoice created")
    return invoice


@transaction.atomic
def generate_from_shipment(actor, shipment, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Invoice:
    """One item per order of a delivered shipment, at the product's unit price."""
    if shipment.status != ShipmentStatus.DELIVERED:
        raise DomainValidationError(
            f"Shipment {shipment.shipment_number} is {shipment.status}; only delivered shipments can be invoiced",
            field_errors={"shipmentId": ["Shipment is not delivered"]},
        )
    if Invoice.objects.filter(shipment=shipment).exists():
        raise DuplicateEntry(
            f"Shipment {shipment.shipment_number} already has an invoice",
            field_errors={"shipmentId": ["Already invoiced"]},
        )
    items = [
        {
            "order": order,
            "description": f"{order.product.name} {order.requested_activity:g} {order.activity_unit} ({order.order_number})",
            "quantity": 1,
            "unit_price": order.product.unit_price,
        }
        for order in shipment.orders.select_related("product").order_by("order_number")
    ]
    invoice = create_invoice(
        actor,
        shipment.customer,
        items,
        tax_rate=tax_rate,
        notes=f"Generated from shipment {shipment.shipment_number}",
        shipment=shipment,
    )
    logger.info(f"Invoice {invoice.invoice_number} generated from shipment {shipment.shipment_number}")
    return invoice


def submit_for_approval(invoice: Invoice, actor, note: str = "") -> Invoice:
    return transition(invoice, InvoiceStatus.PENDING_APPROVAL, actor=actor, note=note or "Submitted for approval")


@transaction.atomic
def approve_and_post(invoice: Invoice, actor) -> Invoice:
    now = timezone.now()
    invoice = transition(
        invoice,
        InvoiceStatus.ISSUED_POSTED,
        actor=actor,
        note="Invoice approved and posted",
        extra_fields={"approved_by": actor, "issued_at": now, "posted_at": now},
        audit_action="APPROVE_POST",
    )
    notify_role(
        roles.FINANCE,
        "Invoice issued",
        f"Invoice {invoice.invoice_number} has been issued to {invoice.customer.name}",
        type=NotificationType.INVOICE_ISSUED,
        entity_type=Invoice.ENTITY_TYPE,
        entity_id=invoice.pk,
    )
    return invoice


def void_invoice(invoice: Invoice, actor, reason: str) -> Invoice:
    if not reason:
        raise DomainValidationError("Void reason is required", field_errors={"reason": ["This field is required"]})
    return transition(
        invoice,
        InvoiceStatus.CANCELLED_VOIDED,
        actor=actor,
        note=f"Invoice voided: {reason}",
        metadata={"reason": reason},
        extra_fields={"voided_reason": reason},
        audit_action="VOID",
    )


def close_invoice(invoice: Invoice, actor) -> Invoice:
    return transition(
        invoice,
        InvoiceStatus.CLOSED_ARCHIVED,
        actor=actor,
        note="Invoice closed and archived",
        extra_fields={"closed_at": timezone.now()},
        audit_action="CLOSE",
    )


# =============================================================================
# Payments
# =============================================================================


@transaction.atomic
def submit_payment_request(
    actor,
    invoice: Invoice,
    amount: Decimal,
    payment_method: str = PaymentMethod.BANK_TRANSFER,
    reference: str = "",
) -> PaymentRequest:
    """
    Record a payment claim against an open invoice.

    Customer-portal users may only pay their own customer's invoices.
    """
    if actor.has_role(roles.CUSTOMER) and not actor.has_role(*roles.STAFF_ROLES):
        customer = require_linked_customer(actor)
        if invoice.customer_id != customer.pk:
            raise Forbidden("You can only pay invoices of your own organisation")
    if invoice.status not in PAYABLE_STATUSES:
        raise InvalidStatusTransition(
            invoice.status,
            "PAY",
            allowed=[str(s) for s in PAYABLE_STATUSES],
            reason=f"Invoice {invoice.invoice_number} is {invoice.status} and cannot take payments",
        )
    amount = _money(amount)
    outstanding = invoice.outstanding_amount
    if amount <= 0 or amount > outstanding:
        raise DomainValidationError(
            f"Amount must be between 0 and the outstanding {outstanding}",
            field_errors={"amount": [f"Must be greater than 0 and at most {outstanding}"]},
        )

    payment = PaymentRequest.objects.create(
        request_number=next_sequence("payment", prefix="PAY-"),
        invoice=invoice,
        customer=invoice.customer,
        amount=amount,
        payment_method=payment_method or PaymentMethod.BANK_TRANSFER,
        reference=reference or "",
        submitted_by=actor,
    )
    record_creation(payment, actor=actor, note="Payment submitted")
    notify_role(
        roles.FINANCE,
        "Payment submitted",
        f"{payment.request_number}: {amount} {invoice.currency} against {invoice.invoice_number}",
        type=NotificationType.PAYMENT_SUBMITTED,
        entity_type=PaymentRequest.ENTITY_TYPE,
        entity_id=payment.pk,
    )
    return payment


@transaction.atomic
def confirm_payment(payment: PaymentRequest, actor) -> ReceiptVoucher:
    """
    Confirm a pending payment: receipt, paid amount and invoice status in one transaction.

    The invoice moves to PAID once fully covered, otherwise to PARTIALLY_PAID.
    A confirmation that would take the paid amount past the total is refused.
    """
    now = timezone.now()
    payment = transition(
        payment,
        PaymentRequestStatus.CONFIRMED,
        actor=actor,
        note="Payment confirmed",
        extra_fields={"reviewed_by": actor, "reviewed_at": now},
        audit_action="CONFIRM",
    )

    invoice = Invoice.objects.select_for_update().get(pk=payment.invoice_id)
    outstanding = invoice.outstanding_amount
    if payment.amount > outstanding:
        raise DomainValidationError(
            f"Payment {payment.request_number} of {payment.amount} exceeds the outstanding {outstanding}",
            field_errors={"amount": [f"Must be at most {outstanding}"]},
        )

    receipt = ReceiptVoucher.objects.create(
        receipt_number=next_sequence("receipt", prefix="RCV-"),
        payment_request=payment,
        invoice=invoice,
        amount=payment.amount,
        confirmed_by=actor,
    )
    paid = invoice.paid_amount + payment.amount
    target = InvoiceStatus.PAID if paid >= invoice.total_amount else InvoiceStatus.PARTIALLY_PAID
    transition(
        invoice,
        target,
        actor=actor,
        note=f"Payment {payment.request_number} confirmed",
        metadata={"paymentRequestId": str(payment.pk), "receiptNumber": receipt.receipt_number},
        extra_fields={"paid_amount": paid},
        check_roles=False,
    )
    notify(
        payment.submitted_by,
        "Payment confirmed",
        f"Payment {payment.request_number} of {payment.amount} {invoice.currency} was confirmed",
        type=NotificationType.PAYMENT_CONFIRMED,
        entity_type=PaymentRequest.ENTITY_TYPE,
        entity_id=payment.pk,
    )
    return receipt


@transaction.atomic
def reject_payment(payment: PaymentRequest, actor, reason: str) -> PaymentRequest:
    if not reason:
        raise DomainValidationError("Rejection reason is required", field_errors={"reason": ["This field is required"]})
    payment = transition(
        payment,
        PaymentRequestStatus.REJECTED,
        actor=actor,
        note=f"Payment rejected: {reason}",
        metadata={"reason": reason},
        extra_fields={"reviewed_by": actor, "reviewed_at": timezone.now(), "rejection_reason": reason},
        audit_action="REJECT",
    )
    notify(
        payment.submitted_by,
        "Payment rejected",
        f"Payment {payment.request_number} was rejected: {reason}",
        type=NotificationType.PAYMENT_REJECTED,
        entity_type=PaymentRequest.ENTITY_TYPE,
        entity_id=payment.pk,
    )
    return payment

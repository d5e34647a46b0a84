"""Invoices, payment requests and receipts."""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from radiopharm.core.models import UUIDModel
from radiopharm.lifecycle.models import StatusEvent, VersionedStatusModel
from radiopharm.lifecycle.statuses import InvoiceStatus, PaymentRequestStatus


class PaymentMethod(models.TextChoices):
    BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"
    CARD = "CARD", "Card"
    CHEQUE = "CHEQUE", "Cheque"
    CASH = "CASH", "Cash"


class Invoice(VersionedStatusModel):
    invoice_number = models.CharField(max_length=30, unique=True)
    customer = models.ForeignKey("orders.Customer", on_delete=models.PROTECT, related_name="invoices")
    shipment = models.OneToOneField(
        "logistics.Shipment",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice",
    )
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("15"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=3, default="SAR")
    due_date = models.DateField()
    issued_at = models.DateTimeField(null=True, blank=True)
    posted_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    voided_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=30, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    ENTITY_TYPE = "INVOICE"
    STATUS_EVENT_MODEL = "billing.InvoiceEvent"
    STATUS_EVENT_FK = "invoice"

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(status__in=InvoiceStatus.values), name="invoice_status_valid"),
        ]

    def __str__(self):
        return self.invoice_number

    @property
    def outstanding_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount


class InvoiceItem(UUIDModel):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="items")
    order = models.ForeignKey("orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    description = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("1"))
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    line_total = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["description"]

    def __str__(self):
        return self.description


class InvoiceEvent(StatusEvent):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="events")


class PaymentRequest(VersionedStatusModel):
    """A customer's claim to have paid (part of) an invoice, pending Finance review."""

    request_number = models.CharField(max_length=30, unique=True)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="payment_requests")
    customer = models.ForeignKey("orders.Customer", on_delete=models.PROTECT, related_name="payment_requests")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.BANK_TRANSFER)
    reference = models.CharField(max_length=100, blank=True)
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="submitted_payments",
    )
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    status = models.CharField(
        max_length=20, choices=PaymentRequestStatus.choices, default=PaymentRequestStatus.PENDING, db_index=True
    )

    ENTITY_TYPE = "PAYMENT_REQUEST"
    STATUS_EVENT_MODEL = "billing.PaymentRequestEvent"
    STATUS_EVENT_FK = "payment_request"

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(status__in=PaymentRequestStatus.values), name="payment_request_status_valid"
            ),
        ]

    def __str__(self):
        return self.request_number


class PaymentRequestEvent(StatusEvent):
    payment_request = models.ForeignKey(PaymentRequest, on_delete=models.CASCADE, related_name="events")


class ReceiptVoucher(UUIDModel):
    receipt_number = models.CharField(max_length=30, unique=True)
    payment_request = models.OneToOneField(PaymentRequest, on_delete=models.PROTECT, related_name="receipt")
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="receipts")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    confirmed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    ENTITY_TYPE = "RECEIPT_VOUCHER"

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.receipt_number

"""Closed status vocabularies.

Values are wire-level contracts: clients send exactly these strings.
"""
from django.db import models


class OrderStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    SUBMITTED = "SUBMITTED", "Submitted"
    VALIDATED = "VALIDATED", "Validated"
    SCHEDULED = "SCHEDULED", "Scheduled"
    IN_PRODUCTION = "IN_PRODUCTION", "In production"
    QC_PENDING = "QC_PENDING", "QC pending"
    RELEASED = "RELEASED", "Released"
    DISPATCHED = "DISPATCHED", "Dispatched"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"
    REJECTED = "REJECTED", "Rejected"
    FAILED_QC = "FAILED_QC", "Failed QC"
    REWORK = "REWORK", "Rework"


class BatchStatus(models.TextChoices):
    PLANNED = "PLANNED", "Planned"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    COMPLETED = "COMPLETED", "Completed"
    QC_PENDING = "QC_PENDING", "QC pending"
    QC_IN_PROGRESS = "QC_IN_PROGRESS", "QC in progress"
    QC_PASSED = "QC_PASSED", "QC passed"
    QC_FAILED = "QC_FAILED", "QC failed"
    RELEASED = "RELEASED", "Released"
    CANCELLED = "CANCELLED", "Cancelled"


class ShipmentStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    READY_TO_PACK = "READY_TO_PACK", "Ready to pack"
    PACKED = "PACKED", "Packed"
    ASSIGNED_TO_DRIVER = "ASSIGNED_TO_DRIVER", "Assigned to driver"
    ACCEPTED_BY_DRIVER = "ACCEPTED_BY_DRIVER", "Accepted by driver"
    PICKED_UP = "PICKED_UP", "Picked up"
    IN_TRANSIT = "IN_TRANSIT", "In transit"
    DELAYED = "DELAYED", "Delayed"
    ARRIVED = "ARRIVED", "Arrived"
    DELIVERED = "DELIVERED", "Delivered"
    DELIVERY_FAILED = "DELIVERY_FAILED", "Delivery failed"
    RETURNED = "RETURNED", "Returned"
    CANCELLED = "CANCELLED", "Cancelled"


class InvoiceStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    PENDING_APPROVAL = "PENDING_APPROVAL", "Pending approval"
    ISSUED_POSTED = "ISSUED_POSTED", "Issued"
    PARTIALLY_PAID = "PARTIALLY_PAID", "Partially paid"
    PAID = "PAID", "Paid"
    OVERDUE = "OVERDUE", "Overdue"
    CLOSED_ARCHIVED = "CLOSED_ARCHIVED", "Closed"
    CANCELLED_VOIDED = "CANCELLED_VOIDED", "Voided"


class PaymentRequestStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    REJECTED = "REJECTED", "Rejected"


class TicketStatus(models.TextChoices):
    NEW = "NEW", "New"
    OPEN = "OPEN", "Open"
    IN_PROGRESS = "IN_PROGRESS", "In progress"
    WAITING_FOR_USER = "WAITING_FOR_USER", "Waiting for user"
    WAITING_FOR_ADMIN = "WAITING_FOR_ADMIN", "Waiting for support"
    RESOLVED = "RESOLVED", "Resolved"
    CLOSED = "CLOSED", "Closed"
    CANCELLED = "CANCELLED", "Cancelled"

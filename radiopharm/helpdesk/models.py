"""Support tickets and their conversation."""
from django.conf import settings
from django.db import models
from django.db.models import Q

from radiopharm.core.models import TimeStampedModel, UUIDModel
from radiopharm.lifecycle.models import StatusEvent, VersionedStatusModel
from radiopharm.lifecycle.statuses import TicketStatus


class TicketCategory(models.TextChoices):
    ORDER = "ORDER", "Order"
    DELIVERY = "DELIVERY", "Delivery"
    BILLING = "BILLING", "Billing"
    QUALITY = "QUALITY", "Quality"
    TECHNICAL = "TECHNICAL", "Technical"
    ACCOUNT = "ACCOUNT", "Account"
    OTHER = "OTHER", "Other"


class TicketPriority(models.TextChoices):
    LOW = "LOW", "Low"
    NORMAL = "NORMAL", "Normal"
    HIGH = "HIGH", "High"
    URGENT = "URGENT", "Urgent"


class SupportTicket(VersionedStatusModel):
    ticket_number = models.CharField(max_length=30, unique=True)
    subject = models.CharField(max_length=255)
    description = models.TextField()
    category = models.CharField(max_length=20, choices=TicketCategory.choices, default=TicketCategory.OTHER)
    priority = models.CharField(max_length=10, choices=TicketPriority.choices, default=TicketPriority.NORMAL)
    customer = models.ForeignKey(
        "orders.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tickets",
    )
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="tickets")
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tickets",
    )
    sla_resolve_due_at = models.DateTimeField(null=True, blank=True)
    sla_resolve_met = models.BooleanField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=TicketStatus.choices, default=TicketStatus.NEW, db_index=True)

    ENTITY_TYPE = "TICKET"
    STATUS_EVENT_MODEL = "helpdesk.TicketEvent"
    STATUS_EVENT_FK = "ticket"

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(status__in=TicketStatus.values), name="ticket_status_valid"),
        ]

    def __str__(self):
        return self.ticket_number


class TicketMessage(UUIDModel, TimeStampedModel):
    ticket = models.ForeignKey(SupportTicket, on_delete=models.CASCADE, related_name="messages")
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+")
    body = models.TextField()
    is_internal = models.BooleanField(default=False)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.ticket} by {self.author}"


class TicketEvent(StatusEvent):
    ticket = models.ForeignKey(SupportTicket, on_delete=models.CASCADE, related_name="events")

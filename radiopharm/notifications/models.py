"""In-app notification inbox."""
from django.conf import settings
from django.db import models

from radiopharm.core.models import TimeStampedModel, UUIDModel


class NotificationType(models.TextChoices):
    APPROVAL_REQUIRED = "APPROVAL_REQUIRED", "Approval required"
    APPROVAL_REMINDER = "APPROVAL_REMINDER", "Approval reminder"
    APPROVAL_APPROVED = "APPROVAL_APPROVED", "Approval approved"
    APPROVAL_REJECTED = "APPROVAL_REJECTED", "Approval rejected"
    INVOICE_ISSUED = "INVOICE_ISSUED", "Invoice issued"
    PAYMENT_SUBMITTED = "PAYMENT_SUBMITTED", "Payment submitted"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED", "Payment confirmed"
    PAYMENT_REJECTED = "PAYMENT_REJECTED", "Payment rejected"
    TICKET_UPDATE = "TICKET_UPDATE", "Ticket update"
    SYSTEM = "SYSTEM", "System"


class Notification(UUIDModel, TimeStampedModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=40, choices=NotificationType.choices, default=NotificationType.SYSTEM)
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)
    entity_type = models.CharField(max_length=50, blank=True)
    entity_id = models.CharField(max_length=50, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["user", "is_read"])]

    def __str__(self):
        return f"{self.user}: {self.title}"

"""
Workflow definitions and the approval requests running against them.

A WorkflowDefinition governs one entity type and, optionally, one trigger
status. Its ApprovalSteps are numbered 1..n without gaps; each names the one
role allowed to act on it. An ApprovalRequest points at a single entity and
tracks which step is pending; ApprovalActions record each decision and are
never updated.
"""
from django.conf import settings
from django.db import models

from radiopharm.core.models import BaseModel, TimeStampedModel, UUIDModel


class EntityType(models.TextChoices):
    ORDER = "ORDER", "Order"
    BATCH = "BATCH", "Batch"
    SHIPMENT = "SHIPMENT", "Shipment"
    INVOICE = "INVOICE", "Invoice"
    PAYMENT_REQUEST = "PAYMENT_REQUEST", "Payment request"
    TICKET = "TICKET", "Support ticket"
    CUSTOMER = "CUSTOMER", "Customer"


class RequestStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"


class Decision(models.TextChoices):
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"


class Priority(models.TextChoices):
    LOW = "LOW", "Low"
    NORMAL = "NORMAL", "Normal"
    HIGH = "HIGH", "High"
    URGENT = "URGENT", "Urgent"


class WorkflowDefinition(BaseModel):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    entity_type = models.CharField(max_length=30, choices=EntityType.choices, db_index=True)
    trigger_status = models.CharField(
        max_length=30,
        null=True,
        blank=True,
        help_text="Status that starts this workflow (null = on creation)",
    )
    requires_all_steps = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return self.name

    @property
    def is_referenced(self) -> bool:
        return self.requests.exists()


class ApprovalStep(UUIDModel, TimeStampedModel):
    workflow = models.ForeignKey(WorkflowDefinition, on_delete=models.CASCADE, related_name="steps")
    step_order = models.PositiveIntegerField()
    name = models.CharField(max_length=200)
    approver_role = models.ForeignKey("accounts.Role", on_delete=models.PROTECT, related_name="approval_steps")
    timeout_hours = models.PositiveIntegerField(null=True, blank=True)
    is_required = models.BooleanField(default=True)
    can_delegate = models.BooleanField(default=False)

    class Meta:
        ordering = ["workflow", "step_order"]
        constraints = [
            models.UniqueConstraint(fields=["workflow", "step_order"], name="unique_step_order_per_workflow"),
        ]

    def __str__(self):
        return f"{self.workflow.name} #{self.step_order} {self.name}"


class ApprovalRequest(UUIDModel, TimeStampedModel):
    workflow = models.ForeignKey(WorkflowDefinition, on_delete=models.PROTECT, related_name="requests")
    entity_type = models.CharField(max_length=30, choices=EntityType.choices)
    entity_id = models.CharField(max_length=50)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approval_requests",
    )
    current_step_order = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=RequestStatus.choices, default=RequestStatus.PENDING)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)
    notes = models.TextField(blank=True)
    due_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_reminded_at = models.DateTimeField(null=True, blank=True)

    ENTITY_TYPE = "APPROVAL_REQUEST"

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["status", "current_step_order"]),
        ]

    def __str__(self):
        return f"{self.workflow.name}: {self.entity_type} {self.entity_id} ({self.status})"

    @property
    def current_step(self):
        return self.workflow.steps.filter(step_order=self.current_step_order).select_related("approver_role").first()


class ApprovalAction(UUIDModel):
    """Immutable record of one approver's decision on one step."""

    request = models.ForeignKey(ApprovalRequest, on_delete=models.CASCADE, related_name="actions")
    step = models.ForeignKey(ApprovalStep, on_delete=models.PROTECT, related_name="actions")
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="approval_actions")
    action = models.CharField(max_length=10, choices=Decision.choices)
    comments = models.TextField(blank=True)
    signature = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.actor} {self.action} step {self.step.step_order}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Approval actions are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Approval actions are immutable")

"""Audit log model.

Audit logs are append-only. No soft delete: they're immutable records of
who did what to which entity, with full before/after snapshots.
"""
import uuid

from django.conf import settings
from django.db import models


class AuditAction(models.TextChoices):
    CREATE = "CREATE", "Create"
    UPDATE = "UPDATE", "Update"
    DELETE = "DELETE", "Delete"
    STATUS_CHANGE = "STATUS_CHANGE", "Status change"
    LOGIN = "LOGIN", "Login"
    LOGOUT = "LOGOUT", "Logout"
    RELEASE = "RELEASE", "Batch release"
    DISPATCH = "DISPATCH", "Dispatch"
    DELIVER = "DELIVER", "Deliver"
    SUBMIT_APPROVAL = "SUBMIT_APPROVAL", "Submit for approval"
    APPROVE_POST = "APPROVE_POST", "Approve and post"
    VOID = "VOID", "Void"
    CLOSE = "CLOSE", "Close"
    CONFIRM = "CONFIRM", "Confirm"
    REJECT = "REJECT", "Reject"
    APPROVAL_ACTION = "APPROVAL_ACTION", "Approval action"
    ASSIGN = "ASSIGN", "Assign"
    REPLY = "REPLY", "Reply"


class AuditLog(models.Model):
    """Immutable audit log entry."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    # Actor - who performed the action (null for system actions)
    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    actor_display = models.CharField(max_length=200, blank=True)

    action = models.CharField(max_length=50, db_index=True)

    # Target - what was affected
    entity_type = models.CharField(max_length=50, blank=True, db_index=True)
    entity_id = models.CharField(max_length=50, blank=True, db_index=True)
    object_repr = models.CharField(max_length=200, blank=True)

    # Snapshots and the field-level diff between them
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    changes = models.JSONField(
        default=dict,
        blank=True,
        help_text='{"field": {"old": x, "new": y}}',
    )

    # Request context
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    request_id = models.CharField(max_length=100, blank=True)
    trace_id = models.CharField(max_length=100, blank=True)

    metadata = models.JSONField(default=dict, blank=True)
    is_system = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["actor_user", "created_at"]),
            models.Index(fields=["entity_type", "entity_id"]),
            models.Index(fields=["action", "created_at"]),
        ]

    def __str__(self):
        actor = self.actor_display or "System"
        return f"{actor} {self.action} {self.entity_type} {self.entity_id}"

    def save(self, *args, **kwargs):
        # Append-only
        if self.pk and AuditLog.objects.filter(pk=self.pk).exists():
            raise ValueError("Audit logs are immutable and cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit logs are immutable and cannot be deleted")

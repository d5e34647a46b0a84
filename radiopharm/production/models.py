"""Production batches, their events and QP release records."""
from django.conf import settings
from django.db import models
from django.db.models import Q

from radiopharm.core.models import UUIDModel
from radiopharm.lifecycle.models import StatusEvent, VersionedStatusModel
from radiopharm.lifecycle.statuses import BatchStatus


class ReleaseType(models.TextChoices):
    FULL = "FULL", "Full release"
    CONDITIONAL = "CONDITIONAL", "Conditional release"


class Batch(VersionedStatusModel):
    """One production run of a product, feeding one or more orders."""

    batch_number = models.CharField(max_length=30, unique=True)
    product = models.ForeignKey("orders.Product", on_delete=models.PROTECT, related_name="batches")
    planned_start = models.DateTimeField()
    planned_end = models.DateTimeField()
    actual_start = models.DateTimeField(null=True, blank=True)
    actual_end = models.DateTimeField(null=True, blank=True)
    target_activity = models.FloatField()
    actual_activity = models.FloatField(null=True, blank=True)
    activity_unit = models.CharField(max_length=10, default="mCi")
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=30, choices=BatchStatus.choices, default=BatchStatus.PLANNED, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    ENTITY_TYPE = "BATCH"
    STATUS_EVENT_MODEL = "production.BatchEvent"
    STATUS_EVENT_FK = "batch"

    class Meta:
        ordering = ["-planned_start"]
        verbose_name_plural = "batches"
        constraints = [
            models.CheckConstraint(condition=Q(status__in=BatchStatus.values), name="batch_status_valid"),
        ]

    def __str__(self):
        return self.batch_number


class BatchEvent(StatusEvent):
    batch = models.ForeignKey(Batch, on_delete=models.CASCADE, related_name="events")


class BatchRelease(UUIDModel):
    """Qualified Person's signed release of a batch. Immutable."""

    batch = models.ForeignKey(Batch, on_delete=models.PROTECT, related_name="releases")
    released_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="+")
    release_type = models.CharField(max_length=20, choices=ReleaseType.choices, default=ReleaseType.FULL)
    electronic_signature = models.CharField(max_length=255)
    signature_timestamp = models.DateTimeField()
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    ENTITY_TYPE = "BATCH_RELEASE"

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.batch} {self.release_type}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Batch releases are immutable")
        super().save(*args, **kwargs)

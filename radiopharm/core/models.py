"""Abstract bases shared by every app, plus the document-number counter."""
import uuid

from django.db import models
from django.utils import timezone


class UUIDModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class LiveManager(models.Manager):
    """Hides rows whose deleted_at is set."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class BaseModel(UUIDModel, TimeStampedModel):
    """
    UUID key, timestamps and soft delete.

    delete() only stamps deleted_at; `objects` skips those rows and
    `all_objects` still sees them. Use hard_delete() to remove the row.
    """

    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def delete(self, using=None, keep_parents=False):
        self.deleted_at = timezone.now()
        self.save(using=using, update_fields=["deleted_at", "updated_at"])

    def hard_delete(self, using=None, keep_parents=False):
        return super().delete(using=using, keep_parents=keep_parents)


class Sequence(models.Model):
    """Last number handed out for a scope such as "order" or "invoice"."""

    scope = models.CharField(max_length=50, unique=True)
    prefix = models.CharField(max_length=20, blank=True)
    last_value = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["scope"]

    def __str__(self):
        return f"{self.scope} @ {self.last_value}"

    def render(self, width: int = 6) -> str:
        return f"{self.prefix}{timezone.now().year}-{self.last_value:0{width}d}"

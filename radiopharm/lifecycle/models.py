"""Abstract models shared by every entity with a status lifecycle."""
import uuid

from django.apps import apps
from django.conf import settings
from django.db import models

from radiopharm.core.models import BaseModel


class VersionedStatusModel(BaseModel):
    """Entity with a closed-set status and an optimistic-concurrency version.

    Subclasses declare:
        ENTITY_TYPE: key of the entity's StatusMachine ("ORDER", ...)
        STATUS_EVENT_MODEL: "app_label.ModelName" of the event table
        STATUS_EVENT_FK: name of the event table's FK back to this model

    status is only ever written through lifecycle.services.transition(), and
    every write to the row bumps version.
    """

    ENTITY_TYPE = None
    STATUS_EVENT_MODEL = None
    STATUS_EVENT_FK = None

    version = models.PositiveIntegerField(default=1)

    class Meta:
        abstract = True

    @classmethod
    def status_event_model(cls):
        return apps.get_model(cls.STATUS_EVENT_MODEL)

    def record_status_event(self, **fields):
        """Append one row to this entity's event table."""
        return self.status_event_model().objects.create(**{self.STATUS_EVENT_FK: self}, **fields)


class StatusEvent(models.Model):
    """Append-only record of one status change.

    from_status is blank for the creation event.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    from_status = models.CharField(max_length=30, blank=True)
    to_status = models.CharField(max_length=30)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    actor_role = models.CharField(max_length=100, blank=True)
    note = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        abstract = True
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.from_status or '-'} -> {self.to_status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Status events are immutable")
        super().save(*args, **kwargs)

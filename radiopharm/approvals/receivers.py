"""Start approval workflows from lifecycle events."""
from django.dispatch import receiver

from radiopharm.lifecycle.signals import entity_created, status_changed

from .models import Priority
from .services import trigger_workflow

# Priority of requests started by a given (entity type, status)
TRIGGER_PRIORITIES = {
    ("ORDER", "SUBMITTED"): Priority.NORMAL,
    ("BATCH", "QC_PASSED"): Priority.HIGH,
}


@receiver(status_changed)
def trigger_on_status_change(sender, instance, entity_type, from_status, to_status, actor=None, **kwargs):
    trigger_workflow(
        entity_type,
        instance.pk,
        trigger_status=to_status,
        requested_by=actor,
        priority=TRIGGER_PRIORITIES.get((entity_type, to_status), Priority.NORMAL),
        notes=f"{instance} moved from {from_status} to {to_status}",
    )


@receiver(entity_created)
def trigger_on_create(sender, instance, entity_type, actor=None, **kwargs):
    trigger_workflow(
        entity_type,
        instance.pk,
        trigger_status=None,
        requested_by=actor,
        notes=f"{instance} created",
    )

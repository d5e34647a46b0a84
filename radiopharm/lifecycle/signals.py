"""Lifecycle signals.

status_changed(sender=model, instance, entity_type, from_status, to_status, actor)
    Sent inside the transition's transaction, after the event and audit rows.

entity_created(sender=model, instance, entity_type, actor)
    Sent when a lifecycle entity is first recorded.
"""
from django.dispatch import Signal

status_changed = Signal()
entity_created = Signal()

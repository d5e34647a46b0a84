"""Notification fan-out.

Delivery is in-app only: rows in the Notification table read by the
notifications API.
"""
import logging

from django.utils import timezone

from radiopharm.accounts.services import users_with_role

from .models import Notification, NotificationType

logger = logging.getLogger(__name__)


def notify(user, title, message="", type=NotificationType.SYSTEM, entity_type="", entity_id=""):
    """Create one notification for user. Returns None when user is None."""
    if user is None:
        return None
    return Notification.objects.create(
        user=user,
        type=type,
        title=title[:200],
        message=message,
        entity_type=entity_type or "",
        entity_id=str(entity_id) if entity_id else "",
    )


def notify_role(role_name, title, message="", type=NotificationType.SYSTEM, entity_type="", entity_id=""):
    """Notify every current holder of role_name. Returns the notifications created."""
    created = [
        notify(user, title, message, type=type, entity_type=entity_type, entity_id=entity_id)
        for user in users_with_role(role_name)
    ]
    if not created:
        logger.warning(f"No active users hold role '{role_name}' for notification '{title}'")
    return created


def mark_read(notification):
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=["is_read", "read_at", "updated_at"])
    return notification


def mark_all_read(user) -> int:
    return Notification.objects.filter(user=user, is_read=False).update(
        is_read=True, read_at=timezone.now(), updated_at=timezone.now()
    )

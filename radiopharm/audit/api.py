"""Public API for audit logging.

    from radiopharm.audit.api import log, log_event, snapshot

    # Model operation with before/after snapshots
    before = snapshot(order)
    ...mutate...
    log("UPDATE", obj=order, actor=user, old_values=before)

    # Non-model event
    log_event("LOGIN", actor=user)

Audit writes are best-effort: they run in a savepoint of the caller's
transaction, and a failed write is logged and swallowed so the business
operation it documents still commits.
"""
import json
import logging

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction

from .middleware import get_current_request, get_request_id
from .models import AuditLog

logger = logging.getLogger(__name__)

REDACTED = "***"

DEFAULT_REDACT_FIELDS = ("password", "secret", "token", "api_key")


def _redact_fields():
    return [f.lower() for f in getattr(settings, "AUDIT_REDACT_FIELDS", DEFAULT_REDACT_FIELDS)]


def _is_sensitive(field_name: str, redact_fields) -> bool:
    name = field_name.lower()
    return any(marker in name for marker in redact_fields)


def redact(values):
    """Mask sensitive keys in a snapshot dict (recursively)."""
    if not isinstance(values, dict):
        return values
    redact_fields = _redact_fields()
    result = {}
    for key, value in values.items():
        if _is_sensitive(str(key), redact_fields) and value not in (None, ""):
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = redact(value)
        else:
            result[key] = value
    return result


def _json_safe(values):
    if values is None:
        return None
    return json.loads(json.dumps(values, cls=DjangoJSONEncoder))


def snapshot(instance, exclude=()) -> dict:
    """JSON-safe dict of an instance's concrete field values.

    Foreign keys are recorded by id under the field name.
    """
    data = {}
    for field in instance._meta.concrete_fields:
        if field.name in exclude:
            continue
        data[field.name] = field.value_from_object(instance)
    return _json_safe(data)


def entity_type_for(obj) -> str:
    return getattr(obj, "ENTITY_TYPE", None) or obj._meta.model_name.upper()


def diff(old_values, new_values) -> dict:
    """Field-level changes between two snapshots."""
    old_values = old_values or {}
    new_values = new_values or {}
    changes = {}
    for key in sorted(set(old_values) | set(new_values)):
        old = old_values.get(key)
        new = new_values.get(key)
        if old != new:
            changes[key] = {"old": old, "new": new}
    return changes


def _get_client_ip(request):
    if not request:
        return None
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def _get_user_agent(request):
    if not request:
        return ""
    return request.META.get("HTTP_USER_AGENT", "")[:500]


def _get_actor_display(actor):
    if not actor:
        return ""
    if getattr(actor, "email", None):
        return actor.email
    if getattr(actor, "username", None):
        return actor.username
    return str(actor)


def _write(**fields):
    try:
        with transaction.atomic():
            return AuditLog.objects.create(**fields)
    except (DatabaseError, TypeError, ValueError):
        logger.exception(
            f"Audit write failed for {fields.get('action')} "
            f"{fields.get('entity_type')} {fields.get('entity_id')}"
        )
        return None


def log(
    action,
    obj=None,
    entity_type=None,
    entity_id=None,
    obj_repr=None,
    actor=None,
    old_values=None,
    new_values=None,
    request=None,
    metadata=None,
    trace_id=None,
):
    """Log an audit event for an entity.

    Args:
        action: CREATE, UPDATE, DELETE, STATUS_CHANGE, RELEASE, ...
        obj: Model instance (fills entity type/id/repr and, unless given,
            new_values from a fresh snapshot)
        entity_type/entity_id: Target when obj is not provided
        actor: User who performed the action (None = system)
        old_values: Snapshot before the mutation
        new_values: Snapshot after the mutation
        request: HTTP request (defaults to the thread-local request)
        metadata: Additional context as dict

    Returns:
        AuditLog instance, or None if the write failed
    """
    if obj is not None:
        entity_type = entity_type or entity_type_for(obj)
        entity_id = obj.pk
        obj_repr = str(obj)[:200] if obj_repr is None else obj_repr
        if new_values is None and action != "DELETE":
            new_values = snapshot(obj)

    old_values = redact(_json_safe(old_values))
    new_values = redact(_json_safe(new_values))
    request = request or get_current_request()

    return _write(
        action=action,
        entity_type=entity_type or "",
        entity_id=str(entity_id) if entity_id else "",
        object_repr=obj_repr[:200] if obj_repr else "",
        actor_user=actor if getattr(actor, "pk", None) else None,
        actor_display=_get_actor_display(actor)[:200],
        old_values=old_values,
        new_values=new_values,
        changes=diff(old_values, new_values) if old_values is not None else {},
        metadata=redact(_json_safe(metadata)) or {},
        ip_address=_get_client_ip(request),
        user_agent=_get_user_agent(request),
        request_id=getattr(request, "audit_request_id", None) or get_request_id() or "",
        trace_id=trace_id or "",
        is_system=actor is None,
    )


def log_event(action, actor=None, request=None, metadata=None):
    """Log a non-model event (login, logout, ...)."""
    request = request or get_current_request()
    return _write(
        action=action,
        actor_user=actor if getattr(actor, "pk", None) else None,
        actor_display=_get_actor_display(actor)[:200],
        metadata=redact(_json_safe(metadata)) or {},
        ip_address=_get_client_ip(request),
        user_agent=_get_user_agent(request),
        request_id=getattr(request, "audit_request_id", None) or get_request_id() or "",
        is_system=actor is None,
    )

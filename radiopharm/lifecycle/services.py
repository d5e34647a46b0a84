"""Service functions for status lifecycle management.

Provides:
- check_transition: pure guard decision for an instance and actor
- allowed_next: statuses the actor may request next
- transition: guarded, versioned status change with event, audit and signal
- update_versioned: versioned non-status update with audit
- record_creation: creation event, audit and entity_created signal
- cascade: system move of dependent entities that skips illegal ones
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from radiopharm.audit.api import log, snapshot
from radiopharm.core.exceptions import Forbidden, NotFound, DomainValidationError

from .conf import get_validators_for
from .exceptions import InvalidStatusTransition, StaleVersion, TransitionBlocked
from .machines import get_machine
from .signals import entity_created, status_changed

logger = logging.getLogger(__name__)


def _role_names(actor, check_roles=True):
    """None means a system actor: the role check is skipped."""
    if actor is None or not check_roles:
        return None
    return actor.role_names()


def _actor_role(actor) -> str:
    if actor is None:
        return "SYSTEM"
    return getattr(actor, "primary_role_name", "") or ""


def check_transition(instance, to_status: str, actor=None, check_roles: bool = True):
    """Guard decision for moving instance to to_status (no side effects)."""
    machine = get_machine(instance.ENTITY_TYPE)
    return machine.check(instance.status, to_status, _role_names(actor, check_roles))


def allowed_next(instance, actor=None) -> list[str]:
    """Statuses reachable from the instance's status that the actor may request."""
    machine = get_machine(instance.ENTITY_TYPE)
    return machine.targets_for(instance.status, _role_names(actor))


def run_validators(instance, from_status: str, to_status: str) -> tuple[list[str], list[str]]:
    hard_blocks = []
    soft_warnings = []
    for validator in get_validators_for(instance.ENTITY_TYPE):
        blocks, warnings = validator.validate(instance, from_status, to_status)
        hard_blocks.extend(blocks)
        soft_warnings.extend(warnings)
    return hard_blocks, soft_warnings


def _lock(instance):
    model = type(instance)
    try:
        return model._default_manager.select_for_update().get(pk=instance.pk)
    except model.DoesNotExist:
        raise NotFound(f"{instance.ENTITY_TYPE} {instance.pk} not found")


def _write_versioned(current, changes: dict):
    """Compare-and-swap on version. Returns the refreshed row."""
    model = type(current)
    changes = dict(changes)
    changes["version"] = F("version") + 1
    changes["updated_at"] = timezone.now()
    rows = model._default_manager.filter(pk=current.pk, version=current.version).update(**changes)
    if rows != 1:
        raise StaleVersion(current.ENTITY_TYPE, current.pk, expected_version=current.version)
    current.refresh_from_db()
    return current


@transaction.atomic
def transition(
    instance,
    to_status: str,
    actor=None,
    note: str = "",
    metadata: dict = None,
    extra_fields: dict = None,
    audit_action: str = "STATUS_CHANGE",
    check_roles: bool = True,
    expected_version: int = None,
):
    """
    Move an entity to a new status.

    The row is re-read under select_for_update and the guard runs against
    the stored status, not the caller's copy. The write is a compare-and-swap
    on version, so a stale copy can never overwrite a newer transition.

    Args:
        instance: A VersionedStatusModel instance
        to_status: Requested status
        actor: User performing the change (None = system)
        note: Free text recorded on the event
        metadata: Extra context recorded on the event and audit row
        extra_fields: Other columns written in the same UPDATE
        audit_action: Audit action kind (STATUS_CHANGE, RELEASE, VOID, ...)
        check_roles: False for moves the system makes on the actor's behalf
        expected_version: Client's version (If-Match); mismatch -> CONFLICT

    Returns:
        The refreshed instance (the caller's object is refreshed too)

    Raises:
        InvalidStatusTransition: Pair not in the allow-list
        Forbidden: Actor's roles may not request to_status
        TransitionBlocked: A configured validator refused
        StaleVersion: Row version moved (or expected_version mismatch)
    """
    machine = get_machine(instance.ENTITY_TYPE)
    current = _lock(instance)

    if expected_version is not None and current.version != expected_version:
        raise StaleVersion(
            current.ENTITY_TYPE, current.pk, expected_version=expected_version, actual_version=current.version
        )

    from_status = current.status
    decision = machine.check(from_status, to_status, _role_names(actor, check_roles))
    if not decision.allowed:
        if decision.code == "FORBIDDEN":
            raise Forbidden(
                decision.reason,
                details={"currentStatus": from_status, "attemptedAction": str(to_status)},
            )
        if decision.code == "VALIDATION_ERROR":
            raise DomainValidationError(
                decision.reason,
                field_errors={"status": [f"Must be one of: {', '.join(machine.statuses)}"]},
            )
        raise InvalidStatusTransition(
            from_status,
            str(to_status),
            allowed=machine.allowed_targets(from_status),
            reason=decision.reason,
        )

    hard_blocks, soft_warnings = run_validators(current, from_status, to_status)
    if hard_blocks:
        raise TransitionBlocked(from_status, str(to_status), hard_blocks)

    old_values = snapshot(current)
    changes = dict(extra_fields or {})
    changes["status"] = to_status
    current = _write_versioned(current, changes)

    event_metadata = dict(metadata or {})
    if soft_warnings:
        event_metadata["warnings"] = soft_warnings

    current.record_status_event(
        from_status=from_status,
        to_status=to_status,
        actor=actor,
        actor_role=_actor_role(actor),
        note=note or "",
        metadata=event_metadata,
    )
    log(
        audit_action,
        obj=current,
        actor=actor,
        old_values=old_values,
        metadata={"fromStatus": from_status, "toStatus": str(to_status), "note": note or "", **event_metadata},
    )
    logger.info(f"{current.ENTITY_TYPE} {current.pk} {from_status} -> {to_status} by {_actor_role(actor)}")

    status_changed.send(
        sender=type(current),
        instance=current,
        entity_type=current.ENTITY_TYPE,
        from_status=from_status,
        to_status=str(to_status),
        actor=actor,
    )

    if current is not instance:
        instance.refresh_from_db()
    return current


@transaction.atomic
def update_versioned(
    instance,
    changes: dict,
    actor=None,
    expected_version: int = None,
    audit_action: str = "UPDATE",
    metadata: dict = None,
    allowed_statuses=None,
):
    """
    Apply a non-status update under the same version discipline as transition().

    allowed_statuses is checked against the locked row, not the caller's copy.
    """
    if "status" in changes:
        raise DomainValidationError("Use transition() to change status")

    current = _lock(instance)
    if expected_version is not None and current.version != expected_version:
        raise StaleVersion(
            current.ENTITY_TYPE, current.pk, expected_version=expected_version, actual_version=current.version
        )
    if allowed_statuses is not None and current.status not in allowed_statuses:
        raise InvalidStatusTransition(
            current.status,
            audit_action,
            reason=f"{current.ENTITY_TYPE} cannot be modified in status '{current.status}'",
        )

    old_values = snapshot(current)
    current = _write_versioned(current, changes)
    log(audit_action, obj=current, actor=actor, old_values=old_values, metadata=metadata)

    if current is not instance:
        instance.refresh_from_db()
    return current


def record_creation(instance, actor=None, note: str = "", metadata: dict = None):
    """Creation event (blank from_status), CREATE audit row and entity_created signal."""
    instance.refresh_from_db()
    instance.record_status_event(
        from_status="",
        to_status=instance.status,
        actor=actor,
        actor_role=_actor_role(actor),
        note=note,
        metadata=metadata or {},
    )
    log("CREATE", obj=instance, actor=actor, metadata=metadata)
    entity_created.send(
        sender=type(instance),
        instance=instance,
        entity_type=instance.ENTITY_TYPE,
        actor=actor,
    )
    return instance


def cascade(instances, to_status: str, actor=None, note: str = "", metadata: dict = None) -> list:
    """Move dependent entities along with a parent, as a system move.

    The role check is skipped but the allow-list is not: an instance that
    cannot legally reach to_status is skipped and logged. Returns the
    instances that moved.
    """
    moved = []
    for instance in instances:
        if instance.status == to_status:
            continue
        try:
            transition(instance, to_status, actor=actor, note=note, metadata=metadata, check_roles=False)
        except InvalidStatusTransition as exc:
            logger.warning(f"{instance.ENTITY_TYPE} {instance} left in {instance.status}, not {to_status}: {exc.message}")
            continue
        moved.append(instance)
    return moved

"""Approval workflow services.

Provides:
- create_workflow_definition / update_workflow_definition
- trigger_workflow: start a request when a definition matches
- process_approval: record one decision and advance or close the request
- pending_for_user / approval_history / latest_request
- overdue_requests / send_reminders
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from radiopharm.accounts.models import Role
from radiopharm.audit.api import log, snapshot
from radiopharm.core.exceptions import DomainValidationError, Forbidden, NotFound
from radiopharm.lifecycle.exceptions import InvalidStatusTransition
from radiopharm.lifecycle.machines import MACHINES
from radiopharm.notifications.models import NotificationType
from radiopharm.notifications.services import notify, notify_role

from .models import (
    ApprovalAction,
    ApprovalRequest,
    ApprovalStep,
    Decision,
    EntityType,
    Priority,
    RequestStatus,
    WorkflowDefinition,
)

logger = logging.getLogger(__name__)


def _resolve_role(value) -> Role:
    role = Role.objects.filter(is_active=True).filter(Q(name=value) | Q(slug=value)).first()
    if role is None:
        raise DomainValidationError(
            f"Unknown approver role '{value}'",
            field_errors={"steps": [f"Unknown approver role '{value}'"]},
        )
    return role


def _validate_definition_fields(entity_type, trigger_status):
    if entity_type not in EntityType.values:
        raise DomainValidationError(
            f"Invalid entity type '{entity_type}'",
            field_errors={"entityType": [f"Must be one of: {', '.join(EntityType.values)}"]},
        )
    machine = MACHINES.get(entity_type)
    if trigger_status is not None and machine is not None and trigger_status not in machine.statuses:
        raise DomainValidationError(
            f"Invalid trigger status '{trigger_status}' for {entity_type}",
            field_errors={"triggerStatus": [f"Must be one of: {', '.join(machine.statuses)}"]},
        )


def _create_steps(workflow, steps):
    if not steps:
        raise DomainValidationError(
            "A workflow needs at least one step",
            field_errors={"steps": ["At least one step is required"]},
        )
    created = []
    for index, step in enumerate(steps):
        if not step.get("name") or not step.get("approver_role"):
            raise DomainValidationError(
                f"Step {index + 1} needs a name and an approver role",
                field_errors={"steps": [f"Step {index + 1} needs a name and an approver role"]},
            )
        created.append(
            ApprovalStep.objects.create(
                workflow=workflow,
                step_order=index + 1,
                name=step["name"],
                approver_role=_resolve_role(step["approver_role"]),
                timeout_hours=step.get("timeout_hours"),
                is_required=step.get("is_required", True),
                can_delegate=step.get("can_delegate", False),
            )
        )
    return created


@transaction.atomic
def create_workflow_definition(
    name: str,
    entity_type: str,
    steps: list[dict],
    trigger_status: str = None,
    requires_all_steps: bool = True,
    description: str = "",
    is_active: bool = True,
    created_by=None,
) -> WorkflowDefinition:
    """
    Create a workflow definition with its ordered steps.

    Args:
        steps: [{"name", "approver_role" (name or slug), "timeout_hours",
                 "is_required", "can_delegate"}, ...] in approval order;
               step_order is assigned 1..n from list position

    Raises:
        DomainValidationError: Empty steps, unknown role, bad entity type or trigger status
    """
    _validate_definition_fields(entity_type, trigger_status)
    workflow = WorkflowDefinition.objects.create(
        name=name,
        description=description,
        entity_type=entity_type,
        trigger_status=trigger_status,
        requires_all_steps=requires_all_steps,
        is_active=is_active,
        created_by=created_by,
    )
    _create_steps(workflow, steps)
    log("CREATE", obj=workflow, actor=created_by, metadata={"steps": len(steps)})
    return workflow


@transaction.atomic
def update_workflow_definition(workflow, actor=None, steps=None, **fields) -> WorkflowDefinition:
    """
    Update a definition. Steps are replaced only while no request references it.

    Raises:
        DomainValidationError: Replacing steps of a referenced definition
    """
    old_values = snapshot(workflow)
    allowed = {"name", "description", "is_active", "requires_all_steps", "trigger_status"}
    unknown = set(fields) - allowed
    if unknown:
        raise DomainValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    if "trigger_status" in fields:
        _validate_definition_fields(workflow.entity_type, fields["trigger_status"])

    for key, value in fields.items():
        setattr(workflow, key, value)
    workflow.save()

    if steps is not None:
        if workflow.is_referenced:
            raise DomainValidationError(
                "Steps cannot be changed once approval requests reference this workflow",
                field_errors={"steps": ["Workflow is in use"]},
            )
        workflow.steps.all().delete()
        _create_steps(workflow, steps)

    log("UPDATE", obj=workflow, actor=actor, old_values=old_values)
    return workflow


def _due_at(step, start=None):
    if step is None or not step.timeout_hours:
        return None
    return (start or timezone.now()) + timedelta(hours=step.timeout_hours)


def _notify_approvers(approval_request, step, type=NotificationType.APPROVAL_REQUIRED, title=None):
    notify_role(
        step.approver_role.name,
        title or f"Approval required: {approval_request.workflow.name}",
        f"{approval_request.entity_type} {approval_request.entity_id} is waiting at step "
        f"{step.step_order} ({step.name})",
        type=type,
        entity_type=approval_request.entity_type,
        entity_id=approval_request.entity_id,
    )


@transaction.atomic
def trigger_workflow(
    entity_type: str,
    entity_id,
    trigger_status: str = None,
    requested_by=None,
    priority: str = Priority.NORMAL,
    notes: str = "",
):
    """
    Start an approval request if an active definition matches.

    trigger_status=None matches definitions that fire on entity creation.
    Returns None (and does nothing) when no definition matches or the
    matching definition has no steps. Repeated triggers create repeated
    requests.
    """
    workflow = (
        WorkflowDefinition.objects.filter(
            entity_type=entity_type,
            trigger_status=trigger_status,
            is_active=True,
        )
        .order_by("created_at")
        .first()
    )
    if workflow is None:
        return None

    first_step = workflow.steps.select_related("approver_role").order_by("step_order").first()
    if first_step is None:
        logger.warning(f"Workflow '{workflow.name}' has no steps; trigger ignored")
        return None

    approval_request = ApprovalRequest.objects.create(
        workflow=workflow,
        entity_type=entity_type,
        entity_id=str(entity_id),
        requested_by=requested_by,
        current_step_order=first_step.step_order,
        status=RequestStatus.PENDING,
        priority=priority or Priority.NORMAL,
        notes=notes or "",
        due_at=_due_at(first_step),
    )
    _notify_approvers(approval_request, first_step)
    log("SUBMIT_APPROVAL", obj=approval_request, actor=requested_by)
    logger.info(f"Approval request {approval_request.pk} started for {entity_type} {entity_id}")
    return approval_request


def _next_step(workflow, after_order: int):
    later = workflow.steps.filter(step_order__gt=after_order).select_related("approver_role").order_by("step_order")
    if not workflow.requires_all_steps:
        later = later.filter(is_required=True)
    return later.first()


@transaction.atomic
def process_approval(request_id, step_id, actor, action: str, comments: str = "", signature: str = ""):
    """
    Record an approver's decision on the pending step.

    Raises:
        NotFound: Unknown request
        InvalidStatusTransition: Request is no longer PENDING
        DomainValidationError: Bad action, wrong step, missing rejection comments
        Forbidden: Actor does not hold the step's approver role
    """
    if action not in Decision.values:
        raise DomainValidationError(
            f"Invalid action '{action}'",
            field_errors={"action": [f"Must be one of: {', '.join(Decision.values)}"]},
        )

    try:
        approval_request = (
            ApprovalRequest.objects.select_for_update().select_related("workflow").get(pk=request_id)
        )
    except ApprovalRequest.DoesNotExist:
        raise NotFound(f"Approval request {request_id} not found")

    if approval_request.status != RequestStatus.PENDING:
        raise InvalidStatusTransition(
            approval_request.status,
            action,
            allowed=[],
            reason=f"Approval request is already {approval_request.status}",
        )

    step = approval_request.current_step
    if step is None or str(step.pk) != str(step_id):
        raise DomainValidationError(
            "Step is not the pending step of this request",
            details={
                "currentStepOrder": approval_request.current_step_order,
                "pendingStepId": str(step.pk) if step else None,
            },
            field_errors={"stepId": ["Not the pending step"]},
        )

    if not actor.has_role(step.approver_role.name):
        raise Forbidden(
            f"Step '{step.name}' must be approved by role '{step.approver_role.name}'",
            details={"requiredRole": step.approver_role.name},
        )

    if action == Decision.REJECTED and not (comments or "").strip():
        raise DomainValidationError(
            "Comments are required when rejecting",
            field_errors={"comments": ["Comments are required when rejecting"]},
        )

    old_values = snapshot(approval_request)
    ApprovalAction.objects.create(
        request=approval_request,
        step=step,
        actor=actor,
        action=action,
        comments=comments or "",
        signature=signature or "",
    )

    now = timezone.now()
    next_step = None
    if action == Decision.REJECTED:
        approval_request.status = RequestStatus.REJECTED
        approval_request.completed_at = now
    else:
        next_step = _next_step(approval_request.workflow, step.step_order)
        if next_step is None:
            approval_request.status = RequestStatus.APPROVED
            approval_request.completed_at = now
        else:
            approval_request.current_step_order = next_step.step_order
            approval_request.due_at = _due_at(next_step, now)

    approval_request.save(update_fields=["status", "completed_at", "current_step_order", "due_at", "updated_at"])

    if next_step is not None:
        _notify_approvers(approval_request, next_step)
    else:
        outcome = approval_request.status
        notify(
            approval_request.requested_by,
            f"{approval_request.workflow.name}: {outcome.lower()}",
            f"{approval_request.entity_type} {approval_request.entity_id} was {outcome.lower()} "
            f"at step {step.step_order} ({step.name})",
            type=NotificationType.APPROVAL_APPROVED if outcome == RequestStatus.APPROVED
            else NotificationType.APPROVAL_REJECTED,
            entity_type=approval_request.entity_type,
            entity_id=approval_request.entity_id,
        )

    log(
        "APPROVAL_ACTION",
        obj=approval_request,
        actor=actor,
        old_values=old_values,
        metadata={"step": step.step_order, "action": action, "comments": comments or ""},
    )
    return approval_request


def pending_for_user(user):
    """PENDING requests whose current step's role the user holds."""
    role_names = user.role_names()
    return (
        ApprovalRequest.objects.filter(
            status=RequestStatus.PENDING,
            workflow__steps__step_order=F("current_step_order"),
            workflow__steps__approver_role__name__in=role_names,
        )
        .select_related("workflow", "requested_by")
        .distinct()
        .order_by("due_at", "created_at")
    )


def approval_history(entity_type: str, entity_id):
    return (
        ApprovalRequest.objects.filter(entity_type=entity_type, entity_id=str(entity_id))
        .select_related("workflow", "requested_by")
        .prefetch_related("actions__actor", "actions__step")
        .order_by("-created_at")
    )


def latest_request(entity_type: str, entity_id):
    return (
        ApprovalRequest.objects.filter(entity_type=entity_type, entity_id=str(entity_id))
        .order_by("-created_at")
        .first()
    )


def overdue_requests(threshold_hours: int, now=None):
    """PENDING requests past due (or older than the threshold when no due date)
    that were not reminded within the threshold."""
    now = now or timezone.now()
    cutoff = now - timedelta(hours=threshold_hours)
    return (
        ApprovalRequest.objects.filter(status=RequestStatus.PENDING)
        .filter(Q(due_at__lt=now) | Q(due_at__isnull=True, created_at__lt=cutoff))
        .filter(Q(last_reminded_at__isnull=True) | Q(last_reminded_at__lt=cutoff))
        .select_related("workflow")
    )


def send_reminders(threshold_hours: int, dry_run: bool = False, now=None) -> list:
    """Notify current-step approvers of overdue requests. Never changes request status."""
    now = now or timezone.now()
    reminded = []
    for approval_request in overdue_requests(threshold_hours, now):
        step = approval_request.current_step
        if step is None:
            continue
        reminded.append(approval_request)
        if dry_run:
            continue
        _notify_approvers(
            approval_request,
            step,
            type=NotificationType.APPROVAL_REMINDER,
            title=f"Reminder: approval waiting - {approval_request.workflow.name}",
        )
        ApprovalRequest.objects.filter(pk=approval_request.pk).update(last_reminded_at=now)
    return reminded

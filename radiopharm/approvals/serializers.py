"""JSON shapes for approval workflows."""
from radiopharm.api.serializers import iso, user_ref


def serialize_step(step):
    return {
        "id": str(step.pk),
        "stepOrder": step.step_order,
        "name": step.name,
        "approverRole": step.approver_role.name,
        "timeoutHours": step.timeout_hours,
        "isRequired": step.is_required,
        "canDelegate": step.can_delegate,
    }


def serialize_workflow(workflow):
    return {
        "id": str(workflow.pk),
        "name": workflow.name,
        "description": workflow.description,
        "entityType": workflow.entity_type,
        "triggerStatus": workflow.trigger_status,
        "requiresAllSteps": workflow.requires_all_steps,
        "isActive": workflow.is_active,
        "steps": [serialize_step(s) for s in workflow.steps.select_related("approver_role").order_by("step_order")],
        "createdAt": iso(workflow.created_at),
    }


def serialize_action(action):
    return {
        "id": str(action.pk),
        "stepId": str(action.step_id),
        "stepOrder": action.step.step_order,
        "actor": user_ref(action.actor),
        "action": action.action,
        "comments": action.comments,
        "createdAt": iso(action.created_at),
    }


def serialize_request(approval_request, include_actions=True):
    step = approval_request.current_step
    data = {
        "id": str(approval_request.pk),
        "workflowId": str(approval_request.workflow_id),
        "workflowName": approval_request.workflow.name,
        "entityType": approval_request.entity_type,
        "entityId": approval_request.entity_id,
        "requestedBy": user_ref(approval_request.requested_by),
        "currentStepOrder": approval_request.current_step_order,
        "currentStep": serialize_step(step) if step else None,
        "status": approval_request.status,
        "priority": approval_request.priority,
        "notes": approval_request.notes,
        "dueAt": iso(approval_request.due_at),
        "completedAt": iso(approval_request.completed_at),
        "createdAt": iso(approval_request.created_at),
    }
    if include_actions:
        data["actions"] = [serialize_action(a) for a in approval_request.actions.all()]
    return data

"""Approval workflow API."""
from uuid import UUID

from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from radiopharm.accounts import roles
from radiopharm.api.decorators import api_login_required, require_roles
from radiopharm.api.parsing import parse_bool, parse_choice, parse_int, parse_json_body, require_fields
from radiopharm.core.exceptions import DomainValidationError

from . import services
from .models import ApprovalRequest, Decision, EntityType, Priority, RequestStatus, WorkflowDefinition
from .serializers import serialize_request, serialize_workflow


def _parse_steps(data):
    steps = data.get("steps")
    if steps is None:
        return None
    if not isinstance(steps, list):
        raise DomainValidationError("steps must be a list", field_errors={"steps": ["Must be a list"]})
    parsed = []
    for number, step in enumerate(steps, start=1):
        if not isinstance(step, dict):
            raise DomainValidationError(
                f"Step {number} must be an object",
                field_errors={"steps": [f"Step {number} must be an object"]},
            )
        timeout = parse_int(step, "timeoutHours")
        if timeout is not None and timeout < 1:
            raise DomainValidationError(
                f"Step {number} timeout must be at least one hour",
                field_errors={"timeoutHours": ["Must be a positive number of hours"]},
            )
        parsed.append({
            "name": step.get("name"),
            "approver_role": step.get("approverRole") or step.get("approverRoleId"),
            "timeout_hours": timeout,
            "is_required": parse_bool(step, "isRequired", default=True),
            "can_delegate": parse_bool(step, "canDelegate", default=False),
        })
    return parsed


@require_GET
@api_login_required
def api_pending(request):
    return JsonResponse({
        "requests": [serialize_request(r, include_actions=False) for r in services.pending_for_user(request.user)],
    })


@require_GET
@api_login_required
def api_requests(request):
    qs = ApprovalRequest.objects.select_related("workflow", "requested_by")
    status = parse_choice(request.GET, "status", RequestStatus, required=False)
    entity_type = parse_choice(request.GET, "entityType", EntityType, required=False)
    if status:
        qs = qs.filter(status=status)
    if entity_type:
        qs = qs.filter(entity_type=entity_type)
    return JsonResponse({"requests": [serialize_request(r, include_actions=False) for r in qs[:200]]})


@require_GET
@api_login_required
def api_history(request, entity_type, entity_id):
    return JsonResponse({
        "requests": [serialize_request(r) for r in services.approval_history(entity_type, entity_id)],
    })


@csrf_exempt
@require_POST
@require_roles(roles.ADMIN, roles.PRODUCTION_MANAGER, roles.CUSTOMER_SERVICE)
def api_trigger(request):
    data = parse_json_body(request)
    require_fields(data, "entityType", "entityId")
    entity_type = parse_choice(data, "entityType", EntityType)
    approval_request = services.trigger_workflow(
        entity_type,
        data["entityId"],
        trigger_status=data.get("triggerStatus"),
        requested_by=request.user,
        priority=parse_choice(data, "priority", Priority, required=False, default=Priority.NORMAL),
        notes=data.get("notes", ""),
    )
    if approval_request is None:
        return JsonResponse({"request": None, "message": "No workflow configured for this trigger"})
    return JsonResponse({"request": serialize_request(approval_request)}, status=201)


def _act(request, request_id, action, data):
    approval_request = services.process_approval(
        request_id,
        data.get("stepId"),
        request.user,
        action,
        comments=data.get("comments", ""),
        signature=data.get("signature", ""),
    )
    return JsonResponse(serialize_request(approval_request))


@csrf_exempt
@require_POST
@api_login_required
def api_action(request, request_id: UUID):
    data = parse_json_body(request)
    require_fields(data, "stepId")
    action = parse_choice(data, "action", Decision)
    return _act(request, request_id, action, data)


def _with_current_step(request_id, data):
    approval_request = get_object_or_404(ApprovalRequest, pk=request_id)
    step = approval_request.current_step
    data.setdefault("stepId", str(step.pk) if step else None)
    return data


@csrf_exempt
@require_POST
@api_login_required
def api_approve(request, request_id: UUID):
    data = _with_current_step(request_id, parse_json_body(request))
    return _act(request, request_id, Decision.APPROVED, data)


@csrf_exempt
@require_POST
@api_login_required
def api_reject(request, request_id: UUID):
    data = _with_current_step(request_id, parse_json_body(request))
    return _act(request, request_id, Decision.REJECTED, data)


@csrf_exempt
@require_http_methods(["GET", "POST"])
@require_roles(roles.ADMIN)
def api_workflows(request):
    if request.method == "GET":
        return JsonResponse({
            "workflows": [serialize_workflow(w) for w in WorkflowDefinition.objects.all()],
        })

    data = parse_json_body(request)
    require_fields(data, "name", "entityType")
    workflow = services.create_workflow_definition(
        name=data["name"],
        entity_type=parse_choice(data, "entityType", EntityType),
        steps=_parse_steps(data) or [],
        trigger_status=data.get("triggerStatus") or None,
        requires_all_steps=parse_bool(data, "requiresAllSteps", default=True),
        description=data.get("description", ""),
        is_active=parse_bool(data, "isActive", default=True),
        created_by=request.user,
    )
    return JsonResponse(serialize_workflow(workflow), status=201)


@csrf_exempt
@require_http_methods(["PUT"])
@require_roles(roles.ADMIN)
def api_workflow_detail(request, workflow_id: UUID):
    workflow = get_object_or_404(WorkflowDefinition, pk=workflow_id)
    data = parse_json_body(request)
    field_map = {"name": "name", "description": "description", "triggerStatus": "trigger_status"}
    fields = {attr: data[key] for key, attr in field_map.items() if key in data}
    for key, attr in (("isActive", "is_active"), ("requiresAllSteps", "requires_all_steps")):
        if data.get(key) is not None:
            fields[attr] = parse_bool(data, key)
    workflow = services.update_workflow_definition(workflow, actor=request.user, steps=_parse_steps(data), **fields)
    return JsonResponse(serialize_workflow(workflow))

"""Helpdesk API: requester endpoints and the support desk."""
from uuid import UUID

from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from radiopharm.api.decorators import api_login_required, require_roles
from radiopharm.api.parsing import parse_choice, parse_expected_version, parse_json_body, require_fields
from radiopharm.api.serializers import paginate
from radiopharm.core.exceptions import DomainValidationError
from radiopharm.lifecycle.services import allowed_next
from radiopharm.lifecycle.statuses import TicketStatus

from . import services
from .models import SupportTicket, TicketCategory, TicketPriority
from .serializers import serialize_message, serialize_ticket


def _visible_tickets(user):
    qs = SupportTicket.objects.select_related("created_by", "assigned_to")
    if not services.is_support_staff(user):
        qs = qs.filter(created_by=user)
    return qs


@csrf_exempt
@require_http_methods(["GET", "POST"])
@api_login_required
def api_tickets(request):
    if request.method == "GET":
        qs = _visible_tickets(request.user)
        status = parse_choice(request.GET, "status", TicketStatus, required=False)
        if status:
            qs = qs.filter(status=status)
        priority = parse_choice(request.GET, "priority", TicketPriority, required=False)
        if priority:
            qs = qs.filter(priority=priority)
        items, meta = paginate(qs, request, default_limit=20)
        return JsonResponse({"tickets": [serialize_ticket(t) for t in items], "pagination": meta})

    data = parse_json_body(request)
    require_fields(data, "subject", "description")
    ticket = services.open_ticket(
        request.user,
        subject=data["subject"],
        description=data["description"],
        category=parse_choice(data, "category", TicketCategory, required=False, default=TicketCategory.OTHER),
        priority=parse_choice(data, "priority", TicketPriority, required=False, default=TicketPriority.NORMAL),
    )
    return JsonResponse(serialize_ticket(ticket, include_messages=True), status=201)


@require_http_methods(["GET"])
@api_login_required
def api_ticket_detail(request, ticket_id: UUID):
    ticket = get_object_or_404(_visible_tickets(request.user), pk=ticket_id)
    return JsonResponse(
        serialize_ticket(
            ticket,
            include_messages=True,
            include_internal=services.is_support_staff(request.user),
            allowed_next=allowed_next(ticket, request.user),
        )
    )


@csrf_exempt
@require_POST
@api_login_required
def api_ticket_reply(request, ticket_id: UUID):
    ticket = get_object_or_404(_visible_tickets(request.user), pk=ticket_id)
    data = parse_json_body(request)
    message = services.reply(ticket, request.user, data.get("body", ""), internal=bool(data.get("internal", False)))
    return JsonResponse(serialize_message(message), status=201)


@csrf_exempt
@require_http_methods(["PATCH"])
@require_roles(*services.SUPPORT_ROLES)
def api_admin_ticket(request, ticket_id: UUID):
    """Support desk update: any of status, priority and assignedTo."""
    ticket = get_object_or_404(SupportTicket, pk=ticket_id)
    data = parse_json_body(request)
    expected_version = parse_expected_version(request, data)

    if "assignedTo" in data:
        assignee = None
        if data["assignedTo"]:
            assignee = get_user_model().objects.filter(pk=data["assignedTo"]).first()
            if assignee is None:
                raise DomainValidationError("Assignee not found", field_errors={"assignedTo": ["Unknown user"]})
        ticket = services.assign_ticket(ticket, request.user, assignee, expected_version=expected_version)
        expected_version = None
    if "priority" in data:
        ticket = services.set_priority(
            ticket, request.user, parse_choice(data, "priority", TicketPriority), expected_version=expected_version
        )
        expected_version = None
    if "status" in data:
        ticket = services.change_ticket_status(
            ticket,
            parse_choice(data, "status", TicketStatus),
            actor=request.user,
            note=data.get("note", ""),
            expected_version=expected_version,
        )
    return JsonResponse(
        serialize_ticket(ticket, include_messages=True, include_internal=True, allowed_next=allowed_next(ticket, request.user))
    )

"""Helpdesk services: opening, replying, assigning and closing tickets."""
import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from radiopharm.accounts import roles
from radiopharm.audit.api import log
from radiopharm.core.exceptions import DomainValidationError, Forbidden
from radiopharm.core.sequence import next_sequence
from radiopharm.lifecycle.services import record_creation, transition, update_versioned
from radiopharm.lifecycle.statuses import TicketStatus
from radiopharm.notifications.models import NotificationType
from radiopharm.notifications.services import notify, notify_role

from .models import SupportTicket, TicketCategory, TicketMessage, TicketPriority

logger = logging.getLogger(__name__)

# Hours to resolution by priority
SLA_RESOLVE_HOURS = {
    TicketPriority.URGENT: 4,
    TicketPriority.HIGH: 24,
    TicketPriority.NORMAL: 72,
    TicketPriority.LOW: 120,
}

SUPPORT_ROLES = (roles.ADMIN, roles.SALES, roles.CUSTOMER_SERVICE)
CLOSING_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)
FINISHED_STATUSES = (TicketStatus.CLOSED, TicketStatus.CANCELLED)


def is_support_staff(user) -> bool:
    return user.has_role(*SUPPORT_ROLES)


def sla_due(priority: str, start=None):
    start = start or timezone.now()
    return start + timedelta(hours=SLA_RESOLVE_HOURS.get(priority, SLA_RESOLVE_HOURS[TicketPriority.NORMAL]))


@transaction.atomic
def open_ticket(
    actor,
    subject: str,
    description: str,
    category: str = TicketCategory.OTHER,
    priority: str = TicketPriority.NORMAL,
) -> SupportTicket:
    if not (subject or "").strip() or not (description or "").strip():
        raise DomainValidationError(
            "Subject and description are required",
            field_errors={"subject": ["This field is required"], "description": ["This field is required"]},
        )
    ticket = SupportTicket.objects.create(
        ticket_number=next_sequence("ticket", prefix="TKT-"),
        subject=subject.strip(),
        description=description,
        category=category or TicketCategory.OTHER,
        priority=priority or TicketPriority.NORMAL,
        customer_id=getattr(actor, "customer_id", None),
        created_by=actor,
        sla_resolve_due_at=sla_due(priority or TicketPriority.NORMAL),
    )
    record_creation(ticket, actor=actor, note="Ticket created")
    notify(
        actor,
        "Ticket created",
        f"Your support ticket {ticket.ticket_number} has been created. We will respond shortly.",
        type=NotificationType.TICKET_UPDATE,
        entity_type=SupportTicket.ENTITY_TYPE,
        entity_id=ticket.pk,
    )
    notify_role(
        roles.CUSTOMER_SERVICE,
        "New support ticket",
        f"{ticket.ticket_number}: {ticket.subject}",
        type=NotificationType.TICKET_UPDATE,
        entity_type=SupportTicket.ENTITY_TYPE,
        entity_id=ticket.pk,
    )
    return ticket


def _closing_fields(ticket: SupportTicket, to_status: str) -> dict:
    if to_status in CLOSING_STATUSES:
        if ticket.closed_at is not None:
            return {}
        closed_at = timezone.now()
        met = closed_at <= ticket.sla_resolve_due_at if ticket.sla_resolve_due_at else None
        return {"closed_at": closed_at, "sla_resolve_met": met}
    if ticket.status == TicketStatus.RESOLVED:
        # reopened
        return {"closed_at": None, "sla_resolve_met": None}
    return {}


def change_ticket_status(
    ticket: SupportTicket,
    to_status: str,
    actor=None,
    note: str = "",
    check_roles: bool = True,
    expected_version: int = None,
) -> SupportTicket:
    """Guarded ticket transition; RESOLVED and CLOSED stamp closed_at and SLA outcome."""
    return transition(
        ticket,
        to_status,
        actor=actor,
        note=note,
        extra_fields=_closing_fields(ticket, str(to_status)),
        check_roles=check_roles,
        expected_version=expected_version,
    )


@transaction.atomic
def reply(ticket: SupportTicket, actor, body: str, internal: bool = False) -> TicketMessage:
    """
    Add a message to a ticket.

    A staff reply moves NEW to OPEN and WAITING_FOR_ADMIN to WAITING_FOR_USER
    and notifies the requester. A requester reply moves WAITING_FOR_USER to
    WAITING_FOR_ADMIN. Internal notes are staff-only and never move status.
    """
    if not (body or "").strip():
        raise DomainValidationError("Message body is required", field_errors={"body": ["This field is required"]})
    if ticket.status in FINISHED_STATUSES:
        raise DomainValidationError(
            f"Cannot reply to a {ticket.status.lower()} ticket",
            details={"currentStatus": ticket.status},
        )

    staff = is_support_staff(actor)
    if not staff and ticket.created_by_id != actor.pk:
        raise Forbidden("You can only reply to your own tickets")
    if internal and not staff:
        raise Forbidden("Only support staff can add internal notes")

    message = TicketMessage.objects.create(ticket=ticket, author=actor, body=body, is_internal=internal)
    log("REPLY", obj=ticket, actor=actor, metadata={"messageId": str(message.pk), "internal": internal})
    if internal:
        return message

    next_status = None
    if staff and ticket.created_by_id != actor.pk:
        if ticket.status == TicketStatus.NEW:
            next_status = TicketStatus.OPEN
        elif ticket.status == TicketStatus.WAITING_FOR_ADMIN:
            next_status = TicketStatus.WAITING_FOR_USER
        notify(
            ticket.created_by,
            "New reply on your ticket",
            f"Support replied to {ticket.ticket_number}",
            type=NotificationType.TICKET_UPDATE,
            entity_type=SupportTicket.ENTITY_TYPE,
            entity_id=ticket.pk,
        )
    elif ticket.status == TicketStatus.WAITING_FOR_USER:
        next_status = TicketStatus.WAITING_FOR_ADMIN

    if next_status is not None:
        change_ticket_status(ticket, next_status, actor=actor, note="Reply", check_roles=False)
    return message


def assign_ticket(ticket: SupportTicket, actor, assignee, expected_version: int = None) -> SupportTicket:
    if assignee is not None and not is_support_staff(assignee):
        raise DomainValidationError(
            "Tickets can only be assigned to support staff",
            field_errors={"assignedTo": ["Not a support user"]},
        )
    ticket = update_versioned(
        ticket,
        {"assigned_to": assignee},
        actor=actor,
        expected_version=expected_version,
        audit_action="ASSIGN",
        metadata={"assignedTo": assignee.pk if assignee else None},
    )
    if assignee is not None:
        notify(
            assignee,
            "Ticket assigned",
            f"{ticket.ticket_number} has been assigned to you",
            type=NotificationType.TICKET_UPDATE,
            entity_type=SupportTicket.ENTITY_TYPE,
            entity_id=ticket.pk,
        )
    return ticket


def set_priority(ticket: SupportTicket, actor, priority: str, expected_version: int = None) -> SupportTicket:
    """Change priority. The SLA due time is recomputed from the ticket's creation."""
    return update_versioned(
        ticket,
        {"priority": priority, "sla_resolve_due_at": sla_due(priority, start=ticket.created_at)},
        actor=actor,
        expected_version=expected_version,
    )

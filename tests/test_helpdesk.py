"""Tests for support tickets."""
from datetime import timedelta

import pytest

from radiopharm.audit.models import AuditLog
from radiopharm.core.exceptions import DomainValidationError, Forbidden
from radiopharm.helpdesk.models import TicketPriority
from radiopharm.helpdesk.services import (
    assign_ticket,
    change_ticket_status,
    open_ticket,
    reply,
    set_priority,
)
from radiopharm.lifecycle.exceptions import InvalidStatusTransition
from radiopharm.lifecycle.statuses import TicketStatus
from radiopharm.notifications.models import Notification
from radiopharm.orders.models import Customer


@pytest.fixture
def ticket(portal_user, service_desk):
    """A NEW ticket raised from the customer portal."""
    return open_ticket(portal_user, "Late delivery", "FDG arrived 40 minutes late", category="DELIVERY")


@pytest.fixture
def other_portal_user(make_user):
    """Portal user of a second hospital."""
    hospital = Customer.objects.create(code="RMH", name="Riyadh Medical")
    return make_user("other", "Customer", customer=hospital)


@pytest.mark.django_db
class TestOpenTicket:
    def test_open(self, ticket, portal_user, customer):
        assert ticket.status == TicketStatus.NEW
        assert ticket.ticket_number.startswith("TKT-")
        assert ticket.customer_id == customer.pk
        assert ticket.priority == TicketPriority.NORMAL

    def test_sla_from_priority(self, portal_user):
        urgent = open_ticket(portal_user, "Dose missing", "Nothing arrived", priority=TicketPriority.URGENT)
        drift = urgent.sla_resolve_due_at - urgent.created_at - timedelta(hours=4)
        assert abs(drift.total_seconds()) < 5

    def test_requester_and_desk_notified(self, ticket, portal_user, service_desk):
        assert Notification.objects.filter(user=portal_user, entity_id=str(ticket.pk)).count() == 1
        assert Notification.objects.filter(user=service_desk, title="New support ticket").count() == 1

    def test_subject_required(self, portal_user):
        with pytest.raises(DomainValidationError):
            open_ticket(portal_user, "  ", "body")


@pytest.mark.django_db
class TestReply:
    """Replies move the ticket between the waiting statuses."""

    def test_staff_reply_opens_ticket(self, ticket, service_desk, portal_user):
        reply(ticket, service_desk, "We are checking with logistics")
        ticket.refresh_from_db()
        assert ticket.status == TicketStatus.OPEN
        assert Notification.objects.filter(user=portal_user, title="New reply on your ticket").exists()
        assert AuditLog.objects.filter(entity_id=str(ticket.pk), action="REPLY").count() == 1

    def test_waiting_round_trip(self, ticket, service_desk, portal_user):
        change_ticket_status(ticket, TicketStatus.WAITING_FOR_USER, actor=service_desk)
        reply(ticket, portal_user, "Delivery note attached")
        ticket.refresh_from_db()
        assert ticket.status == TicketStatus.WAITING_FOR_ADMIN

        reply(ticket, service_desk, "Thanks, can you confirm the time?")
        ticket.refresh_from_db()
        assert ticket.status == TicketStatus.WAITING_FOR_USER

    def test_internal_note_keeps_status(self, ticket, service_desk):
        reply(ticket, service_desk, "Driver stuck at checkpoint", internal=True)
        ticket.refresh_from_db()
        assert ticket.status == TicketStatus.NEW

    def test_requester_cannot_add_internal_note(self, ticket, portal_user):
        with pytest.raises(Forbidden):
            reply(ticket, portal_user, "psst", internal=True)

    def test_other_customer_cannot_reply(self, ticket, other_portal_user):
        with pytest.raises(Forbidden):
            reply(ticket, other_portal_user, "Hello")

    def test_no_reply_to_closed(self, ticket, service_desk):
        change_ticket_status(ticket, TicketStatus.CLOSED, actor=service_desk)
        with pytest.raises(DomainValidationError):
            reply(ticket, service_desk, "Anything else?")


@pytest.mark.django_db
class TestDeskActions:
    """Tests for assignment, priority and resolution."""

    def test_assign(self, ticket, service_desk, sales):
        assign_ticket(ticket, service_desk, sales)
        ticket.refresh_from_db()
        assert ticket.assigned_to == sales
        assert AuditLog.objects.filter(entity_id=str(ticket.pk), action="ASSIGN").count() == 1
        assert Notification.objects.filter(user=sales, title="Ticket assigned").exists()

    def test_assign_to_non_support_rejected(self, ticket, service_desk, operator):
        with pytest.raises(DomainValidationError):
            assign_ticket(ticket, service_desk, operator)

    def test_priority_recomputes_sla(self, ticket, service_desk):
        set_priority(ticket, service_desk, TicketPriority.HIGH)
        ticket.refresh_from_db()
        assert ticket.sla_resolve_due_at == ticket.created_at + timedelta(hours=24)

    def test_resolve_and_reopen(self, ticket, service_desk):
        change_ticket_status(ticket, TicketStatus.RESOLVED, actor=service_desk)
        assert ticket.closed_at is not None
        assert ticket.sla_resolve_met is True

        change_ticket_status(ticket, TicketStatus.OPEN, actor=service_desk)
        assert ticket.closed_at is None
        assert ticket.sla_resolve_met is None

    def test_closed_is_terminal(self, ticket, service_desk):
        change_ticket_status(ticket, TicketStatus.CLOSED, actor=service_desk)
        with pytest.raises(InvalidStatusTransition) as exc_info:
            change_ticket_status(ticket, TicketStatus.OPEN, actor=service_desk)
        assert "terminal" in exc_info.value.message

    def test_customer_may_only_close_or_escalate(self, ticket, portal_user):
        with pytest.raises(Forbidden):
            change_ticket_status(ticket, TicketStatus.RESOLVED, actor=portal_user)
        change_ticket_status(ticket, TicketStatus.CANCELLED, actor=portal_user)
        assert ticket.status == TicketStatus.CANCELLED


@pytest.mark.django_db
class TestTicketApi:
    """Tests for the ticket endpoints."""

    def test_open_and_list(self, client_for, portal_user, service_desk, other_portal_user):
        client = client_for(portal_user)
        response = client.post(
            "/api/helpdesk/tickets",
            {"subject": "Invoice query", "description": "Tax line looks wrong", "category": "BILLING"},
            content_type="application/json",
        )
        assert response.status_code == 201
        assert response.json()["status"] == "NEW"

        open_ticket(other_portal_user, "Other", "Not visible to portal")
        body = client.get("/api/helpdesk/tickets").json()
        assert [t["subject"] for t in body["tickets"]] == ["Invoice query"]

    def test_internal_messages_hidden_from_requester(self, client_for, ticket, portal_user, service_desk):
        reply(ticket, service_desk, "Public answer")
        reply(ticket, service_desk, "Internal note", internal=True)

        requester_view = client_for(portal_user).get(f"/api/helpdesk/tickets/{ticket.pk}").json()
        assert [m["body"] for m in requester_view["messages"]] == ["Public answer"]
        desk_view = client_for(service_desk).get(f"/api/helpdesk/tickets/{ticket.pk}").json()
        assert len(desk_view["messages"]) == 2

    def test_reply_endpoint(self, client_for, ticket, service_desk):
        response = client_for(service_desk).post(
            f"/api/helpdesk/tickets/{ticket.pk}/reply", {"body": "On it"}, content_type="application/json"
        )
        assert response.status_code == 201
        ticket.refresh_from_db()
        assert ticket.status == TicketStatus.OPEN

    def test_admin_update(self, client_for, ticket, service_desk, sales):
        response = client_for(service_desk).patch(
            f"/api/helpdesk/admin/tickets/{ticket.pk}",
            {"assignedTo": str(sales.pk), "priority": "URGENT", "status": "IN_PROGRESS"},
            content_type="application/json",
        )
        assert response.status_code == 200
        body = response.json()
        assert body["priority"] == "URGENT"
        assert body["status"] == "IN_PROGRESS"
        assert body["assignedTo"]["id"] == sales.pk

    def test_admin_update_forbidden_for_customer(self, client_for, ticket, portal_user):
        response = client_for(portal_user).patch(
            f"/api/helpdesk/admin/tickets/{ticket.pk}", {"status": "CLOSED"}, content_type="application/json"
        )
        assert response.status_code == 403

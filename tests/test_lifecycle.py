"""Tests for the transition guard, transition tables and guarded transitions."""
import pytest
from django.core.exceptions import ImproperlyConfigured

from radiopharm.accounts import roles
from radiopharm.audit.models import AuditLog
from radiopharm.core.exceptions import DomainValidationError, Forbidden
from radiopharm.lifecycle.exceptions import InvalidStatusTransition, StaleVersion
from radiopharm.lifecycle.graph import validate_machine_graph
from radiopharm.lifecycle.machines import INVOICE, MACHINES, ORDER, TICKET, get_machine
from radiopharm.lifecycle.services import _write_versioned, allowed_next, cascade, check_transition, transition
from radiopharm.lifecycle.signals import status_changed
from radiopharm.lifecycle.statuses import InvoiceStatus, OrderStatus, TicketStatus
from radiopharm.orders.models import Order


class TestGuard:
    """Tests for StatusMachine.check, the pure guard."""

    def test_listed_transition_allowed(self):
        """DRAFT -> SUBMITTED is allowed for Sales."""
        decision = ORDER.check(OrderStatus.DRAFT, OrderStatus.SUBMITTED, {roles.SALES})
        assert decision.allowed is True
        assert decision.code is None

    def test_skip_is_invalid_transition(self):
        """DRAFT -> DELIVERED is not in the allow-list."""
        decision = ORDER.check(OrderStatus.DRAFT, OrderStatus.DELIVERED, {roles.ADMIN})
        assert decision.allowed is False
        assert decision.code == "INVALID_STATUS_TRANSITION"

    def test_backward_move_denied(self):
        """VALIDATED -> SUBMITTED is a backward move."""
        decision = ORDER.check(OrderStatus.VALIDATED, OrderStatus.SUBMITTED)
        assert decision.code == "INVALID_STATUS_TRANSITION"

    def test_self_transition_denied(self):
        """Staying in the same status is not a transition."""
        decision = ORDER.check(OrderStatus.DRAFT, OrderStatus.DRAFT)
        assert decision.code == "INVALID_STATUS_TRANSITION"

    def test_partially_paid_repeat_allowed(self):
        """Repeated part payments keep an invoice PARTIALLY_PAID."""
        decision = INVOICE.check(InvoiceStatus.PARTIALLY_PAID, InvoiceStatus.PARTIALLY_PAID, {roles.FINANCE})
        assert decision.allowed is True

    def test_terminal_status_has_no_exits(self):
        """Nothing leaves DELIVERED, and the reason says it is terminal."""
        decision = ORDER.check(OrderStatus.DELIVERED, OrderStatus.CANCELLED, {roles.ADMIN})
        assert decision.allowed is False
        assert "terminal" in decision.reason

    def test_unknown_status_is_validation_error(self):
        """A value outside the enum is rejected before the table is consulted."""
        decision = ORDER.check(OrderStatus.DRAFT, "SHIPPED", {roles.ADMIN})
        assert decision.code == "VALIDATION_ERROR"

    def test_role_without_target_is_forbidden(self):
        """Operators may not submit orders."""
        decision = ORDER.check(OrderStatus.DRAFT, OrderStatus.SUBMITTED, {roles.OPERATOR})
        assert decision.code == "FORBIDDEN"

    def test_admin_may_request_anything_listed(self):
        """Admin passes the role check for every listed target."""
        decision = ORDER.check(OrderStatus.QC_PENDING, OrderStatus.RELEASED, {roles.ADMIN})
        assert decision.allowed is True

    def test_system_actor_skips_role_check(self):
        """role_names=None is a system move."""
        decision = ORDER.check(OrderStatus.SUBMITTED, OrderStatus.VALIDATED, None)
        assert decision.allowed is True

    def test_no_roles_is_forbidden(self):
        """An empty role set may request nothing."""
        decision = ORDER.check(OrderStatus.DRAFT, OrderStatus.SUBMITTED, set())
        assert decision.code == "FORBIDDEN"

    def test_customer_ticket_targets(self):
        """Customers may close their ticket but not resolve it."""
        assert TICKET.check(TicketStatus.OPEN, TicketStatus.CLOSED, {roles.CUSTOMER}).allowed
        assert TICKET.check(TicketStatus.OPEN, TicketStatus.RESOLVED, {roles.CUSTOMER}).code == "FORBIDDEN"

    def test_targets_for_filters_by_role(self):
        """Planner sees only the SUBMITTED exits it may request."""
        targets = ORDER.targets_for(OrderStatus.SUBMITTED, {roles.PRODUCTION_PLANNER})
        assert set(targets) == {OrderStatus.VALIDATED, OrderStatus.REJECTED, OrderStatus.CANCELLED}


class TestTransitionTables:
    """Tests for the transition table graph checks."""

    def test_every_machine_is_well_formed(self):
        """Every machine's graph validates cleanly."""
        for machine in MACHINES.values():
            errors = validate_machine_graph(machine.statuses, machine.transitions, machine.initial, machine.terminal)
            assert errors == [], machine.entity_type

    def test_terminal_statuses(self):
        """Terminal order statuses are the ones with no exits."""
        assert set(ORDER.terminal) == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

    def test_unreachable_state_reported(self):
        """A state with no path from the initial state is reported."""
        errors = validate_machine_graph(
            ["a", "b", "c"],
            {"a": ["b"]},
            "a",
            ["b", "c"],
        )
        assert "'c' cannot be reached from 'a'" in errors

    def test_unknown_target_reported(self):
        """A transition into an undeclared state is reported."""
        errors = validate_machine_graph(["a", "b"], {"a": ["z"]}, "a", ["b"])
        assert "'a' -> 'z' targets an unknown status" in errors

    def test_terminal_with_exits_reported(self):
        """A declared terminal state must not have exits."""
        errors = validate_machine_graph(["a", "b"], {"a": ["b"], "b": ["a"]}, "a", ["b"])
        assert "terminal status 'b' has exits" in errors

    def test_trap_reported(self):
        """A status that loops without ever finishing is a trap."""
        errors = validate_machine_graph(["a", "b", "c"], {"a": ["b", "c"], "b": ["b"]}, "a", ["c"])
        assert errors == ["'b' can never reach a terminal status"]

    def test_unknown_machine(self):
        """Looking up an unknown entity type fails loudly."""
        with pytest.raises(ImproperlyConfigured):
            get_machine("WIDGET")


@pytest.mark.django_db
class TestTransition:
    """Tests for lifecycle.services.transition."""

    def test_transition_bumps_version_and_records_event(self, order, service_desk):
        """A legal transition writes status, version, one event and one audit row."""
        assert order.version == 1
        transition(order, OrderStatus.SUBMITTED, actor=service_desk, note="Ready")

        assert order.status == OrderStatus.SUBMITTED
        assert order.version == 2
        event = order.history.order_by("-created_at").first()
        assert event.from_status == OrderStatus.DRAFT
        assert event.to_status == OrderStatus.SUBMITTED
        assert event.actor == service_desk
        assert event.actor_role == roles.CUSTOMER_SERVICE
        assert event.note == "Ready"

        entries = AuditLog.objects.filter(entity_type="ORDER", entity_id=str(order.pk), action="STATUS_CHANGE")
        assert entries.count() == 1
        entry = entries.get()
        assert entry.old_values["status"] == OrderStatus.DRAFT
        assert entry.new_values["status"] == OrderStatus.SUBMITTED
        assert entry.changes["status"] == {"old": "DRAFT", "new": "SUBMITTED"}
        assert entry.metadata["fromStatus"] == "DRAFT"
        assert entry.actor_user == service_desk

    def test_invalid_transition_raises_and_writes_nothing(self, order, service_desk):
        """DRAFT -> DELIVERED fails with the current status and attempted action."""
        with pytest.raises(InvalidStatusTransition) as exc_info:
            transition(order, OrderStatus.DELIVERED, actor=service_desk)

        assert exc_info.value.code == "INVALID_STATUS_TRANSITION"
        assert exc_info.value.details["currentStatus"] == "DRAFT"
        assert exc_info.value.details["attemptedAction"] == "DELIVERED"
        assert exc_info.value.details["allowedStatuses"] == ["SUBMITTED", "CANCELLED"]

        order.refresh_from_db()
        assert order.status == OrderStatus.DRAFT
        assert order.version == 1
        assert not AuditLog.objects.filter(entity_id=str(order.pk), action="STATUS_CHANGE").exists()

    def test_role_mismatch_is_forbidden(self, order, operator):
        """An operator cannot submit an order."""
        with pytest.raises(Forbidden) as exc_info:
            transition(order, OrderStatus.SUBMITTED, actor=operator)
        assert exc_info.value.details["currentStatus"] == "DRAFT"

    def test_unknown_status_is_validation_error(self, order, admin):
        with pytest.raises(DomainValidationError):
            transition(order, "SHIPPED", actor=admin)

    def test_guard_uses_stored_status(self, order, service_desk):
        """A caller holding an old copy is checked against the row, not its copy."""
        stale = Order.objects.get(pk=order.pk)
        transition(order, OrderStatus.CANCELLED, actor=service_desk)

        with pytest.raises(InvalidStatusTransition) as exc_info:
            transition(stale, OrderStatus.SUBMITTED, actor=service_desk)
        assert exc_info.value.details["currentStatus"] == "CANCELLED"

    def test_signal_sent(self, order, service_desk):
        """status_changed carries the entity type and both statuses."""
        received = []

        def handler(sender, **kwargs):
            received.append(kwargs)

        status_changed.connect(handler)
        try:
            transition(order, OrderStatus.SUBMITTED, actor=service_desk)
        finally:
            status_changed.disconnect(handler)

        assert len(received) == 1
        assert received[0]["entity_type"] == "ORDER"
        assert received[0]["from_status"] == "DRAFT"
        assert received[0]["to_status"] == "SUBMITTED"

    def test_extra_fields_written_with_status(self, order, admin):
        transition(order, OrderStatus.SUBMITTED, actor=admin, extra_fields={"special_notes": "Rush"})
        order.refresh_from_db()
        assert order.special_notes == "Rush"

    def test_check_transition_has_no_side_effects(self, order, operator):
        decision = check_transition(order, OrderStatus.SUBMITTED, actor=operator)
        assert decision.code == "FORBIDDEN"
        assert order.history.count() == 1

    def test_allowed_next(self, order, sales):
        assert allowed_next(order, sales) == [OrderStatus.SUBMITTED, OrderStatus.CANCELLED]


@pytest.mark.django_db
class TestOptimisticConcurrency:
    """Tests for version checks on transitions."""

    def test_expected_version_mismatch_is_conflict(self, order, service_desk):
        """A client holding version 1 after the row moved to 2 gets CONFLICT."""
        transition(order, OrderStatus.SUBMITTED, actor=service_desk, expected_version=1)

        with pytest.raises(StaleVersion) as exc_info:
            transition(order, OrderStatus.CANCELLED, actor=service_desk, expected_version=1)

        assert exc_info.value.code == "CONFLICT"
        assert exc_info.value.http_status == 409
        assert exc_info.value.details["currentVersion"] == 2

    def test_two_writers_one_audit_row(self, make_order, admin):
        """Two copies racing SUBMITTED -> VALIDATED: exactly one succeeds and is audited."""
        order = make_order(status=OrderStatus.SUBMITTED)
        first = Order.objects.get(pk=order.pk)
        second = Order.objects.get(pk=order.pk)

        transition(first, OrderStatus.VALIDATED, actor=admin, expected_version=first.version)
        with pytest.raises(StaleVersion):
            transition(second, OrderStatus.VALIDATED, actor=admin, expected_version=second.version)
        with pytest.raises(InvalidStatusTransition):
            transition(second, OrderStatus.VALIDATED, actor=admin)

        validated = [
            entry
            for entry in AuditLog.objects.filter(entity_id=str(order.pk), action="STATUS_CHANGE")
            if entry.metadata.get("toStatus") == "VALIDATED"
        ]
        assert len(validated) == 1

    def test_compare_and_swap_rejects_stale_row(self, order):
        """The write itself fails when the version moved after the read."""
        stale = Order.objects.get(pk=order.pk)
        Order.objects.filter(pk=order.pk).update(version=5)

        with pytest.raises(StaleVersion):
            _write_versioned(stale, {"special_notes": "late"})


@pytest.mark.django_db
class TestCascade:
    """Tests for system cascades."""

    def test_illegal_members_are_skipped(self, make_order, admin):
        """Only orders that may legally follow are moved."""
        draft = make_order()
        submitted = make_order(status=OrderStatus.SUBMITTED)

        moved = cascade([draft, submitted], OrderStatus.VALIDATED, actor=admin)

        assert moved == [submitted]
        draft.refresh_from_db()
        submitted.refresh_from_db()
        assert draft.status == OrderStatus.DRAFT
        assert submitted.status == OrderStatus.VALIDATED

    def test_cascade_ignores_roles(self, make_order, driver):
        """A cascade acting for a driver is not role-checked."""
        submitted = make_order(status=OrderStatus.SUBMITTED)
        assert cascade([submitted], OrderStatus.CANCELLED, actor=driver) == [submitted]

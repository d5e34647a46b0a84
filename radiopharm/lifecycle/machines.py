"""Transition tables and the pure transition guard.

Each entity type has one StatusMachine: an explicit allow-list of
(from, to) pairs plus, per role, the set of target statuses that role may
request. Anything not listed is denied, including backward moves, skips and
self-transitions (only PARTIALLY_PAID -> PARTIALLY_PAID is listed, for
repeated part payments).
"""
from dataclasses import dataclass

from django.core.exceptions import ImproperlyConfigured

from radiopharm.accounts import roles

from .graph import validate_machine_graph
from .statuses import (
    BatchStatus,
    InvoiceStatus,
    OrderStatus,
    PaymentRequestStatus,
    ShipmentStatus,
    TicketStatus,
)

ANY = "*"


@dataclass(frozen=True)
class Decision:
    """Outcome of a guard check. code is set only when allowed is False."""

    allowed: bool
    code: str = None
    reason: str = ""


class StatusMachine:
    """Allow-list of status transitions for one entity type."""

    def __init__(self, entity_type, choices, initial, transitions, role_targets):
        self.entity_type = entity_type
        self.choices = choices
        self.statuses = [str(v) for v in choices.values]
        self.initial = str(initial)
        table = {str(k): [str(t) for t in v] for k, v in transitions.items()}
        self.transitions = {state: table.get(state, []) for state in self.statuses}
        self.terminal = [s for s in self.statuses if not self.transitions[s]]
        self.role_targets = {
            name: targets if targets == ANY else frozenset(str(t) for t in targets)
            for name, targets in role_targets.items()
        }

        errors = validate_machine_graph(self.statuses, self.transitions, self.initial, self.terminal)
        if errors:
            raise ImproperlyConfigured(f"{entity_type} transition table: {'; '.join(errors)}")

    def __repr__(self):
        return f"<StatusMachine {self.entity_type}>"

    def allowed_targets(self, current: str) -> list[str]:
        return list(self.transitions.get(str(current), []))

    def is_terminal(self, status: str) -> bool:
        return str(status) in self.terminal

    def role_may_request(self, role_names, target: str) -> bool:
        """role_names=None is the system actor and skips the role check."""
        if role_names is None:
            return True
        if roles.ADMIN in role_names:
            return True
        for name in role_names:
            targets = self.role_targets.get(name, ())
            if targets == ANY or target in targets:
                return True
        return False

    def check(self, current: str, requested: str, role_names=None) -> Decision:
        """Pure guard: (currentStatus, requestedStatus, callerRoles) -> Decision."""
        current, requested = str(current), str(requested)
        if requested not in self.statuses:
            return Decision(False, "VALIDATION_ERROR", f"Unknown {self.entity_type} status '{requested}'")
        if current not in self.statuses:
            return Decision(
                False, "INVALID_STATUS_TRANSITION", f"Stored {self.entity_type} status '{current}' is not recognised"
            )
        if requested not in self.transitions[current]:
            if self.is_terminal(current):
                reason = f"Cannot transition from terminal status '{current}'"
            else:
                reason = f"Transition from '{current}' to '{requested}' not allowed"
            return Decision(False, "INVALID_STATUS_TRANSITION", reason)
        if not self.role_may_request(role_names, requested):
            return Decision(
                False,
                "FORBIDDEN",
                f"Roles {sorted(role_names)} may not move {self.entity_type} to '{requested}'",
            )
        return Decision(True)

    def targets_for(self, current: str, role_names=None) -> list[str]:
        return [t for t in self.allowed_targets(current) if self.role_may_request(role_names, t)]


OS = OrderStatus
ORDER = StatusMachine(
    "ORDER",
    OrderStatus,
    initial=OS.DRAFT,
    transitions={
        OS.DRAFT: [OS.SUBMITTED, OS.CANCELLED],
        OS.SUBMITTED: [OS.VALIDATED, OS.REJECTED, OS.CANCELLED],
        OS.VALIDATED: [OS.SCHEDULED, OS.CANCELLED],
        OS.SCHEDULED: [OS.IN_PRODUCTION, OS.CANCELLED],
        OS.IN_PRODUCTION: [OS.QC_PENDING, OS.CANCELLED],
        OS.QC_PENDING: [OS.RELEASED, OS.FAILED_QC],
        OS.RELEASED: [OS.DISPATCHED],
        OS.DISPATCHED: [OS.DELIVERED],
        OS.REJECTED: [OS.DRAFT],
        OS.FAILED_QC: [OS.REWORK, OS.CANCELLED],
        OS.REWORK: [OS.IN_PRODUCTION, OS.CANCELLED],
    },
    role_targets={
        roles.PRODUCTION_MANAGER: ANY,
        roles.CUSTOMER_SERVICE: ANY,
        roles.SALES: {OS.DRAFT, OS.SUBMITTED, OS.CANCELLED},
        roles.PRODUCTION_PLANNER: {OS.VALIDATED, OS.REJECTED, OS.SCHEDULED, OS.CANCELLED},
        roles.OPERATOR: {OS.IN_PRODUCTION, OS.QC_PENDING},
        roles.QC_ANALYST: {OS.QC_PENDING, OS.FAILED_QC, OS.REWORK},
        roles.QUALIFIED_PERSON: {OS.RELEASED, OS.FAILED_QC},
        roles.LOGISTICS: {OS.DISPATCHED, OS.DELIVERED},
    },
)

BS = BatchStatus
BATCH = StatusMachine(
    "BATCH",
    BatchStatus,
    initial=BS.PLANNED,
    transitions={
        BS.PLANNED: [BS.IN_PROGRESS, BS.CANCELLED],
        BS.IN_PROGRESS: [BS.COMPLETED, BS.CANCELLED],
        BS.COMPLETED: [BS.QC_PENDING],
        BS.QC_PENDING: [BS.QC_IN_PROGRESS],
        BS.QC_IN_PROGRESS: [BS.QC_PASSED, BS.QC_FAILED],
        BS.QC_PASSED: [BS.RELEASED],
        BS.QC_FAILED: [BS.CANCELLED],
    },
    role_targets={
        roles.PRODUCTION_MANAGER: {BS.IN_PROGRESS, BS.COMPLETED, BS.QC_PENDING, BS.CANCELLED},
        roles.OPERATOR: {BS.IN_PROGRESS, BS.COMPLETED},
        roles.QC_ANALYST: {BS.QC_PENDING, BS.QC_IN_PROGRESS, BS.QC_PASSED, BS.QC_FAILED},
        roles.QUALIFIED_PERSON: {BS.RELEASED, BS.CANCELLED},
    },
)

SS = ShipmentStatus
SHIPMENT = StatusMachine(
    "SHIPMENT",
    ShipmentStatus,
    initial=SS.DRAFT,
    transitions={
        SS.DRAFT: [SS.READY_TO_PACK, SS.CANCELLED],
        SS.READY_TO_PACK: [SS.PACKED, SS.CANCELLED],
        SS.PACKED: [SS.ASSIGNED_TO_DRIVER, SS.CANCELLED],
        SS.ASSIGNED_TO_DRIVER: [SS.ACCEPTED_BY_DRIVER, SS.CANCELLED],
        SS.ACCEPTED_BY_DRIVER: [SS.PICKED_UP, SS.CANCELLED],
        SS.PICKED_UP: [SS.IN_TRANSIT],
        SS.IN_TRANSIT: [SS.ARRIVED, SS.DELAYED, SS.DELIVERY_FAILED],
        SS.DELAYED: [SS.IN_TRANSIT, SS.ARRIVED, SS.DELIVERY_FAILED],
        SS.ARRIVED: [SS.DELIVERED, SS.DELIVERY_FAILED],
        SS.DELIVERY_FAILED: [SS.RETURNED, SS.ASSIGNED_TO_DRIVER],
    },
    role_targets={
        roles.LOGISTICS: ANY,
        roles.PRODUCTION_MANAGER: ANY,
        roles.DRIVER: {
            SS.ACCEPTED_BY_DRIVER,
            SS.PICKED_UP,
            SS.IN_TRANSIT,
            SS.DELAYED,
            SS.ARRIVED,
            SS.DELIVERED,
            SS.DELIVERY_FAILED,
        },
    },
)

IS = InvoiceStatus
INVOICE = StatusMachine(
    "INVOICE",
    InvoiceStatus,
    initial=IS.DRAFT,
    transitions={
        IS.DRAFT: [IS.PENDING_APPROVAL, IS.ISSUED_POSTED, IS.CANCELLED_VOIDED],
        IS.PENDING_APPROVAL: [IS.ISSUED_POSTED, IS.DRAFT, IS.CANCELLED_VOIDED],
        IS.ISSUED_POSTED: [IS.PARTIALLY_PAID, IS.PAID, IS.OVERDUE, IS.CANCELLED_VOIDED],
        IS.PARTIALLY_PAID: [IS.PARTIALLY_PAID, IS.PAID, IS.OVERDUE],
        IS.OVERDUE: [IS.PARTIALLY_PAID, IS.PAID, IS.CANCELLED_VOIDED],
        IS.PAID: [IS.CLOSED_ARCHIVED],
    },
    role_targets={
        roles.FINANCE: ANY,
        roles.SALES: {IS.PENDING_APPROVAL, IS.DRAFT},
    },
)

PS = PaymentRequestStatus
PAYMENT_REQUEST = StatusMachine(
    "PAYMENT_REQUEST",
    PaymentRequestStatus,
    initial=PS.PENDING,
    transitions={
        PS.PENDING: [PS.CONFIRMED, PS.REJECTED],
    },
    role_targets={
        roles.FINANCE: ANY,
    },
)

TS = TicketStatus
_TICKET_WORKING = [TS.OPEN, TS.IN_PROGRESS, TS.WAITING_FOR_USER, TS.WAITING_FOR_ADMIN]
_TICKET_EXITS = [TS.RESOLVED, TS.CLOSED, TS.CANCELLED]


def _ticket_moves(current):
    return [s for s in _TICKET_WORKING if s != current] + _TICKET_EXITS


TICKET = StatusMachine(
    "TICKET",
    TicketStatus,
    initial=TS.NEW,
    transitions={
        TS.NEW: _ticket_moves(TS.NEW),
        TS.OPEN: _ticket_moves(TS.OPEN),
        TS.IN_PROGRESS: _ticket_moves(TS.IN_PROGRESS),
        TS.WAITING_FOR_USER: _ticket_moves(TS.WAITING_FOR_USER),
        TS.WAITING_FOR_ADMIN: _ticket_moves(TS.WAITING_FOR_ADMIN),
        TS.RESOLVED: [TS.OPEN, TS.CLOSED],
    },
    role_targets={
        roles.CUSTOMER_SERVICE: ANY,
        roles.SALES: ANY,
        roles.CUSTOMER: {TS.WAITING_FOR_ADMIN, TS.CLOSED, TS.CANCELLED},
    },
)

MACHINES = {m.entity_type: m for m in (ORDER, BATCH, SHIPMENT, INVOICE, PAYMENT_REQUEST, TICKET)}


def get_machine(entity_type: str) -> StatusMachine:
    try:
        return MACHINES[entity_type]
    except KeyError:
        raise ImproperlyConfigured(f"No status machine for entity type '{entity_type}'")

"""Shipment creation, driver workflow, dispatch and delivery."""
import logging

from django.db import transaction
from django.utils import timezone

from radiopharm.accounts import roles
from radiopharm.core.exceptions import BusinessRuleError, DomainValidationError, Forbidden
from radiopharm.core.sequence import next_sequence
from radiopharm.lifecycle.exceptions import InvalidStatusTransition
from radiopharm.lifecycle.services import cascade, record_creation, transition
from radiopharm.lifecycle.statuses import OrderStatus, ShipmentStatus
from radiopharm.orders.models import Customer, Order
from radiopharm.orders.services import activity_at

from .models import Shipment

logger = logging.getLogger(__name__)

SS = ShipmentStatus

# Legal walk from packing to the road; dispatch may start from any of these but the last
DISPATCH_PATH = [SS.PACKED, SS.ASSIGNED_TO_DRIVER, SS.ACCEPTED_BY_DRIVER, SS.PICKED_UP, SS.IN_TRANSIT]
DELIVERABLE_STATUSES = (SS.IN_TRANSIT, SS.DELAYED, SS.ARRIVED)

DISPATCHERS = (roles.ADMIN, roles.PRODUCTION_MANAGER, roles.LOGISTICS)


def is_driver_only(user) -> bool:
    return user.has_role(roles.DRIVER) and not user.has_role(*DISPATCHERS)


def total_activity(shipment: Shipment, at) -> float:
    """Sum of the decay-corrected activity of every order in the shipment at a time."""
    total = 0.0
    for order in shipment.orders.select_related("product"):
        value = activity_at(order, at)
        if value is not None:
            total += value
    return total


@transaction.atomic
def create_shipment(
    actor,
    customer_id,
    order_ids,
    driver=None,
    courier_name: str = "",
    vehicle_info: str = "",
    expected_arrival=None,
) -> Shipment:
    """
    Create a DRAFT shipment for released orders of one customer.

    Raises:
        DomainValidationError: Unknown customer or orders, or orders of another customer
        BusinessRuleError(BATCH_NOT_RELEASED): Some orders are not RELEASED
    """
    customer = Customer.objects.filter(pk=customer_id).first()
    if customer is None:
        raise DomainValidationError("Customer not found", field_errors={"customerId": ["Unknown customer"]})
    if not order_ids:
        raise DomainValidationError("A shipment needs at least one order", field_errors={"orderIds": ["Required"]})

    orders = list(Order.objects.filter(pk__in=order_ids).order_by("order_number"))
    if len(orders) != len(set(order_ids)):
        raise DomainValidationError("One or more orders do not exist", field_errors={"orderIds": ["Unknown order"]})

    foreign = [o.order_number for o in orders if o.customer_id != customer.pk]
    if foreign:
        raise DomainValidationError(
            "Orders belong to another customer",
            field_errors={"orderIds": [f"{n}: belongs to another customer" for n in foreign]},
        )
    unreleased = [o.order_number for o in orders if o.status != OrderStatus.RELEASED]
    if unreleased:
        raise BusinessRuleError(
            "All orders must be released before shipping",
            details={"orderNumbers": unreleased},
            code="BATCH_NOT_RELEASED",
        )
    already = Order.objects.filter(pk__in=order_ids, shipments__isnull=False).exclude(
        shipments__status__in=[SS.CANCELLED, SS.RETURNED]
    )
    if already.exists():
        raise DomainValidationError(
            "Orders are already on a shipment",
            field_errors={"orderIds": [f"{o.order_number}: already shipped" for o in already.distinct()]},
        )
    if driver is not None and not driver.has_role(roles.DRIVER):
        raise DomainValidationError("Assigned user is not a driver", field_errors={"driverId": ["Not a driver"]})

    shipment = Shipment.objects.create(
        shipment_number=next_sequence("shipment", prefix="SHP-"),
        customer=customer,
        driver=driver,
        courier_name=courier_name or "",
        vehicle_info=vehicle_info or "",
        expected_arrival=expected_arrival,
        created_by=actor,
    )
    shipment.orders.set(orders)
    record_creation(
        shipment,
        actor=actor,
        note="Shipment created",
        metadata={"orderIds": [str(o.pk) for o in orders]},
    )
    logger.info(f"Shipment {shipment.shipment_number} created with {len(orders)} orders")
    return shipment


def change_shipment_status(
    shipment: Shipment,
    to_status: str,
    actor=None,
    note: str = "",
    driver=None,
    expected_version: int = None,
) -> Shipment:
    """Guarded shipment transition. Drivers may only act on their own shipments."""
    if actor is not None and is_driver_only(actor) and shipment.driver_id != actor.pk:
        raise Forbidden(
            "Drivers can only update shipments assigned to them",
            details={"shipmentId": str(shipment.pk)},
        )
    extra = {}
    if driver is not None:
        if not driver.has_role(roles.DRIVER):
            raise DomainValidationError("Assigned user is not a driver", field_errors={"driverId": ["Not a driver"]})
        extra["driver"] = driver
    if to_status == SS.ARRIVED:
        extra["actual_arrival"] = timezone.now()
    return transition(
        shipment,
        to_status,
        actor=actor,
        note=note,
        extra_fields=extra,
        expected_version=expected_version,
    )


@transaction.atomic
def dispatch_shipment(
    shipment: Shipment,
    actor,
    driver=None,
    courier_name: str = None,
    vehicle_info: str = None,
) -> Shipment:
    """
    Put a packed shipment on the road.

    Walks the legal steps from the current status to IN_TRANSIT, each step
    audited. The final step is audited as DISPATCH and stamps dispatched_at
    and the decay-corrected activity; orders then follow to DISPATCHED.
    """
    current = shipment.status
    if current not in DISPATCH_PATH[:-1]:
        raise InvalidStatusTransition(
            current,
            "DISPATCH",
            allowed=[str(s) for s in DISPATCH_PATH[:-1]],
            reason=f"Shipment cannot be dispatched from '{current}'",
        )

    steps = DISPATCH_PATH[DISPATCH_PATH.index(current) + 1:]
    for step in steps[:-1]:
        extra = {}
        if step == SS.ASSIGNED_TO_DRIVER and driver is not None:
            extra["driver"] = driver
        transition(shipment, step, actor=actor, note="Dispatch", extra_fields=extra)

    now = timezone.now()
    activity = total_activity(shipment, now)
    final = {"dispatched_at": now, "activity_at_dispatch": activity}
    if courier_name is not None:
        final["courier_name"] = courier_name
    if vehicle_info is not None:
        final["vehicle_info"] = vehicle_info
    transition(
        shipment,
        SS.IN_TRANSIT,
        actor=actor,
        note="Dispatched",
        metadata={"activityAtDispatch": activity},
        extra_fields=final,
        audit_action="DISPATCH",
    )
    cascade(
        shipment.orders.order_by("order_number"),
        OrderStatus.DISPATCHED,
        actor=actor,
        note=f"Dispatched on shipment {shipment.shipment_number}",
        metadata={"shipmentId": str(shipment.pk)},
    )
    return shipment


@transaction.atomic
def deliver_shipment(shipment: Shipment, actor, received_by: str = "", notes: str = "") -> Shipment:
    """Mark a shipment delivered, passing through ARRIVED when needed."""
    if shipment.status not in DELIVERABLE_STATUSES:
        raise InvalidStatusTransition(
            shipment.status,
            "DELIVER",
            allowed=[str(s) for s in DELIVERABLE_STATUSES],
            reason=f"Shipment cannot be delivered from '{shipment.status}'",
        )
    if is_driver_only(actor) and shipment.driver_id != actor.pk:
        raise Forbidden("Drivers can only deliver shipments assigned to them")

    now = timezone.now()
    if shipment.status != SS.ARRIVED:
        transition(shipment, SS.ARRIVED, actor=actor, note="Arrived", extra_fields={"actual_arrival": now})

    activity = total_activity(shipment, now)
    transition(
        shipment,
        SS.DELIVERED,
        actor=actor,
        note=notes or "Delivered",
        metadata={"activityAtDelivery": activity, "receivedBy": received_by},
        extra_fields={
            "delivered_at": now,
            "activity_at_delivery": activity,
            "received_by": received_by or "",
            "delivery_notes": notes or "",
        },
        audit_action="DELIVER",
    )
    cascade(
        shipment.orders.order_by("order_number"),
        OrderStatus.DELIVERED,
        actor=actor,
        note=f"Delivered on shipment {shipment.shipment_number}",
        metadata={"shipmentId": str(shipment.pk)},
    )
    return shipment

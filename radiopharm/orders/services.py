"""Customer and order services.

Provides:
- create_customer / update_customer / delete_customer
- create_order: licence, permitted-product and shelf-life checks, decay-corrected activity
- update_order: versioned edit while the order is still being planned
- change_order_status: guarded status change through the lifecycle
"""
import logging

from django.db import transaction
from django.utils import timezone

from radiopharm.approvals.services import trigger_workflow
from radiopharm.audit.api import log, snapshot
from radiopharm.core.exceptions import BusinessRuleError, DomainValidationError, Forbidden
from radiopharm.core.sequence import next_sequence
from radiopharm.lifecycle.exceptions import InvalidStatusTransition
from radiopharm.lifecycle.machines import ORDER
from radiopharm.lifecycle.services import record_creation, transition, update_versioned
from radiopharm.lifecycle.statuses import OrderStatus

from . import decay
from .models import Customer, Order, Product

logger = logging.getLogger(__name__)

CREATE_STATUSES = (OrderStatus.DRAFT, OrderStatus.SUBMITTED)
EDITABLE_STATUSES = (OrderStatus.DRAFT, OrderStatus.SUBMITTED, OrderStatus.VALIDATED)

CUSTOMER_FIELDS = (
    "code",
    "name",
    "email",
    "phone",
    "address",
    "license_number",
    "license_expiry_date",
    "travel_time_minutes",
    "is_active",
)

ORDER_FIELDS = (
    "delivery_date",
    "delivery_time_start",
    "delivery_time_end",
    "requested_activity",
    "activity_unit",
    "number_of_doses",
    "injection_time",
    "patient_count",
    "special_notes",
)


# =============================================================================
# Customers
# =============================================================================


@transaction.atomic
def create_customer(actor=None, permitted_products=None, **fields) -> Customer:
    unknown = set(fields) - set(CUSTOMER_FIELDS)
    if unknown:
        raise DomainValidationError(f"Unknown customer fields: {', '.join(sorted(unknown))}")
    customer = Customer.objects.create(**fields)
    if permitted_products is not None:
        customer.permitted_products.set(permitted_products)
    log("CREATE", obj=customer, actor=actor)
    return customer


@transaction.atomic
def update_customer(customer: Customer, actor=None, permitted_products=None, **fields) -> Customer:
    unknown = set(fields) - set(CUSTOMER_FIELDS)
    if unknown:
        raise DomainValidationError(f"Unknown customer fields: {', '.join(sorted(unknown))}")
    old_values = snapshot(customer)
    for name, value in fields.items():
        setattr(customer, name, value)
    customer.save()
    metadata = None
    if permitted_products is not None:
        customer.permitted_products.set(permitted_products)
        metadata = {"permittedProducts": [str(p.pk) for p in customer.permitted_products.all()]}
    log("UPDATE", obj=customer, actor=actor, old_values=old_values, metadata=metadata)
    return customer


@transaction.atomic
def delete_customer(customer: Customer, actor=None) -> None:
    """Soft delete. Orders keep pointing at the row."""
    old_values = snapshot(customer)
    customer.delete()
    log("DELETE", obj=customer, actor=actor, old_values=old_values)


# =============================================================================
# Orders
# =============================================================================


def _check_customer_may_order(customer: Customer, product: Product):
    if customer.license_expiry_date and customer.license_expiry_date < timezone.localdate():
        raise BusinessRuleError(
            f"Customer {customer.code} licence expired on {customer.license_expiry_date}",
            details={"licenseExpiryDate": customer.license_expiry_date.isoformat()},
            code="LICENSE_EXPIRED",
        )
    if not customer.permitted_products.filter(pk=product.pk).exists():
        raise BusinessRuleError(
            f"Product {product.code} is not permitted for customer {customer.code}",
            details={"customerId": str(customer.pk), "productId": str(product.pk)},
            code="PRODUCT_NOT_PERMITTED",
        )


def plan_production(customer: Customer, product: Product, delivery_time_start, requested_activity, injection_time=None):
    """Backward schedule and decay-corrected production activity for one order.

    Returns:
        (schedule, production_activity)

    Raises:
        BusinessRuleError(ORDER_TIME_NOT_FEASIBLE) when the product would
        exceed its shelf life between synthesis start and delivery
    """
    schedule = decay.backward_schedule(
        delivery_time_start,
        customer.travel_time_minutes,
        product.packaging_time_minutes,
        product.qc_time_minutes,
        product.synthesis_time_minutes,
    )
    target_time = injection_time or delivery_time_start
    production_activity = decay.production_activity_with_overage(
        float(requested_activity),
        product.half_life_minutes,
        target_time,
        schedule.synthesis_start_time,
        product.overage_percent,
    )
    if not decay.is_within_shelf_life(schedule.synthesis_start_time, delivery_time_start, product.shelf_life_minutes):
        raise BusinessRuleError(
            "Order not feasible: delivery time exceeds product shelf life",
            details={
                "shelfLifeMinutes": product.shelf_life_minutes,
                "estimatedProductionTime": schedule.synthesis_start_time.isoformat(),
                "deliveryTime": delivery_time_start.isoformat(),
            },
            code="ORDER_TIME_NOT_FEASIBLE",
        )
    return schedule, production_activity


def _validate_window(delivery_time_start, delivery_time_end, requested_activity):
    if delivery_time_end < delivery_time_start:
        raise DomainValidationError(
            "Delivery window ends before it starts",
            field_errors={"deliveryTimeEnd": ["Must not be before deliveryTimeStart"]},
        )
    if float(requested_activity) <= 0:
        raise DomainValidationError(
            "Requested activity must be positive",
            field_errors={"requestedActivity": ["Must be greater than zero"]},
        )


@transaction.atomic
def create_order(
    actor,
    customer_id,
    product_id,
    delivery_date,
    delivery_time_start,
    delivery_time_end,
    requested_activity,
    activity_unit: str = "mCi",
    number_of_doses: int = None,
    injection_time=None,
    patient_count: int = None,
    special_notes: str = "",
    status: str = OrderStatus.DRAFT,
) -> Order:
    """
    Create an order in DRAFT or SUBMITTED.

    Checks run in this order: customer exists, licence valid, product
    permitted, shelf life covers synthesis to delivery. The creation event
    and CREATE audit row are written once; an order created as SUBMITTED
    also fires the SUBMITTED approval trigger.
    """
    if status not in CREATE_STATUSES:
        raise DomainValidationError(
            f"Orders can only be created as {' or '.join(CREATE_STATUSES)}",
            field_errors={"status": [f"Must be one of: {', '.join(CREATE_STATUSES)}"]},
        )
    if actor is not None and not ORDER.role_may_request(actor.role_names(), status):
        raise Forbidden(f"Roles {sorted(actor.role_names())} may not create orders as {status}")

    customer = Customer.objects.filter(pk=customer_id).first()
    if customer is None:
        raise DomainValidationError("Customer not found", field_errors={"customerId": ["Unknown customer"]})
    product = Product.objects.filter(pk=product_id, is_active=True).first()
    if product is None:
        raise DomainValidationError("Product not found", field_errors={"productId": ["Unknown product"]})

    _check_customer_may_order(customer, product)
    _validate_window(delivery_time_start, delivery_time_end, requested_activity)
    schedule, production_activity = plan_production(
        customer, product, delivery_time_start, requested_activity, injection_time
    )

    order = Order.objects.create(
        order_number=next_sequence("order", prefix="ORD-"),
        customer=customer,
        product=product,
        delivery_date=delivery_date,
        delivery_time_start=delivery_time_start,
        delivery_time_end=delivery_time_end,
        requested_activity=float(requested_activity),
        activity_unit=activity_unit or "mCi",
        number_of_doses=number_of_doses,
        injection_time=injection_time,
        patient_count=patient_count,
        special_notes=special_notes or "",
        calculated_production_activity=production_activity,
        calculated_calibration_time=schedule.synthesis_start_time,
        status=status,
        created_by=actor,
    )
    record_creation(order, actor=actor, note="Order created")
    if status == OrderStatus.SUBMITTED:
        trigger_workflow("ORDER", order.pk, trigger_status=OrderStatus.SUBMITTED, requested_by=actor)
    logger.info(f"Order {order.order_number} created as {status} for {customer.code}")
    return order


def update_order(order: Order, actor=None, expected_version: int = None, **fields) -> Order:
    """Edit an order that has not been scheduled yet and recompute its production plan."""
    unknown = set(fields) - set(ORDER_FIELDS)
    if unknown:
        raise DomainValidationError(f"Unknown order fields: {', '.join(sorted(unknown))}")
    if order.status not in EDITABLE_STATUSES:
        raise InvalidStatusTransition(
            order.status,
            "UPDATE",
            reason=f"Order cannot be modified in status '{order.status}'",
        )

    merged = {name: getattr(order, name) for name in ORDER_FIELDS}
    merged.update(fields)
    _validate_window(merged["delivery_time_start"], merged["delivery_time_end"], merged["requested_activity"])
    schedule, production_activity = plan_production(
        order.customer,
        order.product,
        merged["delivery_time_start"],
        merged["requested_activity"],
        merged["injection_time"],
    )

    changes = dict(fields)
    changes["calculated_production_activity"] = production_activity
    changes["calculated_calibration_time"] = schedule.synthesis_start_time
    return update_versioned(
        order, changes, actor=actor, expected_version=expected_version, allowed_statuses=EDITABLE_STATUSES
    )


def change_order_status(order: Order, to_status: str, actor=None, note: str = "", expected_version: int = None) -> Order:
    return transition(order, to_status, actor=actor, note=note, expected_version=expected_version)


def activity_at(order: Order, at):
    """Decay-corrected activity of the order's production dose at a given time."""
    if order.calculated_production_activity is None or order.calculated_calibration_time is None:
        return None
    return decay.activity_at_time(
        order.calculated_production_activity,
        order.calculated_calibration_time,
        at,
        order.product.half_life_minutes,
    )

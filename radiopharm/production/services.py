"""Batch planning, status changes and QP release.

Batch status moves cascade to the linked orders. The cascade is a system
move: it skips the role check but never the order allow-list, so an order
that cannot legally follow is left where it is and logged.
"""
import logging

from django.db import transaction
from django.utils import timezone

from radiopharm.accounts import roles
from radiopharm.audit.api import log
from radiopharm.core.exceptions import DomainValidationError, Forbidden
from radiopharm.core.sequence import next_sequence
from radiopharm.lifecycle.exceptions import InvalidStatusTransition
from radiopharm.lifecycle.services import cascade, record_creation, transition, update_versioned
from radiopharm.lifecycle.statuses import BatchStatus, OrderStatus
from radiopharm.orders.models import Order, Product

from .models import Batch, BatchRelease, ReleaseType

logger = logging.getLogger(__name__)

# Order status that follows each batch status
ORDER_CASCADE = {
    BatchStatus.IN_PROGRESS: OrderStatus.IN_PRODUCTION,
    BatchStatus.QC_PENDING: OrderStatus.QC_PENDING,
    BatchStatus.QC_FAILED: OrderStatus.FAILED_QC,
    BatchStatus.RELEASED: OrderStatus.RELEASED,
}

BATCHABLE_ORDER_STATUSES = (OrderStatus.VALIDATED, OrderStatus.SCHEDULED)
RELEASERS = (roles.QUALIFIED_PERSON, roles.ADMIN)


def cascade_to_orders(batch: Batch, batch_status: str, actor=None) -> list[Order]:
    """Move linked orders to the status matching batch_status. Returns the orders moved."""
    target = ORDER_CASCADE.get(batch_status)
    if target is None:
        return []
    return cascade(
        batch.orders.order_by("order_number"),
        target,
        actor=actor,
        note=f"Batch {batch.batch_number} moved to {batch_status}",
        metadata={"batchId": str(batch.pk)},
    )


@transaction.atomic
def create_batch(
    actor,
    product_id,
    planned_start,
    planned_end,
    order_ids=(),
    target_activity: float = None,
    activity_unit: str = "mCi",
    notes: str = "",
) -> Batch:
    """
    Plan a batch and link orders to it.

    Orders must be for the batch's product and VALIDATED or SCHEDULED.
    VALIDATED orders move to SCHEDULED. target_activity defaults to the sum
    of the orders' calculated production activity.
    """
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise DomainValidationError("Product not found", field_errors={"productId": ["Unknown product"]})
    if planned_end < planned_start:
        raise DomainValidationError(
            "Planned end is before planned start",
            field_errors={"plannedEnd": ["Must not be before plannedStart"]},
        )

    orders = list(Order.objects.select_for_update().filter(pk__in=order_ids).order_by("order_number"))
    if len(orders) != len(set(order_ids)):
        raise DomainValidationError("One or more orders do not exist", field_errors={"orderIds": ["Unknown order"]})

    problems = []
    for order in orders:
        if order.product_id != product.pk:
            problems.append(f"{order.order_number}: product differs from batch product")
        elif order.status not in BATCHABLE_ORDER_STATUSES:
            problems.append(f"{order.order_number}: status {order.status} cannot be batched")
        elif order.batch_id is not None:
            problems.append(f"{order.order_number}: already linked to a batch")
    if problems:
        raise DomainValidationError("Orders cannot be added to this batch", field_errors={"orderIds": problems})

    if target_activity is None:
        target_activity = sum(o.calculated_production_activity or 0 for o in orders)
    if target_activity <= 0:
        raise DomainValidationError(
            "Target activity must be positive",
            field_errors={"targetActivity": ["Must be greater than zero"]},
        )

    batch = Batch.objects.create(
        batch_number=next_sequence("batch", prefix="BAT-"),
        product=product,
        planned_start=planned_start,
        planned_end=planned_end,
        target_activity=target_activity,
        activity_unit=activity_unit or "mCi",
        notes=notes or "",
        created_by=actor,
    )
    record_creation(batch, actor=actor, note="Batch planned", metadata={"orderIds": [str(o.pk) for o in orders]})

    for order in orders:
        if order.status == OrderStatus.VALIDATED:
            transition(
                order,
                OrderStatus.SCHEDULED,
                actor=actor,
                note=f"Scheduled in batch {batch.batch_number}",
                extra_fields={"batch": batch},
                check_roles=False,
            )
        else:
            update_versioned(order, {"batch": batch}, actor=actor, metadata={"batchId": str(batch.pk)})

    logger.info(f"Batch {batch.batch_number} planned with {len(orders)} orders")
    return batch


@transaction.atomic
def change_batch_status(
    batch: Batch,
    to_status: str,
    actor=None,
    note: str = "",
    actual_activity: float = None,
    expected_version: int = None,
) -> Batch:
    """
    Guarded batch transition followed by the order cascade.

    RELEASED is reachable only through release_batch(), which records the
    signed BatchRelease.
    """
    if to_status == BatchStatus.RELEASED:
        raise InvalidStatusTransition(
            batch.status,
            BatchStatus.RELEASED,
            reason="Batches are released through the release endpoint with an electronic signature",
        )
    extra = {}
    now = timezone.now()
    if to_status == BatchStatus.IN_PROGRESS and batch.actual_start is None:
        extra["actual_start"] = now
    if to_status == BatchStatus.COMPLETED and batch.actual_end is None:
        extra["actual_end"] = now
    if actual_activity is not None:
        extra["actual_activity"] = actual_activity

    batch = transition(
        batch,
        to_status,
        actor=actor,
        note=note,
        extra_fields=extra,
        expected_version=expected_version,
    )
    cascade_to_orders(batch, batch.status, actor=actor)
    return batch


@transaction.atomic
def release_batch(
    batch: Batch,
    actor,
    signature: str,
    reason: str = "",
    release_type: str = ReleaseType.FULL,
) -> BatchRelease:
    """
    Qualified Person release of a QC_PASSED batch.

    Raises:
        Forbidden: Actor is not a Qualified Person or Admin
        InvalidStatusTransition: Batch is not QC_PASSED
        DomainValidationError: No electronic signature
    """
    if not actor.has_role(*RELEASERS):
        raise Forbidden(
            "Only a Qualified Person can release batches",
            details={"requiredRoles": list(RELEASERS)},
        )
    if batch.status != BatchStatus.QC_PASSED:
        raise InvalidStatusTransition(
            batch.status,
            "RELEASE",
            reason=f"Batch must be QC_PASSED to release, not {batch.status}",
        )
    if not signature:
        raise DomainValidationError(
            "Electronic signature is required",
            field_errors={"electronicSignature": ["This field is required"]},
        )

    now = timezone.now()
    release = BatchRelease.objects.create(
        batch=batch,
        released_by=actor,
        release_type=release_type or ReleaseType.FULL,
        electronic_signature=signature,
        signature_timestamp=now,
        reason=reason or "",
    )
    transition(
        batch,
        BatchStatus.RELEASED,
        actor=actor,
        note=reason or "Batch released",
        metadata={"releaseId": str(release.pk), "releaseType": release.release_type},
        audit_action="RELEASE",
    )
    cascade_to_orders(batch, BatchStatus.RELEASED, actor=actor)
    log("CREATE", obj=release, actor=actor)
    return release

"""JSON shapes for batches."""
from radiopharm.api.serializers import iso, user_ref
from radiopharm.orders.serializers import serialize_history


def serialize_release(release):
    return {
        "id": str(release.pk),
        "releasedBy": user_ref(release.released_by),
        "releaseType": release.release_type,
        "signatureTimestamp": iso(release.signature_timestamp),
        "reason": release.reason,
    }


def serialize_batch(batch, include_orders=True, allowed_next=None):
    data = {
        "id": str(batch.pk),
        "batchNumber": batch.batch_number,
        "status": batch.status,
        "version": batch.version,
        "product": {"id": str(batch.product_id), "name": batch.product.name},
        "plannedStart": iso(batch.planned_start),
        "plannedEnd": iso(batch.planned_end),
        "actualStart": iso(batch.actual_start),
        "actualEnd": iso(batch.actual_end),
        "targetActivity": batch.target_activity,
        "actualActivity": batch.actual_activity,
        "activityUnit": batch.activity_unit,
        "notes": batch.notes,
        "createdAt": iso(batch.created_at),
    }
    if include_orders:
        data["orders"] = [
            {"id": str(o.pk), "orderNumber": o.order_number, "status": o.status}
            for o in batch.orders.order_by("order_number")
        ]
        data["releases"] = [serialize_release(r) for r in batch.releases.select_related("released_by")]
    if allowed_next is not None:
        data["allowedNextStatuses"] = allowed_next
    return data


serialize_event = serialize_history

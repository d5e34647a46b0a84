"""JSON shapes for shipments."""
from radiopharm.api.serializers import iso, user_ref
from radiopharm.orders.serializers import serialize_history


def serialize_shipment(shipment, include_events=False, allowed_next=None):
    data = {
        "id": str(shipment.pk),
        "shipmentNumber": shipment.shipment_number,
        "status": shipment.status,
        "version": shipment.version,
        "customer": {"id": str(shipment.customer_id), "name": shipment.customer.name},
        "driver": user_ref(shipment.driver),
        "courierName": shipment.courier_name,
        "vehicleInfo": shipment.vehicle_info,
        "expectedArrival": iso(shipment.expected_arrival),
        "actualArrival": iso(shipment.actual_arrival),
        "dispatchedAt": iso(shipment.dispatched_at),
        "deliveredAt": iso(shipment.delivered_at),
        "activityAtDispatch": shipment.activity_at_dispatch,
        "activityAtDelivery": shipment.activity_at_delivery,
        "receivedBy": shipment.received_by,
        "deliveryNotes": shipment.delivery_notes,
        "orders": [
            {"id": str(o.pk), "orderNumber": o.order_number, "status": o.status}
            for o in shipment.orders.order_by("order_number")
        ],
        "createdAt": iso(shipment.created_at),
    }
    if include_events:
        data["events"] = [serialize_history(e) for e in shipment.events.select_related("actor")]
    if allowed_next is not None:
        data["allowedNextStatuses"] = allowed_next
    return data

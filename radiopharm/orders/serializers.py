"""JSON shapes for customers, products and orders."""
from radiopharm.api.serializers import dec, iso, uid, user_ref


def serialize_product(product):
    return {
        "id": str(product.pk),
        "code": product.code,
        "name": product.name,
        "radionuclide": product.radionuclide,
        "halfLifeMinutes": product.half_life_minutes,
        "shelfLifeMinutes": product.shelf_life_minutes,
        "synthesisTimeMinutes": product.synthesis_time_minutes,
        "qcTimeMinutes": product.qc_time_minutes,
        "packagingTimeMinutes": product.packaging_time_minutes,
        "overagePercent": product.overage_percent,
        "unitPrice": dec(product.unit_price),
        "isActive": product.is_active,
    }


def serialize_customer(customer, include_products=True):
    data = {
        "id": str(customer.pk),
        "code": customer.code,
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "address": customer.address,
        "licenseNumber": customer.license_number,
        "licenseExpiryDate": iso(customer.license_expiry_date),
        "travelTimeMinutes": customer.travel_time_minutes,
        "isActive": customer.is_active,
        "createdAt": iso(customer.created_at),
    }
    if include_products:
        data["permittedProducts"] = [str(p.pk) for p in customer.permitted_products.all()]
    return data


def serialize_history(event):
    return {
        "id": str(event.pk),
        "fromStatus": event.from_status or None,
        "toStatus": event.to_status,
        "changedBy": user_ref(event.actor),
        "actorRole": event.actor_role,
        "note": event.note,
        "metadata": event.metadata,
        "createdAt": iso(event.created_at),
    }


def serialize_order(order, include_history=False, allowed_next=None):
    data = {
        "id": str(order.pk),
        "orderNumber": order.order_number,
        "status": order.status,
        "version": order.version,
        "customer": {"id": str(order.customer_id), "name": order.customer.name},
        "product": {"id": str(order.product_id), "name": order.product.name},
        "batchId": uid(order.batch_id),
        "deliveryDate": iso(order.delivery_date),
        "deliveryTimeStart": iso(order.delivery_time_start),
        "deliveryTimeEnd": iso(order.delivery_time_end),
        "requestedActivity": order.requested_activity,
        "activityUnit": order.activity_unit,
        "numberOfDoses": order.number_of_doses,
        "injectionTime": iso(order.injection_time),
        "patientCount": order.patient_count,
        "specialNotes": order.special_notes,
        "calculatedProductionActivity": order.calculated_production_activity,
        "calculatedCalibrationTime": iso(order.calculated_calibration_time),
        "createdAt": iso(order.created_at),
        "updatedAt": iso(order.updated_at),
    }
    if include_history:
        data["history"] = [serialize_history(e) for e in order.history.select_related("actor")]
    if allowed_next is not None:
        data["allowedNextStatuses"] = allowed_next
    return data

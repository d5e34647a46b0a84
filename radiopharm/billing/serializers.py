"""JSON shapes for invoices and payments."""
from radiopharm.api.serializers import dec, iso, uid, user_ref


def serialize_item(item):
    return {
        "id": str(item.pk),
        "orderId": uid(item.order_id),
        "description": item.description,
        "quantity": dec(item.quantity),
        "unitPrice": dec(item.unit_price),
        "lineTotal": dec(item.line_total),
    }


def serialize_invoice(invoice, include_items=True, allowed_next=None):
    data = {
        "id": str(invoice.pk),
        "invoiceNumber": invoice.invoice_number,
        "status": invoice.status,
        "version": invoice.version,
        "customer": {"id": str(invoice.customer_id), "name": invoice.customer.name},
        "shipmentId": uid(invoice.shipment_id),
        "subtotal": dec(invoice.subtotal),
        "taxRate": dec(invoice.tax_rate),
        "taxAmount": dec(invoice.tax_amount),
        "totalAmount": dec(invoice.total_amount),
        "paidAmount": dec(invoice.paid_amount),
        "outstandingAmount": dec(invoice.outstanding_amount),
        "currency": invoice.currency,
        "dueDate": iso(invoice.due_date),
        "issuedAt": iso(invoice.issued_at),
        "postedAt": iso(invoice.posted_at),
        "closedAt": iso(invoice.closed_at),
        "approvedBy": user_ref(invoice.approved_by),
        "voidedReason": invoice.voided_reason,
        "notes": invoice.notes,
        "createdAt": iso(invoice.created_at),
    }
    if include_items:
        data["items"] = [serialize_item(i) for i in invoice.items.all()]
    if allowed_next is not None:
        data["allowedNextStatuses"] = allowed_next
    return data


def serialize_receipt(receipt):
    return {
        "id": str(receipt.pk),
        "receiptNumber": receipt.receipt_number,
        "amount": dec(receipt.amount),
        "confirmedBy": user_ref(receipt.confirmed_by),
        "createdAt": iso(receipt.created_at),
    }


def serialize_payment(payment):
    data = {
        "id": str(payment.pk),
        "requestNumber": payment.request_number,
        "status": payment.status,
        "version": payment.version,
        "invoice": {"id": str(payment.invoice_id), "invoiceNumber": payment.invoice.invoice_number},
        "customerId": str(payment.customer_id),
        "amount": dec(payment.amount),
        "paymentMethod": payment.payment_method,
        "reference": payment.reference,
        "submittedBy": user_ref(payment.submitted_by),
        "reviewedBy": user_ref(payment.reviewed_by),
        "reviewedAt": iso(payment.reviewed_at),
        "rejectionReason": payment.rejection_reason,
        "createdAt": iso(payment.created_at),
    }
    receipt = getattr(payment, "receipt", None)
    data["receipt"] = serialize_receipt(receipt) if receipt else None
    return data

"""JSON shapes for tickets."""
from radiopharm.api.serializers import iso, uid, user_ref
from radiopharm.orders.serializers import serialize_history


def serialize_message(message):
    return {
        "id": str(message.pk),
        "author": user_ref(message.author),
        "body": message.body,
        "isInternal": message.is_internal,
        "createdAt": iso(message.created_at),
    }


def serialize_ticket(ticket, include_messages=False, include_internal=False, allowed_next=None):
    data = {
        "id": str(ticket.pk),
        "ticketNumber": ticket.ticket_number,
        "subject": ticket.subject,
        "description": ticket.description,
        "category": ticket.category,
        "priority": ticket.priority,
        "status": ticket.status,
        "version": ticket.version,
        "customerId": uid(ticket.customer_id),
        "createdBy": user_ref(ticket.created_by),
        "assignedTo": user_ref(ticket.assigned_to),
        "slaResolveDueAt": iso(ticket.sla_resolve_due_at),
        "slaResolveMet": ticket.sla_resolve_met,
        "closedAt": iso(ticket.closed_at),
        "createdAt": iso(ticket.created_at),
        "updatedAt": iso(ticket.updated_at),
    }
    if include_messages:
        messages = ticket.messages.select_related("author")
        if not include_internal:
            messages = messages.filter(is_internal=False)
        data["messages"] = [serialize_message(m) for m in messages]
        data["events"] = [serialize_history(e) for e in ticket.events.select_related("actor")]
    if allowed_next is not None:
        data["allowedNextStatuses"] = allowed_next
    return data

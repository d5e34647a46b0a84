"""Invoice transition validators."""
from radiopharm.lifecycle.statuses import InvoiceStatus
from radiopharm.lifecycle.validators import BaseTransitionValidator


class InvoiceVoidValidator(BaseTransitionValidator):
    """An invoice with payments recorded against it cannot be voided."""

    def validate(self, instance, from_status, to_status):
        if str(to_status) != InvoiceStatus.CANCELLED_VOIDED:
            return [], []
        if instance.paid_amount > 0:
            return [f"Invoice has {instance.paid_amount} paid; issue a credit note instead of voiding"], []
        return [], []

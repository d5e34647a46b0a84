"""Lifecycle validator that holds gated transitions until approval."""
from django.conf import settings

from radiopharm.lifecycle.validators import BaseTransitionValidator

from .models import RequestStatus


def get_setting(name: str, default=None):
    """Get a setting with APPROVALS_ prefix."""
    return getattr(settings, f"APPROVALS_{name}", default)


class PendingApprovalValidator(BaseTransitionValidator):
    """Block (entity_type, from, to) triples listed in APPROVALS_GATED_TRANSITIONS
    while the entity's latest approval request is PENDING or REJECTED.

    Entities with no approval request at all pass.
    """

    def validate(self, instance, from_status, to_status):
        from .services import latest_request

        gated = {tuple(triple) for triple in get_setting("GATED_TRANSITIONS", [])}
        if (instance.ENTITY_TYPE, str(from_status), str(to_status)) not in gated:
            return [], []

        approval_request = latest_request(instance.ENTITY_TYPE, instance.pk)
        if approval_request is None:
            return [], []
        if approval_request.status == RequestStatus.PENDING:
            return [
                f"Approval '{approval_request.workflow.name}' is pending at step "
                f"{approval_request.current_step_order}"
            ], []
        if approval_request.status == RequestStatus.REJECTED:
            return [f"Approval '{approval_request.workflow.name}' was rejected"], []
        return [], []

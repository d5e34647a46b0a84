"""Lifecycle exceptions."""

from radiopharm.core.exceptions import Conflict, RadiopharmError


class InvalidStatusTransition(RadiopharmError):
    """Requested status change is not in the entity's allow-list.

    The details payload always carries currentStatus and attemptedAction.
    """

    code = "INVALID_STATUS_TRANSITION"
    http_status = 400

    def __init__(self, current_status: str, attempted_action: str, allowed: list = None, reason: str = None):
        self.current_status = current_status
        self.attempted_action = attempted_action
        details = {"currentStatus": current_status, "attemptedAction": attempted_action}
        if allowed is not None:
            details["allowedStatuses"] = list(allowed)
        super().__init__(
            reason or f"Cannot transition from '{current_status}' to '{attempted_action}'",
            details=details,
        )


class TransitionBlocked(InvalidStatusTransition):
    """A transition validator refused an otherwise legal transition."""

    def __init__(self, current_status: str, attempted_action: str, blocks: list[str]):
        self.blocks = blocks
        super().__init__(
            current_status,
            attempted_action,
            reason="Transition blocked: " + "; ".join(blocks),
        )
        self.details["blocks"] = list(blocks)


class StaleVersion(Conflict):
    """Row version moved under a concurrent writer."""

    def __init__(self, entity_type: str, entity_id, expected_version=None, actual_version=None):
        details = {"entityType": entity_type, "entityId": str(entity_id)}
        if expected_version is not None:
            details["expectedVersion"] = expected_version
        if actual_version is not None:
            details["currentVersion"] = actual_version
        super().__init__(f"{entity_type} {entity_id} was modified concurrently", details=details)


class ValidatorLoadError(RadiopharmError):
    """A configured transition validator cannot be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load validator '{path}': {reason}")

"""Base validator interface for status transitions."""


class BaseTransitionValidator:
    """
    Base class for transition validators.

    Validators are registered per entity type in settings.LIFECYCLE_VALIDATORS
    (the "*" key applies to every entity type). They run after the allow-list
    and role checks, against the locked row.

        class CreditHoldValidator(BaseTransitionValidator):
            def validate(self, instance, from_status, to_status):
                if to_status != "SUBMITTED":
                    return [], []
                if instance.customer.on_credit_hold:
                    return ["Customer is on credit hold"], []
                return [], []
    """

    def validate(self, instance, from_status: str, to_status: str) -> tuple[list[str], list[str]]:
        """
        Returns:
            Tuple of (hard_blocks, soft_warnings)
            - hard_blocks: Transition cannot proceed (list of reasons)
            - soft_warnings: Transition allowed; warnings are recorded on the event
        """
        return [], []

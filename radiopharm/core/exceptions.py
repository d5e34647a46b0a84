"""Exception hierarchy shared by every radiopharm app.

Each exception carries the wire-level error code and HTTP status that the
API boundary uses to build the error envelope.
"""


class RadiopharmError(Exception):
    """Base exception for domain errors."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str = None, details: dict = None, field_errors: dict = None, code: str = None):
        if code is not None:
            self.code = code
        self.message = message or self.code.replace("_", " ").capitalize()
        self.details = details
        self.field_errors = field_errors
        super().__init__(self.message)


class DomainValidationError(RadiopharmError):
    """Request data failed validation."""

    code = "VALIDATION_ERROR"
    http_status = 400


class NotFound(RadiopharmError):
    """Requested record does not exist."""

    code = "NOT_FOUND"
    http_status = 404


class Unauthorized(RadiopharmError):
    code = "UNAUTHORIZED"
    http_status = 401


class Forbidden(RadiopharmError):
    """Caller lacks the role required for the operation."""

    code = "FORBIDDEN"
    http_status = 403


class Conflict(RadiopharmError):
    """Record changed under a concurrent writer."""

    code = "CONFLICT"
    http_status = 409


class DuplicateEntry(RadiopharmError):
    code = "DUPLICATE_ENTRY"
    http_status = 409


class BusinessRuleError(RadiopharmError):
    """A domain rule refused the operation (licence, permitted product, ...).

    Raise with an explicit code, e.g.
    BusinessRuleError("Licence expired", code="LICENSE_EXPIRED").
    """

    code = "VALIDATION_ERROR"
    http_status = 400

    STATUS_BY_CODE = {
        "CAPACITY_FULL": 409,
        "INSUFFICIENT_CAPACITY": 409,
    }

    def __init__(self, message: str = None, details: dict = None, field_errors: dict = None, code: str = None):
        super().__init__(message, details=details, field_errors=field_errors, code=code)
        self.http_status = self.STATUS_BY_CODE.get(self.code, 400)

"""Route boundary: translate every uncaught exception into the error envelope."""
import logging

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.db import DatabaseError, IntegrityError
from django.http import Http404

from radiopharm.core.exceptions import RadiopharmError

from .errors import ErrorCode, error_response

logger = logging.getLogger(__name__)

UNIQUE_MARKERS = ("unique constraint", "duplicate key", "unique failed")


def _unique_violation_fields(exc: IntegrityError):
    """Field names for a unique-constraint violation, None if it is not one."""
    text = str(exc)
    lowered = text.lower()
    if not any(marker in lowered for marker in UNIQUE_MARKERS):
        return None
    # sqlite: "UNIQUE constraint failed: orders_order.order_number"
    # postgres: 'duplicate key value violates unique constraint ... DETAIL: Key (order_number)=...'
    fields = []
    if ":" in text and "failed" in lowered:
        for part in text.split(":", 1)[1].split(","):
            fields.append(part.strip().split(".")[-1])
    elif "Key (" in text:
        inner = text.split("Key (", 1)[1].split(")", 1)[0]
        fields = [f.strip() for f in inner.split(",")]
    return fields


def exception_to_response(exc):
    """Map an exception onto an envelope response."""
    if isinstance(exc, RadiopharmError):
        return error_response(
            exc.code,
            exc.message,
            details=exc.details,
            field_errors=exc.field_errors,
            status=exc.http_status,
        )
    if isinstance(exc, (Http404, ObjectDoesNotExist)):
        return error_response(ErrorCode.NOT_FOUND, str(exc) or "Not found")
    if isinstance(exc, PermissionDenied):
        return error_response(ErrorCode.FORBIDDEN, str(exc) or "Permission denied")
    if isinstance(exc, ValidationError):
        field_errors = exc.message_dict if hasattr(exc, "error_dict") else {"non_field_errors": exc.messages}
        return error_response(ErrorCode.VALIDATION_ERROR, "Validation failed", field_errors=field_errors)
    if isinstance(exc, IntegrityError):
        fields = _unique_violation_fields(exc)
        if fields is not None:
            field_errors = {f: ["This value already exists"] for f in fields} or None
            return error_response(ErrorCode.DUPLICATE_ENTRY, str(exc), field_errors=field_errors)
        return error_response(ErrorCode.DATABASE_ERROR, str(exc), exc_info=exc)
    if isinstance(exc, DatabaseError):
        return error_response(ErrorCode.DATABASE_ERROR, str(exc), exc_info=exc)
    return error_response(ErrorCode.INTERNAL_ERROR, str(exc) or exc.__class__.__name__, exc_info=exc)


class ApiErrorMiddleware:
    """Catch exceptions raised by views and return the JSON envelope.

    No exception propagates to the transport layer.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        return exception_to_response(exception)

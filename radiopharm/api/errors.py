"""Error envelope for every API failure.

    {"error": {"code", "message", "userMessage", "details"?, "fieldErrors"?, "traceId"}}

Every envelope gets a fresh traceId which is logged with the code and the
internal message, so support staff can correlate a user report with the
server log line.
"""
import logging
import uuid

from django.http import JsonResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    CONFLICT = "CONFLICT"
    LICENSE_EXPIRED = "LICENSE_EXPIRED"
    PRODUCT_NOT_PERMITTED = "PRODUCT_NOT_PERMITTED"
    ORDER_TIME_NOT_FEASIBLE = "ORDER_TIME_NOT_FEASIBLE"
    CAPACITY_FULL = "CAPACITY_FULL"
    QC_FAILED = "QC_FAILED"
    BATCH_NOT_RELEASED = "BATCH_NOT_RELEASED"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CUSTOMER_NOT_LINKED = "CUSTOMER_NOT_LINKED"
    CUSTOMER_ROLE_REQUIRES_CUSTOMER = "CUSTOMER_ROLE_REQUIRES_CUSTOMER"


USER_MESSAGES = {
    ErrorCode.VALIDATION_ERROR: "Please check the information you entered and try again.",
    ErrorCode.NOT_FOUND: "The requested item could not be found.",
    ErrorCode.UNAUTHORIZED: "Please log in to continue.",
    ErrorCode.FORBIDDEN: "You do not have permission to perform this action.",
    ErrorCode.INVALID_STATUS_TRANSITION: "This action is not allowed in the current status.",
    ErrorCode.CONFLICT: "This record was changed by someone else. Please reload and try again.",
    ErrorCode.LICENSE_EXPIRED: "The customer's license has expired. Please renew the license before placing orders.",
    ErrorCode.PRODUCT_NOT_PERMITTED: "This product is not permitted for the selected customer.",
    ErrorCode.ORDER_TIME_NOT_FEASIBLE: "The requested delivery time cannot be met given the product's shelf life.",
    ErrorCode.CAPACITY_FULL: "There is no production capacity left for the requested slot.",
    ErrorCode.QC_FAILED: "The batch did not pass quality control.",
    ErrorCode.BATCH_NOT_RELEASED: "The batch has not been released yet and cannot be shipped.",
    ErrorCode.INSUFFICIENT_CAPACITY: "There is not enough capacity to complete this request.",
    ErrorCode.DUPLICATE_ENTRY: "A record with these details already exists.",
    ErrorCode.DATABASE_ERROR: "A database error occurred. Please try again later.",
    ErrorCode.INTERNAL_ERROR: "Something went wrong. Please try again later.",
    ErrorCode.CUSTOMER_NOT_LINKED: "Your account is not linked to a customer. Please contact support.",
    ErrorCode.CUSTOMER_ROLE_REQUIRES_CUSTOMER: "Users with the Customer role must be linked to a customer.",
}

HTTP_STATUS = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.INVALID_STATUS_TRANSITION: 400,
    ErrorCode.CONFLICT: 409,
    ErrorCode.LICENSE_EXPIRED: 400,
    ErrorCode.PRODUCT_NOT_PERMITTED: 400,
    ErrorCode.ORDER_TIME_NOT_FEASIBLE: 400,
    ErrorCode.CAPACITY_FULL: 409,
    ErrorCode.QC_FAILED: 400,
    ErrorCode.BATCH_NOT_RELEASED: 400,
    ErrorCode.INSUFFICIENT_CAPACITY: 409,
    ErrorCode.DUPLICATE_ENTRY: 409,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.CUSTOMER_NOT_LINKED: 400,
    ErrorCode.CUSTOMER_ROLE_REQUIRES_CUSTOMER: 400,
}


def new_trace_id() -> str:
    return str(uuid.uuid4())


def error_payload(code, message=None, details=None, field_errors=None, trace_id=None) -> dict:
    body = {
        "code": code,
        "message": message or code,
        "userMessage": USER_MESSAGES.get(code, USER_MESSAGES[ErrorCode.INTERNAL_ERROR]),
        "traceId": trace_id or new_trace_id(),
    }
    if details:
        body["details"] = details
    if field_errors:
        body["fieldErrors"] = field_errors
    return {"error": body}


def error_response(code, message=None, details=None, field_errors=None, status=None, exc_info=False):
    """Build the error envelope and log it under a fresh traceId."""
    status = status or HTTP_STATUS.get(code, 500)
    payload = error_payload(code, message, details, field_errors)
    trace_id = payload["error"]["traceId"]

    line = f"[{trace_id}] {code}: {payload['error']['message']}"
    if status >= 500:
        logger.error(line, exc_info=exc_info)
    else:
        logger.warning(line)

    return JsonResponse(payload, status=status)

"""Request body parsing with VALIDATION_ERROR on bad input."""
import json
import uuid
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date, parse_datetime

from radiopharm.core.exceptions import DomainValidationError


def _field_error(field, message):
    return DomainValidationError(message, field_errors={field: [message]})


def parse_json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise DomainValidationError("Malformed JSON body")
    if not isinstance(data, dict):
        raise DomainValidationError("JSON body must be an object")
    return data


def require_fields(data: dict, *fields):
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise DomainValidationError(
            f"Missing required fields: {', '.join(missing)}",
            field_errors={f: ["This field is required"] for f in missing},
        )


def parse_choice(data: dict, field: str, choices, required: bool = True, default=None):
    """Return data[field] if it is one of the enum's declared values.

    Args:
        choices: A TextChoices class or an iterable of allowed values
    """
    allowed = list(getattr(choices, "values", choices))
    value = data.get(field)
    if value in (None, ""):
        if required:
            raise _field_error(field, "This field is required")
        return default
    if value not in allowed:
        raise DomainValidationError(
            f"Invalid value '{value}' for {field}",
            field_errors={field: [f"Must be one of: {', '.join(allowed)}"]},
        )
    return value


def parse_decimal(data: dict, field: str, required: bool = True, default=None, minimum=None):
    value = data.get(field)
    if value in (None, ""):
        if required:
            raise _field_error(field, "This field is required")
        return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise _field_error(field, "Must be a number")
    if not result.is_finite():
        raise _field_error(field, "Must be a number")
    if minimum is not None and result < minimum:
        raise _field_error(field, f"Must be at least {minimum}")
    return result


def parse_int(data: dict, field: str, required: bool = False, default=None):
    value = data.get(field)
    if value in (None, ""):
        if required:
            raise _field_error(field, "This field is required")
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise _field_error(field, "Must be an integer")


def parse_bool(data: dict, field: str, default=None):
    """JSON true/false only; strings such as "false" are rejected rather than read as truthy."""
    value = data.get(field)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise _field_error(field, "Must be true or false")
    return value


def parse_datetime_field(data: dict, field: str, required: bool = True, default=None):
    value = data.get(field)
    if value in (None, ""):
        if required:
            raise _field_error(field, "This field is required")
        return default
    try:
        result = parse_datetime(str(value))
    except ValueError:
        result = None
    if result is None:
        raise _field_error(field, "Must be an ISO-8601 datetime")
    return result


def parse_date_field(data: dict, field: str, required: bool = True, default=None):
    value = data.get(field)
    if value in (None, ""):
        if required:
            raise _field_error(field, "This field is required")
        return default
    try:
        result = parse_date(str(value)[:10])
    except ValueError:
        result = None
    if result is None:
        raise _field_error(field, "Must be an ISO-8601 date")
    return result


def parse_uuid(value, field: str = "id"):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise _field_error(field, "Must be a valid UUID")


def parse_uuid_list(data: dict, field: str, required: bool = True) -> list:
    values = data.get(field)
    if not values:
        if required:
            raise _field_error(field, "At least one id is required")
        return []
    if not isinstance(values, list):
        raise _field_error(field, "Must be a list of ids")
    return [parse_uuid(v, field) for v in values]


def parse_expected_version(request, data: dict = None):
    """Client's row version from the If-Match header or a "version" body field."""
    header = request.headers.get("If-Match", "").strip().strip('"')
    if header:
        try:
            return int(header)
        except ValueError:
            raise _field_error("version", "If-Match must be an integer version")
    return parse_int(data or {}, "version", required=False)

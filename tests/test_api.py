"""Tests for the error envelope, exception mapping and request parsing."""
import json
import logging
import uuid

import pytest
from django.db import IntegrityError
from django.http import Http404
from django.test import RequestFactory

from radiopharm.api.errors import ErrorCode, error_payload, error_response
from radiopharm.api.middleware import exception_to_response
from radiopharm.api.parsing import (
    parse_choice,
    parse_date_field,
    parse_datetime_field,
    parse_decimal,
    parse_expected_version,
    parse_json_body,
    parse_uuid,
    parse_uuid_list,
    require_fields,
)
from radiopharm.core.exceptions import BusinessRuleError, DomainValidationError
from radiopharm.lifecycle.exceptions import InvalidStatusTransition, StaleVersion
from radiopharm.lifecycle.statuses import OrderStatus


class TestEnvelope:
    """Tests for the error envelope shape."""

    def test_required_keys(self):
        body = error_payload(ErrorCode.NOT_FOUND, "Order 1 not found")["error"]
        assert body["code"] == "NOT_FOUND"
        assert body["message"] == "Order 1 not found"
        assert body["userMessage"] == "The requested item could not be found."
        assert uuid.UUID(body["traceId"])
        assert "details" not in body
        assert "fieldErrors" not in body

    def test_fresh_trace_id_per_error(self):
        first = error_payload(ErrorCode.CONFLICT)["error"]["traceId"]
        second = error_payload(ErrorCode.CONFLICT)["error"]["traceId"]
        assert first != second

    def test_unknown_code_gets_generic_user_message(self):
        body = error_payload("SOMETHING_NEW")["error"]
        assert body["userMessage"] == "Something went wrong. Please try again later."

    def test_trace_id_logged(self, caplog):
        """The logged line carries the same traceId the client receives."""
        with caplog.at_level(logging.WARNING, logger="radiopharm.api.errors"):
            response = error_response(ErrorCode.FORBIDDEN, "nope")
        trace_id = json.loads(response.content)["error"]["traceId"]
        assert response.status_code == 403
        assert any(trace_id in record.getMessage() for record in caplog.records)

    def test_server_errors_logged_as_errors(self, caplog):
        with caplog.at_level(logging.WARNING, logger="radiopharm.api.errors"):
            error_response(ErrorCode.INTERNAL_ERROR, "boom")
        assert caplog.records[-1].levelno == logging.ERROR


class TestExceptionMapping:
    """Tests for exception_to_response."""

    def _body(self, response):
        return json.loads(response.content)["error"]

    def test_domain_error(self):
        exc = DomainValidationError("Bad input", field_errors={"name": ["Required"]})
        response = exception_to_response(exc)
        assert response.status_code == 400
        assert self._body(response)["fieldErrors"] == {"name": ["Required"]}

    def test_business_rule_code(self):
        response = exception_to_response(BusinessRuleError("Expired", code="LICENSE_EXPIRED"))
        assert response.status_code == 400
        assert self._body(response)["code"] == "LICENSE_EXPIRED"

    def test_capacity_is_conflict_status(self):
        response = exception_to_response(BusinessRuleError("Full", code="CAPACITY_FULL"))
        assert response.status_code == 409

    def test_invalid_transition(self):
        response = exception_to_response(InvalidStatusTransition("DRAFT", "DELIVERED"))
        body = self._body(response)
        assert response.status_code == 400
        assert body["code"] == "INVALID_STATUS_TRANSITION"
        assert body["details"]["currentStatus"] == "DRAFT"

    def test_stale_version(self):
        response = exception_to_response(StaleVersion("ORDER", "abc", expected_version=1, actual_version=2))
        assert response.status_code == 409
        assert self._body(response)["code"] == "CONFLICT"

    def test_http404(self):
        response = exception_to_response(Http404("No Order matches the given query."))
        assert response.status_code == 404
        assert self._body(response)["code"] == "NOT_FOUND"

    def test_unique_violation_sqlite(self):
        response = exception_to_response(IntegrityError("UNIQUE constraint failed: orders_customer.code"))
        body = self._body(response)
        assert response.status_code == 409
        assert body["code"] == "DUPLICATE_ENTRY"
        assert body["fieldErrors"] == {"code": ["This value already exists"]}

    def test_unique_violation_postgres(self):
        exc = IntegrityError(
            'duplicate key value violates unique constraint "orders_customer_code_key"\n'
            "DETAIL:  Key (code)=(KFH) already exists."
        )
        assert self._body(exception_to_response(exc))["fieldErrors"] == {"code": ["This value already exists"]}

    def test_other_integrity_error(self):
        response = exception_to_response(IntegrityError("NOT NULL constraint failed: orders_order.customer_id"))
        assert response.status_code == 500
        assert self._body(response)["code"] == "DATABASE_ERROR"

    def test_unexpected_exception(self):
        response = exception_to_response(RuntimeError("kaboom"))
        assert response.status_code == 500
        assert self._body(response)["code"] == "INTERNAL_ERROR"


class TestParsing:
    """Tests for request body parsing helpers."""

    def test_malformed_json(self):
        request = RequestFactory().post("/x", data="{nope", content_type="application/json")
        with pytest.raises(DomainValidationError):
            parse_json_body(request)

    def test_non_object_json(self):
        request = RequestFactory().post("/x", data="[1, 2]", content_type="application/json")
        with pytest.raises(DomainValidationError):
            parse_json_body(request)

    def test_empty_body(self):
        request = RequestFactory().post("/x", data="", content_type="application/json")
        assert parse_json_body(request) == {}

    def test_require_fields_lists_all_missing(self):
        with pytest.raises(DomainValidationError) as exc_info:
            require_fields({"a": 1, "b": ""}, "a", "b", "c")
        assert set(exc_info.value.field_errors) == {"b", "c"}

    def test_choice_rejects_unknown_value(self):
        with pytest.raises(DomainValidationError) as exc_info:
            parse_choice({"status": "SHIPPED"}, "status", OrderStatus)
        assert "Must be one of" in exc_info.value.field_errors["status"][0]

    def test_choice_accepts_declared_value(self):
        assert parse_choice({"status": "DRAFT"}, "status", OrderStatus) == "DRAFT"

    def test_choice_is_case_sensitive(self):
        with pytest.raises(DomainValidationError):
            parse_choice({"status": "draft"}, "status", OrderStatus)

    def test_choice_default(self):
        assert parse_choice({}, "status", OrderStatus, required=False, default="DRAFT") == "DRAFT"

    def test_decimal(self):
        assert str(parse_decimal({"amount": "10.50"}, "amount")) == "10.50"
        with pytest.raises(DomainValidationError):
            parse_decimal({"amount": "ten"}, "amount")
        with pytest.raises(DomainValidationError):
            parse_decimal({"amount": "NaN"}, "amount")
        with pytest.raises(DomainValidationError):
            parse_decimal({"amount": "-1"}, "amount", minimum=0)

    def test_datetime_and_date(self):
        assert parse_datetime_field({"at": "2026-03-01T10:00:00Z"}, "at").hour == 10
        assert parse_date_field({"on": "2026-03-01"}, "on").day == 1
        with pytest.raises(DomainValidationError):
            parse_datetime_field({"at": "tomorrow"}, "at")

    def test_uuid(self):
        value = uuid.uuid4()
        assert parse_uuid(str(value)) == value
        with pytest.raises(DomainValidationError):
            parse_uuid("not-a-uuid", "orderId")
        with pytest.raises(DomainValidationError):
            parse_uuid_list({"ids": "abc"}, "ids")

    def test_expected_version_from_header(self):
        request = RequestFactory().put("/x", HTTP_IF_MATCH='"3"')
        assert parse_expected_version(request, {"version": 9}) == 3

    def test_expected_version_from_body(self):
        request = RequestFactory().put("/x")
        assert parse_expected_version(request, {"version": "4"}) == 4
        assert parse_expected_version(request, {}) is None

    def test_expected_version_bad_header(self):
        request = RequestFactory().put("/x", HTTP_IF_MATCH="W/abc")
        with pytest.raises(DomainValidationError):
            parse_expected_version(request)


@pytest.mark.django_db
class TestBoundary:
    """Tests for ApiErrorMiddleware on real routes."""

    def test_unknown_order_is_not_found(self, client_for, admin):
        response = client_for(admin).get(f"/api/orders/{uuid.uuid4()}")
        assert response.status_code == 404
        body = response.json()["error"]
        assert body["code"] == "NOT_FOUND"
        assert body["traceId"]

    def test_anonymous_is_unauthorized(self, client):
        response = client.get("/api/orders")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_bad_login(self, client):
        response = client.post(
            "/api/auth/login",
            {"username": "ghost", "password": "x"},
            content_type="application/json",
        )
        assert response.status_code == 401

    def test_me(self, client_for, sales):
        body = client_for(sales).get("/api/auth/me").json()
        assert body["username"] == "sales"
        assert body["roles"] == ["Sales"]

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.json() == {"status": "ok", "database": "ok"}

"""End-to-end HTTP flows across orders, approvals and the audit trail."""
import pytest

from radiopharm.audit.models import AuditLog
from radiopharm.lifecycle.services import transition
from radiopharm.lifecycle.statuses import OrderStatus


def put_status(client, order_id, status, **extra):
    return client.put(
        f"/api/orders/{order_id}/status",
        {"status": status},
        content_type="application/json",
        **extra,
    )


@pytest.mark.django_db
class TestApprovalGatedValidation:
    """An order submitted under a two-step workflow validates only once both steps approve."""

    def test_flow(self, client_for, admin, sales, planner, make_order):
        admin_client = client_for(admin)
        sales_client = client_for(sales)
        planner_client = client_for(planner)

        response = admin_client.post(
            "/api/approvals/workflows",
            {
                "name": "Order validation",
                "entityType": "ORDER",
                "triggerStatus": "SUBMITTED",
                "steps": [
                    {"name": "Commercial review", "approverRole": "Sales"},
                    {"name": "Planning review", "approverRole": "Production Planner", "timeoutHours": 4},
                ],
            },
            content_type="application/json",
        )
        assert response.status_code == 201

        order = make_order()
        response = put_status(sales_client, order.pk, "SUBMITTED")
        assert response.status_code == 200
        assert response.json()["status"] == "SUBMITTED"

        history = admin_client.get(f"/api/approvals/history/ORDER/{order.pk}").json()["requests"]
        assert len(history) == 1
        request_id = history[0]["id"]
        assert history[0]["currentStepOrder"] == 1
        assert history[0]["status"] == "PENDING"

        response = put_status(planner_client, order.pk, "VALIDATED")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

        response = sales_client.post(
            f"/api/approvals/{request_id}/approve", {"comments": "Pricing agreed"}, content_type="application/json"
        )
        assert response.status_code == 200
        assert response.json()["currentStepOrder"] == 2
        assert response.json()["status"] == "PENDING"

        response = planner_client.post(f"/api/approvals/{request_id}/approve", {}, content_type="application/json")
        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"

        response = put_status(planner_client, order.pk, "VALIDATED")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "VALIDATED"
        assert [h["toStatus"] for h in body["history"]][-2:] == ["SUBMITTED", "VALIDATED"]

    def test_wrong_role_cannot_approve_step(self, client_for, admin, planner, make_order, service_desk):
        client_for(admin).post(
            "/api/approvals/workflows",
            {
                "name": "Order validation",
                "entityType": "ORDER",
                "triggerStatus": "SUBMITTED",
                "steps": [{"name": "Commercial review", "approverRole": "Sales"}],
            },
            content_type="application/json",
        )
        order = make_order(status=OrderStatus.SUBMITTED)
        request_id = client_for(admin).get(f"/api/approvals/history/ORDER/{order.pk}").json()["requests"][0]["id"]

        response = client_for(planner).post(f"/api/approvals/{request_id}/approve", {}, content_type="application/json")
        assert response.status_code == 403

    def test_draft_to_delivered_rejected(self, client_for, sales, make_order):
        order = make_order()
        response = put_status(client_for(sales), order.pk, "DELIVERED")
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_STATUS_TRANSITION"
        assert error["details"]["currentStatus"] == "DRAFT"
        assert error["details"]["attemptedAction"] == "DELIVERED"
        assert error["traceId"]


@pytest.mark.django_db
class TestConcurrentValidation:
    """Two planners validate the same order from the same read."""

    def test_one_wins(self, client_for, planner, admin, make_order):
        order = make_order(status=OrderStatus.SUBMITTED)
        first = client_for(planner)
        second = client_for(admin)

        seen = first.get(f"/api/orders/{order.pk}").json()["version"]
        assert second.get(f"/api/orders/{order.pk}").json()["version"] == seen

        ok = put_status(first, order.pk, "VALIDATED", HTTP_IF_MATCH=str(seen))
        late = put_status(second, order.pk, "VALIDATED", HTTP_IF_MATCH=str(seen))

        assert ok.status_code == 200
        assert late.status_code == 409
        assert late.json()["error"]["code"] == "CONFLICT"
        validated = AuditLog.objects.filter(
            entity_type="ORDER",
            entity_id=str(order.pk),
            action="STATUS_CHANGE",
            metadata__toStatus="VALIDATED",
        )
        assert validated.count() == 1
        assert validated.get().actor_user == planner

    def test_stale_write_after_cancel(self, client_for, planner, service_desk, make_order):
        """A status change on a stale read fails even when the move is otherwise legal."""
        order = make_order(status=OrderStatus.SUBMITTED)
        seen = order.version
        transition(order, OrderStatus.CANCELLED, actor=service_desk)

        response = put_status(client_for(planner), order.pk, "CANCELLED", HTTP_IF_MATCH=str(seen))
        assert response.status_code == 409

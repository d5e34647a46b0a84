"""Tests for batch planning, the batch lifecycle and QP release."""
from datetime import timedelta

import pytest

from radiopharm.approvals.services import create_workflow_definition
from radiopharm.accounts import roles
from radiopharm.audit.models import AuditLog
from radiopharm.core.exceptions import DomainValidationError, Forbidden
from radiopharm.lifecycle.exceptions import InvalidStatusTransition, TransitionBlocked
from radiopharm.lifecycle.services import transition
from radiopharm.lifecycle.statuses import BatchStatus, OrderStatus
from radiopharm.orders.models import Order, Product
from radiopharm.production.models import BatchRelease
from radiopharm.production.services import (
    change_batch_status,
    create_batch,
    release_batch,
)


@pytest.fixture
def validated_orders(make_order, admin):
    """Two VALIDATED orders for the product."""
    orders = []
    for activity in (10.0, 20.0):
        order = make_order(status=OrderStatus.SUBMITTED, requested_activity=activity)
        transition(order, OrderStatus.VALIDATED, actor=admin)
        orders.append(order)
    return orders


@pytest.fixture
def batch(validated_orders, manager, product, delivery_time):
    """A PLANNED batch holding both validated orders."""
    start = delivery_time - timedelta(hours=3)
    return create_batch(
        manager,
        product.pk,
        planned_start=start,
        planned_end=start + timedelta(hours=1),
        order_ids=[o.pk for o in validated_orders],
    )


@pytest.fixture
def qc_passed_batch(batch, operator, qc_analyst):
    """Walk the batch to QC_PASSED."""
    change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
    change_batch_status(batch, BatchStatus.COMPLETED, actor=operator, actual_activity=95.0)
    change_batch_status(batch, BatchStatus.QC_PENDING, actor=qc_analyst)
    change_batch_status(batch, BatchStatus.QC_IN_PROGRESS, actor=qc_analyst)
    change_batch_status(batch, BatchStatus.QC_PASSED, actor=qc_analyst)
    return batch


def statuses(orders):
    return [Order.objects.get(pk=o.pk).status for o in orders]


@pytest.mark.django_db
class TestCreateBatch:
    """Tests for production.services.create_batch."""

    def test_orders_scheduled_and_linked(self, batch, validated_orders):
        assert batch.status == BatchStatus.PLANNED
        assert batch.batch_number.startswith("BAT-")
        for order in validated_orders:
            order.refresh_from_db()
            assert order.status == OrderStatus.SCHEDULED
            assert order.batch == batch

    def test_target_defaults_to_order_sum(self, batch, validated_orders):
        expected = sum(o.calculated_production_activity for o in validated_orders)
        assert batch.target_activity == pytest.approx(expected)

    def test_scheduling_is_audited(self, batch, validated_orders):
        entry = AuditLog.objects.get(
            entity_id=str(validated_orders[0].pk), action="STATUS_CHANGE", metadata__toStatus="SCHEDULED"
        )
        assert entry.changes["batch"]["new"] == str(batch.pk)

    def test_other_product_rejected(self, validated_orders, manager, delivery_time):
        other = Product.objects.create(code="NAF", name="F-18 NaF", half_life_minutes=109.8, shelf_life_minutes=600)
        with pytest.raises(DomainValidationError) as exc_info:
            create_batch(
                manager,
                other.pk,
                planned_start=delivery_time,
                planned_end=delivery_time,
                order_ids=[validated_orders[0].pk],
            )
        assert "product differs" in exc_info.value.field_errors["orderIds"][0]

    def test_draft_order_rejected(self, order, manager, product, delivery_time):
        with pytest.raises(DomainValidationError):
            create_batch(manager, product.pk, delivery_time, delivery_time, order_ids=[order.pk])

    def test_order_in_one_batch_only(self, batch, validated_orders, manager, product, delivery_time):
        with pytest.raises(DomainValidationError):
            create_batch(manager, product.pk, delivery_time, delivery_time, order_ids=[validated_orders[0].pk])

    def test_end_before_start(self, manager, product, delivery_time):
        with pytest.raises(DomainValidationError):
            create_batch(manager, product.pk, delivery_time, delivery_time - timedelta(minutes=1), target_activity=5)

    def test_empty_batch_needs_target(self, manager, product, delivery_time):
        with pytest.raises(DomainValidationError):
            create_batch(manager, product.pk, delivery_time, delivery_time)
        assert create_batch(manager, product.pk, delivery_time, delivery_time, target_activity=50).pk


@pytest.mark.django_db
class TestBatchLifecycle:
    """Tests for batch transitions and the order cascade."""

    def test_start_cascades_to_orders(self, batch, validated_orders, operator):
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        assert batch.actual_start is not None
        assert statuses(validated_orders) == [OrderStatus.IN_PRODUCTION] * 2

    def test_qc_pending_cascades(self, batch, validated_orders, operator, qc_analyst):
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        change_batch_status(batch, BatchStatus.COMPLETED, actor=operator)
        assert batch.actual_end is not None
        change_batch_status(batch, BatchStatus.QC_PENDING, actor=qc_analyst)
        assert statuses(validated_orders) == [OrderStatus.QC_PENDING] * 2

    def test_qc_failure_cascades(self, batch, validated_orders, operator, qc_analyst):
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        change_batch_status(batch, BatchStatus.COMPLETED, actor=operator)
        change_batch_status(batch, BatchStatus.QC_PENDING, actor=qc_analyst)
        change_batch_status(batch, BatchStatus.QC_IN_PROGRESS, actor=qc_analyst)
        change_batch_status(batch, BatchStatus.QC_FAILED, actor=qc_analyst)
        assert statuses(validated_orders) == [OrderStatus.FAILED_QC] * 2

    def test_cancelled_order_left_behind(self, batch, validated_orders, operator, admin):
        """An order cancelled after scheduling does not follow the batch."""
        transition(validated_orders[0], OrderStatus.CANCELLED, actor=admin)
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        assert statuses(validated_orders) == [OrderStatus.CANCELLED, OrderStatus.IN_PRODUCTION]

    def test_operator_cannot_pass_qc(self, batch, operator):
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        change_batch_status(batch, BatchStatus.COMPLETED, actor=operator)
        with pytest.raises(Forbidden):
            change_batch_status(batch, BatchStatus.QC_PENDING, actor=operator)

    def test_actual_activity_recorded(self, qc_passed_batch):
        assert qc_passed_batch.actual_activity == 95.0

    def test_skip_rejected(self, batch, qc_analyst):
        with pytest.raises(InvalidStatusTransition):
            change_batch_status(batch, BatchStatus.QC_PASSED, actor=qc_analyst)

    def test_release_only_through_release_batch(self, qc_passed_batch, qp):
        with pytest.raises(InvalidStatusTransition) as exc_info:
            change_batch_status(qc_passed_batch, BatchStatus.RELEASED, actor=qp)
        assert exc_info.value.details["attemptedAction"] == BatchStatus.RELEASED
        qc_passed_batch.refresh_from_db()
        assert qc_passed_batch.status == BatchStatus.QC_PASSED
        assert not BatchRelease.objects.exists()


@pytest.mark.django_db
class TestRelease:
    """Tests for Qualified Person release."""

    def test_release(self, qc_passed_batch, validated_orders, qp):
        release = release_batch(qc_passed_batch, qp, signature="QP-7781", reason="All tests within limits")
        qc_passed_batch.refresh_from_db()

        assert qc_passed_batch.status == BatchStatus.RELEASED
        assert release.released_by == qp
        assert statuses(validated_orders) == [OrderStatus.RELEASED] * 2
        assert AuditLog.objects.filter(entity_id=str(qc_passed_batch.pk), action="RELEASE").count() == 1

    def test_signature_redacted_in_audit(self, qc_passed_batch, qp):
        release = release_batch(qc_passed_batch, qp, signature="QP-7781")
        entry = AuditLog.objects.get(entity_type="BATCH_RELEASE", entity_id=str(release.pk))
        assert entry.new_values["electronic_signature"] == "***"

    def test_only_qp_releases(self, qc_passed_batch, operator):
        with pytest.raises(Forbidden):
            release_batch(qc_passed_batch, operator, signature="X")

    def test_release_needs_qc_passed(self, batch, qp):
        with pytest.raises(InvalidStatusTransition) as exc_info:
            release_batch(batch, qp, signature="X")
        assert exc_info.value.details["attemptedAction"] == "RELEASE"

    def test_release_needs_signature(self, qc_passed_batch, qp):
        with pytest.raises(DomainValidationError):
            release_batch(qc_passed_batch, qp, signature="")

    def test_releases_are_immutable(self, qc_passed_batch, qp):
        release = release_batch(qc_passed_batch, qp, signature="QP-1")
        release.reason = "changed"
        with pytest.raises(ValueError):
            release.save()

    def test_release_held_by_pending_approval(self, batch, operator, qc_analyst, qp, admin):
        """A QC_PASSED approval workflow holds the release until approved."""
        create_workflow_definition(
            name="Release review",
            entity_type="BATCH",
            trigger_status="QC_PASSED",
            steps=[{"name": "Head of quality", "approver_role": roles.ADMIN}],
        )
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        change_batch_status(batch, BatchStatus.COMPLETED, actor=operator)
        change_batch_status(batch, BatchStatus.QC_PENDING, actor=qc_analyst)
        change_batch_status(batch, BatchStatus.QC_IN_PROGRESS, actor=qc_analyst)
        change_batch_status(batch, BatchStatus.QC_PASSED, actor=qc_analyst)

        with pytest.raises(TransitionBlocked):
            release_batch(batch, qp, signature="QP-1")
        assert not BatchRelease.objects.exists()


@pytest.mark.django_db
class TestBatchApi:
    """Tests for the batch endpoints."""

    def test_create(self, client_for, manager, validated_orders, product, delivery_time):
        response = client_for(manager).post(
            "/api/batches",
            {
                "productId": str(product.pk),
                "plannedStart": delivery_time.isoformat(),
                "plannedEnd": (delivery_time + timedelta(hours=1)).isoformat(),
                "orderIds": [str(o.pk) for o in validated_orders],
            },
            content_type="application/json",
        )
        assert response.status_code == 201
        body = response.json()
        assert [o["status"] for o in body["orders"]] == ["SCHEDULED", "SCHEDULED"]

    def test_create_forbidden_for_operator(self, client_for, operator, product, delivery_time):
        response = client_for(operator).post(
            "/api/batches",
            {"productId": str(product.pk), "plannedStart": delivery_time.isoformat(), "plannedEnd": delivery_time.isoformat()},
            content_type="application/json",
        )
        assert response.status_code == 403

    def test_transition_and_events(self, client_for, operator, batch):
        client = client_for(operator)
        response = client.post(
            f"/api/batches/{batch.pk}/transition", {"status": "IN_PROGRESS"}, content_type="application/json"
        )
        assert response.status_code == 200
        assert response.json()["status"] == "IN_PROGRESS"

        events = client.get(f"/api/batches/{batch.pk}/events").json()["events"]
        assert [e["toStatus"] for e in events] == ["PLANNED", "IN_PROGRESS"]

    def test_transition_route_cannot_release(self, client_for, qp, qc_passed_batch):
        response = client_for(qp).post(
            f"/api/batches/{qc_passed_batch.pk}/transition", {"status": "RELEASED"}, content_type="application/json"
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    def test_release_endpoint(self, client_for, qp, qc_passed_batch):
        response = client_for(qp).post(
            f"/api/batches/{qc_passed_batch.pk}/release",
            {"electronicSignature": "QP-9", "releaseType": "CONDITIONAL", "reason": "Sterility pending"},
            content_type="application/json",
        )
        assert response.status_code == 200
        body = response.json()
        assert body["batch"]["status"] == "RELEASED"
        assert body["release"]["releaseType"] == "CONDITIONAL"
        assert "electronicSignature" not in body["release"]

    def test_release_endpoint_forbidden(self, client_for, operator, qc_passed_batch):
        response = client_for(operator).post(
            f"/api/batches/{qc_passed_batch.pk}/release",
            {"electronicSignature": "X"},
            content_type="application/json",
        )
        assert response.status_code == 403

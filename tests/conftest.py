"""Shared fixtures: roles, users per role, a customer with a permitted product, orders."""
from datetime import datetime, time, timedelta, timezone as dt_timezone

import pytest
from django.test import Client
from django.utils import timezone

from radiopharm.accounts import roles
from radiopharm.accounts.models import User
from radiopharm.accounts.services import assign_role, ensure_default_roles
from radiopharm.lifecycle.services import transition
from radiopharm.lifecycle.statuses import BatchStatus, OrderStatus
from radiopharm.orders.models import Customer, Product
from radiopharm.orders.services import create_order
from radiopharm.production.services import change_batch_status, create_batch, release_batch

PASSWORD = "s3cret-pass"


@pytest.fixture
def default_roles(db):
    """All canonical roles."""
    return ensure_default_roles()


@pytest.fixture
def make_user(default_roles):
    """Factory: make_user("name", "Role", ...) with the first role as primary."""

    def _make(username, *role_names, customer=None, **extra):
        user = User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password=PASSWORD,
            customer=customer,
            **extra,
        )
        for index, name in enumerate(role_names):
            assign_role(user, name, is_primary=index == 0)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", roles.ADMIN)


@pytest.fixture
def sales(make_user):
    return make_user("sales", roles.SALES)


@pytest.fixture
def planner(make_user):
    return make_user("planner", roles.PRODUCTION_PLANNER)


@pytest.fixture
def manager(make_user):
    return make_user("manager", roles.PRODUCTION_MANAGER)


@pytest.fixture
def service_desk(make_user):
    """Customer Service user, the usual order creator."""
    return make_user("service", roles.CUSTOMER_SERVICE)


@pytest.fixture
def operator(make_user):
    return make_user("operator", roles.OPERATOR)


@pytest.fixture
def qc_analyst(make_user):
    return make_user("qc", roles.QC_ANALYST)


@pytest.fixture
def qp(make_user):
    return make_user("qp", roles.QUALIFIED_PERSON)


@pytest.fixture
def logistics_user(make_user):
    return make_user("logistics", roles.LOGISTICS)


@pytest.fixture
def driver(make_user):
    return make_user("driver", roles.DRIVER)


@pytest.fixture
def finance(make_user):
    return make_user("finance", roles.FINANCE)


@pytest.fixture
def product(db):
    """F-18 FDG: 109.8 min half-life, 10 h shelf life."""
    return Product.objects.create(
        code="FDG",
        name="F-18 FDG",
        radionuclide="F-18",
        half_life_minutes=109.8,
        shelf_life_minutes=600,
        synthesis_time_minutes=60,
        qc_time_minutes=30,
        packaging_time_minutes=15,
        overage_percent=10,
        unit_price="1500.00",
    )


@pytest.fixture
def customer(product):
    """Licensed hospital, 60 minutes away, allowed to order the product."""
    customer = Customer.objects.create(
        code="KFH",
        name="King Fahad Hospital",
        email="nm@kfh.example.com",
        license_number="LIC-001",
        license_expiry_date=timezone.localdate() + timedelta(days=365),
        travel_time_minutes=60,
    )
    customer.permitted_products.add(product)
    return customer


@pytest.fixture
def portal_user(make_user, customer):
    """Customer-portal user linked to the customer."""
    return make_user("portal", roles.CUSTOMER, customer=customer)


@pytest.fixture
def delivery_time():
    """Tomorrow 10:00 UTC."""
    tomorrow = timezone.localdate() + timedelta(days=1)
    return datetime.combine(tomorrow, time(10, 0), tzinfo=dt_timezone.utc)


@pytest.fixture
def make_order(service_desk, customer, product, delivery_time):
    """Factory for orders created by Customer Service."""

    def _make(status=OrderStatus.DRAFT, actor=None, requested_activity=10.0, **overrides):
        fields = {
            "customer_id": customer.pk,
            "product_id": product.pk,
            "delivery_date": delivery_time.date(),
            "delivery_time_start": delivery_time,
            "delivery_time_end": delivery_time + timedelta(hours=1),
            "requested_activity": requested_activity,
            "status": status,
        }
        fields.update(overrides)
        return create_order(actor or service_desk, **fields)

    return _make


@pytest.fixture
def order(make_order):
    """A DRAFT order."""
    return make_order()


@pytest.fixture
def client_for(db):
    """Factory: a test client logged in as the given user."""

    def _client(user):
        client = Client()
        client.force_login(user)
        return client

    return _client


@pytest.fixture
def make_released_orders(make_order, admin, manager, operator, qc_analyst, qp, product, delivery_time):
    """Factory: n orders pushed through one batch up to RELEASED."""

    def _make(n=1, **order_fields):
        orders = []
        for _ in range(n):
            order = make_order(status=OrderStatus.SUBMITTED, **order_fields)
            transition(order, OrderStatus.VALIDATED, actor=admin)
            orders.append(order)
        start = delivery_time - timedelta(hours=3)
        batch = create_batch(manager, product.pk, start, start + timedelta(hours=1), order_ids=[o.pk for o in orders])
        change_batch_status(batch, BatchStatus.IN_PROGRESS, actor=operator)
        change_batch_status(batch, BatchStatus.COMPLETED, actor=operator)
        for status in (BatchStatus.QC_PENDING, BatchStatus.QC_IN_PROGRESS, BatchStatus.QC_PASSED):
            change_batch_status(batch, status, actor=qc_analyst)
        release_batch(batch, qp, signature="QP-1")
        for order in orders:
            order.refresh_from_db()
        return orders

    return _make

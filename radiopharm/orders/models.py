"""Customers, products and orders."""
from django.conf import settings
from django.db import models
from django.db.models import Q

from radiopharm.core.models import BaseModel
from radiopharm.lifecycle.models import StatusEvent, VersionedStatusModel
from radiopharm.lifecycle.statuses import OrderStatus


class Product(BaseModel):
    """A radiopharmaceutical with its decay and production-time parameters."""

    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200)
    radionuclide = models.CharField(max_length=30, blank=True)
    half_life_minutes = models.FloatField()
    shelf_life_minutes = models.FloatField()
    synthesis_time_minutes = models.FloatField(default=0)
    qc_time_minutes = models.FloatField(default=0)
    packaging_time_minutes = models.FloatField(default=0)
    overage_percent = models.FloatField(default=0)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True)

    ENTITY_TYPE = "PRODUCT"

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.code} {self.name}"


class Customer(BaseModel):
    """Licensed receiving site (hospital, clinic, nuclear medicine department)."""

    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    address = models.TextField(blank=True)
    license_number = models.CharField(max_length=100, blank=True)
    license_expiry_date = models.DateField(null=True, blank=True)
    travel_time_minutes = models.PositiveIntegerField(default=60)
    permitted_products = models.ManyToManyField(Product, blank=True, related_name="permitted_customers")
    is_active = models.BooleanField(default=True)

    ENTITY_TYPE = "CUSTOMER"

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Order(VersionedStatusModel):
    order_number = models.CharField(max_length=30, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="orders")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="orders")
    batch = models.ForeignKey(
        "production.Batch",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    delivery_date = models.DateField()
    delivery_time_start = models.DateTimeField()
    delivery_time_end = models.DateTimeField()
    requested_activity = models.FloatField()
    activity_unit = models.CharField(max_length=10, default="mCi")
    number_of_doses = models.PositiveIntegerField(null=True, blank=True)
    injection_time = models.DateTimeField(null=True, blank=True)
    patient_count = models.PositiveIntegerField(null=True, blank=True)
    special_notes = models.TextField(blank=True)

    calculated_production_activity = models.FloatField(null=True, blank=True)
    calculated_calibration_time = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=30, choices=OrderStatus.choices, default=OrderStatus.DRAFT, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    ENTITY_TYPE = "ORDER"
    STATUS_EVENT_MODEL = "orders.OrderHistory"
    STATUS_EVENT_FK = "order"

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(status__in=OrderStatus.values), name="order_status_valid"),
        ]

    def __str__(self):
        return self.order_number


class OrderHistory(StatusEvent):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="history")

    class Meta(StatusEvent.Meta):
        verbose_name_plural = "order history"

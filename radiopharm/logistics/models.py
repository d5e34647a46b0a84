"""Shipments of released orders to customers."""
from django.conf import settings
from django.db import models
from django.db.models import Q

from radiopharm.lifecycle.models import StatusEvent, VersionedStatusModel
from radiopharm.lifecycle.statuses import ShipmentStatus


class Shipment(VersionedStatusModel):
    shipment_number = models.CharField(max_length=30, unique=True)
    customer = models.ForeignKey("orders.Customer", on_delete=models.PROTECT, related_name="shipments")
    orders = models.ManyToManyField("orders.Order", related_name="shipments", blank=True)
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_shipments",
    )
    courier_name = models.CharField(max_length=200, blank=True)
    vehicle_info = models.CharField(max_length=200, blank=True)
    expected_arrival = models.DateTimeField(null=True, blank=True)
    actual_arrival = models.DateTimeField(null=True, blank=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    activity_at_dispatch = models.FloatField(null=True, blank=True)
    activity_at_delivery = models.FloatField(null=True, blank=True)
    received_by = models.CharField(max_length=200, blank=True)
    delivery_notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=30, choices=ShipmentStatus.choices, default=ShipmentStatus.DRAFT, db_index=True
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    ENTITY_TYPE = "SHIPMENT"
    STATUS_EVENT_MODEL = "logistics.ShipmentEvent"
    STATUS_EVENT_FK = "shipment"

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(status__in=ShipmentStatus.values), name="shipment_status_valid"),
        ]

    def __str__(self):
        return self.shipment_number


class ShipmentEvent(StatusEvent):
    shipment = models.ForeignKey(Shipment, on_delete=models.CASCADE, related_name="events")

"""SubscriptionOrder, DeliveryDay and DeliveryStatusHistory models.

Persistence rules:
- One ``DeliveryDay`` per calendar date in ``[start_date, end_date]``,
  enforced by a unique (order, delivery_date) constraint.
- Delivery days are created with the order and never regenerated.
- ``status`` changes only through the order store's ``apply_transition``,
  which appends a ``DeliveryStatusHistory`` row for every real change.
- Orders are never deleted while in scope; history rows cascade with
  their delivery day only for housekeeping.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.subscriptions.constants import DeliveryStatus


class SubscriptionOrder(BaseModel):
    """Subscription order aggregate root.

    ``items`` is a snapshot list of ``{"name": ..., "quantity": ...}``
    taken when the subscription was purchased.
    """

    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=20, blank=True, default="")
    customer_email = models.EmailField(blank=True, default="")
    college = models.CharField(max_length=200, blank=True, default="")
    items = models.JSONField(default=list)
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    placed_at = models.DateTimeField(default=timezone.now)
    start_date = models.DateField()
    end_date = models.DateField()

    class Meta:
        db_table = "subscription_orders"
        ordering = ["start_date", "id"]
        indexes = [
            models.Index(
                fields=["start_date", "end_date"],
                name="sub_orders_range_idx",
            ),
        ]

    @property
    def pack_name(self) -> str:
        return ", ".join(item.get("name", "") for item in self.items)

    def __str__(self) -> str:
        return f"{self.customer_name} ({self.start_date} - {self.end_date})"


class DeliveryDay(BaseModel):
    """One calendar date of a subscription.

    ``delivery_index`` is ``NULL`` on rest days; on deliverable days it is
    the dense 1-based position among the order's non-rest days.
    """

    order = models.ForeignKey(
        "subscriptions.SubscriptionOrder",
        on_delete=models.CASCADE,
        related_name="delivery_days",
    )
    delivery_date = models.DateField()
    is_rest_day = models.BooleanField(default=False)
    delivery_index = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
    )
    updated_by = models.CharField(max_length=150, blank=True, default="")
    status_updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "subscription_delivery_days"
        ordering = ["delivery_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "delivery_date"],
                name="delivery_day_unique_per_order",
            ),
        ]
        indexes = [
            models.Index(
                fields=["delivery_date", "status"],
                name="delivery_day_date_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} @ {self.delivery_date} ({self.status})"


class DeliveryStatusHistory(BaseModel):
    """Append-only audit trail for delivery-day status transitions."""

    delivery_day = models.ForeignKey(
        "subscriptions.DeliveryDay",
        on_delete=models.CASCADE,
        related_name="history",
    )
    actor = models.CharField(max_length=150)
    old_status = models.CharField(max_length=20, choices=DeliveryStatus.choices)
    new_status = models.CharField(max_length=20, choices=DeliveryStatus.choices)
    occurred_at = models.DateTimeField()

    class Meta:
        db_table = "subscription_delivery_history"
        ordering = ["occurred_at", "id"]

    def __str__(self) -> str:
        return f"{self.delivery_day} : {self.old_status} -> {self.new_status}"

"""Subscription delivery constants.

Defines the delivery-day status domain, its forward-only ranking and the
notification templates emitted on status changes.
"""

from __future__ import annotations

import calendar

from django.db import models


class DeliveryStatus(models.TextChoices):
    REST = "rest", "Rest day"
    PENDING = "pending", "Pending"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"


# Forward-only progression.  ``rest`` has no rank: it never transitions.
STATUS_RANK: dict[str, int] = {
    DeliveryStatus.PENDING: 0,
    DeliveryStatus.OUT_FOR_DELIVERY: 1,
    DeliveryStatus.DELIVERED: 2,
}

BATCH_TARGET_STATUSES: frozenset[str] = frozenset(
    {DeliveryStatus.OUT_FOR_DELIVERY, DeliveryStatus.DELIVERED}
)

OPEN_STATUSES: frozenset[str] = frozenset(
    {DeliveryStatus.PENDING, DeliveryStatus.OUT_FOR_DELIVERY}
)


class NotificationKind(models.TextChoices):
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    NEXT_DAY_REMINDER = "next_day_reminder", "Tomorrow's delivery"


# Python weekday numbering (Monday == 0).
REST_WEEKDAY = calendar.SUNDAY

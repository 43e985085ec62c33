"""Notification dispatcher contract and the default structlog-backed dispatcher.

The scheduling engine never talks to a delivery channel directly.  The
Celery worker (``tasks.send_delivery_notification``) builds the payload
and hands it to whichever dispatcher ``settings.NOTIFICATION_DISPATCHER``
names, so email/SMS providers can be plugged in without touching the
engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog
from django.conf import settings
from django.utils.module_loading import import_string
from pydantic import BaseModel, ConfigDict

from modules.subscriptions.constants import NotificationKind
from modules.subscriptions.dtos import DeliveryDayDTO, SubscriptionOrderDTO
from modules.subscriptions.statistics import compute_order_statistics

logger = structlog.get_logger(__name__)

DEFAULT_DISPATCHER = "modules.subscriptions.notifications.LoggingNotificationDispatcher"

SUBJECTS = {
    NotificationKind.OUT_FOR_DELIVERY: "Your subscription pack is out for delivery",
    NotificationKind.DELIVERED: "Your subscription pack has been delivered",
    NotificationKind.NEXT_DAY_REMINDER: "Your next subscription delivery is tomorrow",
}


class NotificationContact(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str = ""
    phone: str = ""


class INotificationDispatcher(ABC):
    """Fire-and-forget delivery of one customer notification."""

    @abstractmethod
    def notify(
        self,
        contact: NotificationContact,
        template_kind: str,
        payload: Dict[str, Any],
    ) -> None: ...


class LoggingNotificationDispatcher(INotificationDispatcher):
    """Records notifications in the structured log instead of sending them."""

    def notify(
        self,
        contact: NotificationContact,
        template_kind: str,
        payload: Dict[str, Any],
    ) -> None:
        channels = [
            name
            for name, value in (("email", contact.email), ("sms", contact.phone))
            if value
        ]
        logger.info(
            "notification.sent",
            template_kind=str(template_kind),
            channels=channels,
            email=contact.email,
            phone=contact.phone,
            order_id=payload.get("order_id"),
            subject=payload.get("subject"),
        )


def get_notification_dispatcher() -> INotificationDispatcher:
    path = getattr(settings, "NOTIFICATION_DISPATCHER", DEFAULT_DISPATCHER)
    return import_string(path)()


def contact_for(order: SubscriptionOrderDTO) -> NotificationContact:
    return NotificationContact(
        name=order.customer_name,
        email=order.customer_email,
        phone=order.customer_phone,
    )


def build_payload(
    order: SubscriptionOrderDTO,
    template_kind: str,
    day: Optional[DeliveryDayDTO],
) -> Dict[str, Any]:
    """JSON-safe payload describing the delivery the notification is about."""
    stats = compute_order_statistics(order.delivery_days)
    return {
        "order_id": order.id,
        "subject": SUBJECTS[NotificationKind(template_kind)],
        "customer_name": order.customer_name,
        "pack_name": order.pack_name,
        "delivery_date": day.delivery_date.isoformat() if day else None,
        "delivery_index": day.delivery_index if day else None,
        "status": str(day.status) if day else None,
        "delivered_so_far": stats.delivered,
        "total_days": stats.total,
    }

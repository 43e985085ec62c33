"""Event handlers for Subscriptions domain events.

Both handlers only enqueue work on the notification worker; delivery
channels never run inside the request or the batch loop.
"""

from __future__ import annotations

import structlog

from modules.subscriptions.constants import NotificationKind
from modules.subscriptions.events import DeliveryStatusChanged, NextDayReminderRequested
from modules.subscriptions.tasks import send_delivery_notification
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class DeliveryStatusChangedHandler(IEventHandler[DeliveryStatusChanged]):
    def handle(self, event: DeliveryStatusChanged) -> None:
        logger.info(
            "notification.enqueued",
            order_id=event.aggregate_id,
            delivery_date=event.delivery_date.isoformat(),
            template_kind=event.new_status,
        )
        send_delivery_notification.delay(
            event.aggregate_id,
            event.delivery_date.isoformat(),
            event.new_status,
        )


class NextDayReminderHandler(IEventHandler[NextDayReminderRequested]):
    def handle(self, event: NextDayReminderRequested) -> None:
        logger.info(
            "notification.enqueued",
            order_id=event.aggregate_id,
            delivery_date=event.delivery_date.isoformat(),
            template_kind=NotificationKind.NEXT_DAY_REMINDER.value,
        )
        send_delivery_notification.delay(
            event.aggregate_id,
            event.delivery_date.isoformat(),
            NotificationKind.NEXT_DAY_REMINDER.value,
        )


delivery_status_changed_handler = DeliveryStatusChangedHandler()
next_day_reminder_handler = NextDayReminderHandler()

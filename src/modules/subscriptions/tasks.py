"""Asynchronous notification worker for subscription deliveries."""

from __future__ import annotations

from datetime import date

import structlog
from celery import shared_task

from modules.subscriptions.notifications import (
    build_payload,
    contact_for,
    get_notification_dispatcher,
)
from modules.subscriptions.repositories.django_repository import (
    SubscriptionOrderDjangoRepository,
)

logger = structlog.get_logger(__name__)


@shared_task(name="subscriptions.send_delivery_notification")
def send_delivery_notification(order_id: str, delivery_date: str, template_kind: str) -> dict:
    """Resolve the customer's contact and hand one notification to the dispatcher."""
    log = logger.bind(order_id=order_id, delivery_date=delivery_date, template_kind=template_kind)

    order = SubscriptionOrderDjangoRepository().get_by_id(order_id)
    if order is None:
        log.warning("notification.order_missing")
        return {"status": "skipped", "order_id": order_id}

    day = order.find_day(date.fromisoformat(delivery_date))
    payload = build_payload(order, template_kind, day)
    get_notification_dispatcher().notify(contact_for(order), template_kind, payload)

    log.info("notification.dispatched")
    return {"status": "sent", "order_id": order_id, "template_kind": template_kind}

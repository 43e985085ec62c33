"""Date-anchored delivery lookups: tomorrow's deliveries and today's worklist.

Every function takes the reference date explicitly; nothing here reads
the wall clock.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Optional

from modules.subscriptions.constants import OPEN_STATUSES, DeliveryStatus
from modules.subscriptions.dtos import (
    DeliveryDayDTO,
    ScheduledDeliveryDTO,
    SubscriptionOrderDTO,
)
from modules.subscriptions.statistics import compute_order_statistics


def _scheduled(order: SubscriptionOrderDTO, day: DeliveryDayDTO) -> ScheduledDeliveryDTO:
    stats = compute_order_statistics(order.delivery_days)
    return ScheduledDeliveryDTO(
        order_id=order.id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        college=order.college,
        pack_name=order.pack_name,
        delivery_date=day.delivery_date,
        delivery_index=day.delivery_index,
        status=day.status,
        delivered_so_far=stats.delivered,
        total_days=stats.total,
    )


def _collect(
    target_date: date, orders: Iterable[SubscriptionOrderDTO]
) -> List[ScheduledDeliveryDTO]:
    scheduled = []
    for order in orders:
        day = order.find_day(target_date)
        if day is None or day.is_rest_day or day.status not in OPEN_STATUSES:
            continue
        scheduled.append(_scheduled(order, day))
    scheduled.sort(key=lambda s: (s.delivery_index, s.order_id))
    return scheduled


def find_deliveries_for_date(
    target_date: date, orders: Iterable[SubscriptionOrderDTO]
) -> List[ScheduledDeliveryDTO]:
    """Orders still awaiting delivery on ``target_date`` (the day's worklist).

    Includes records that are ``pending`` or ``out_for_delivery``; empty on
    a rest day.
    """
    return _collect(target_date, orders)


def find_next_day_deliveries(
    reference_date: date, orders: Iterable[SubscriptionOrderDTO]
) -> List[ScheduledDeliveryDTO]:
    """Orders with a deliverable, not-yet-delivered day on ``reference_date + 1``.

    Sorted by delivery index ascending.  Empty when tomorrow is a rest day
    or lies outside every order's range.
    """
    return _collect(reference_date + timedelta(days=1), orders)


def find_next_deliverable_day(
    order: SubscriptionOrderDTO, after: date
) -> Optional[DeliveryDayDTO]:
    """First non-rest day after ``after`` that is not yet delivered."""
    for day in order.delivery_days:
        if day.delivery_date <= after or day.is_rest_day:
            continue
        if day.status != DeliveryStatus.DELIVERED:
            return day
    return None

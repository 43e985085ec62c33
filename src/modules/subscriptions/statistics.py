"""Per-order and cross-order delivery statistics.

Recomputed on every read from the delivery-day sequence; nothing here is
cached or persisted.
"""

from __future__ import annotations

from typing import Iterable

from modules.subscriptions.constants import DeliveryStatus
from modules.subscriptions.dtos import (
    DeliveryDayDTO,
    OrderStatisticsDTO,
    SubscriptionOrderDTO,
    SubscriptionOrderSummaryDTO,
)


def compute_order_statistics(delivery_days: Iterable[DeliveryDayDTO]) -> OrderStatisticsDTO:
    """Count an order's deliverable days by status in a single pass."""
    total = pending = out_for_delivery = delivered = 0
    for day in delivery_days:
        if day.is_rest_day:
            continue
        total += 1
        if day.status == DeliveryStatus.PENDING:
            pending += 1
        elif day.status == DeliveryStatus.OUT_FOR_DELIVERY:
            out_for_delivery += 1
        elif day.status == DeliveryStatus.DELIVERED:
            delivered += 1
    return OrderStatisticsDTO(
        total=total,
        pending=pending,
        out_for_delivery=out_for_delivery,
        delivered=delivered,
    )


def summarize_orders(orders: Iterable[SubscriptionOrderDTO]) -> OrderStatisticsDTO:
    """Sum per-order statistics across ``orders`` (dashboard totals)."""
    total = pending = out_for_delivery = delivered = 0
    for order in orders:
        stats = compute_order_statistics(order.delivery_days)
        total += stats.total
        pending += stats.pending
        out_for_delivery += stats.out_for_delivery
        delivered += stats.delivered
    return OrderStatisticsDTO(
        total=total,
        pending=pending,
        out_for_delivery=out_for_delivery,
        delivered=delivered,
    )


def summarize_order(order: SubscriptionOrderDTO) -> SubscriptionOrderSummaryDTO:
    return SubscriptionOrderSummaryDTO(
        id=order.id,
        customer_name=order.customer_name,
        college=order.college,
        pack_name=order.pack_name,
        start_date=order.start_date,
        end_date=order.end_date,
        stats=compute_order_statistics(order.delivery_days),
    )

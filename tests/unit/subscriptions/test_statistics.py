"""Unit tests for per-order and summed delivery statistics."""

from __future__ import annotations

from datetime import date

import pytest

from modules.subscriptions.constants import DeliveryStatus
from modules.subscriptions.statistics import (
    compute_order_statistics,
    summarize_order,
    summarize_orders,
)

pytestmark = pytest.mark.unit


def test_counts_exclude_rest_days(order_factory):
    order = order_factory(
        statuses={
            date(2026, 2, 2): DeliveryStatus.DELIVERED,
            date(2026, 2, 3): DeliveryStatus.DELIVERED,
            date(2026, 2, 4): DeliveryStatus.OUT_FOR_DELIVERY,
        }
    )

    stats = compute_order_statistics(order.delivery_days)

    assert stats.total == 6
    assert stats.delivered == 2
    assert stats.out_for_delivery == 1
    assert stats.pending == 3
    assert stats.pending + stats.out_for_delivery + stats.delivered == stats.total


def test_empty_sequence_is_all_zero():
    stats = compute_order_statistics([])

    assert stats.model_dump() == {
        "total": 0,
        "pending": 0,
        "out_for_delivery": 0,
        "delivered": 0,
    }


def test_summarize_orders_adds_up_every_order(order_factory):
    first = order_factory(order_id="a")
    second = order_factory(
        order_id="b",
        start=date(2026, 2, 9),
        end=date(2026, 2, 11),
        statuses={date(2026, 2, 9): DeliveryStatus.DELIVERED},
    )

    stats = summarize_orders([first, second])

    assert stats.total == 9
    assert stats.delivered == 1
    assert stats.pending == 8


def test_summary_row_carries_pack_name_and_stats(order_factory):
    order = order_factory(order_id="a", pack="Protein Salad")

    row = summarize_order(order)

    assert row.id == "a"
    assert row.pack_name == "Protein Salad"
    assert row.stats.total == 6

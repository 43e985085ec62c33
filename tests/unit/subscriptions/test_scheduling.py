"""Unit tests for delivery calendar generation."""

from __future__ import annotations

import calendar
from datetime import date

import pytest

from modules.subscriptions.constants import DeliveryStatus
from modules.subscriptions.exceptions import InvalidRangeError
from modules.subscriptions.scheduling import generate_delivery_calendar, iter_dates

pytestmark = pytest.mark.unit


class TestGenerateDeliveryCalendar:
    def test_one_week_has_six_deliveries_and_a_sunday_rest(self):
        days = generate_delivery_calendar(date(2026, 2, 2), date(2026, 2, 8))

        assert len(days) == 7
        rest = [d for d in days if d.is_rest_day]
        assert [d.delivery_date for d in rest] == [date(2026, 2, 8)]
        assert rest[0].status == DeliveryStatus.REST
        assert rest[0].delivery_index is None

    def test_indices_are_dense_over_deliverable_days(self):
        days = generate_delivery_calendar(date(2026, 2, 2), date(2026, 2, 8))

        indices = [d.delivery_index for d in days if not d.is_rest_day]
        assert indices == [1, 2, 3, 4, 5, 6]

    def test_index_continues_after_rest_day(self):
        days = generate_delivery_calendar(date(2026, 2, 6), date(2026, 2, 10))

        by_date = {d.delivery_date: d for d in days}
        assert by_date[date(2026, 2, 7)].delivery_index == 2
        assert by_date[date(2026, 2, 8)].delivery_index is None
        assert by_date[date(2026, 2, 9)].delivery_index == 3

    def test_every_deliverable_day_starts_pending(self):
        days = generate_delivery_calendar(date(2026, 2, 2), date(2026, 2, 28))

        assert all(
            d.status == DeliveryStatus.PENDING for d in days if not d.is_rest_day
        )
        assert all(d.history == () for d in days)

    def test_records_are_in_date_order_with_no_gaps(self):
        start, end = date(2026, 1, 28), date(2026, 3, 3)
        days = generate_delivery_calendar(start, end)

        assert [d.delivery_date for d in days] == list(iter_dates(start, end))

    def test_single_day_range(self):
        days = generate_delivery_calendar(date(2026, 2, 3), date(2026, 2, 3))

        assert len(days) == 1
        assert days[0].delivery_index == 1

    def test_single_rest_day_range(self):
        days = generate_delivery_calendar(date(2026, 2, 8), date(2026, 2, 8))

        assert len(days) == 1
        assert days[0].is_rest_day is True

    def test_end_before_start_raises(self):
        with pytest.raises(InvalidRangeError):
            generate_delivery_calendar(date(2026, 2, 8), date(2026, 2, 2))

    def test_custom_rest_weekday(self):
        days = generate_delivery_calendar(
            date(2026, 2, 2), date(2026, 2, 8), rest_weekday=calendar.MONDAY
        )

        rest = [d.delivery_date for d in days if d.is_rest_day]
        assert rest == [date(2026, 2, 2)]
        assert days[1].delivery_index == 1


def test_iter_dates_is_inclusive():
    assert list(iter_dates(date(2026, 2, 27), date(2026, 3, 1))) == [
        date(2026, 2, 27),
        date(2026, 2, 28),
        date(2026, 3, 1),
    ]

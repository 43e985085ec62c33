"""Monthly calendar rollup across all subscription orders.

The builder reads through a ``DateIndex`` (date -> scheduled records).
``DeliveryDateIndex`` precomputes that mapping once per request;
``ScanningDateIndex`` rescans every order for each date.  Both produce
identical output, so a persistent secondary index can be swapped in
later without touching the builder.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from modules.subscriptions.constants import REST_WEEKDAY, DeliveryStatus
from modules.subscriptions.dtos import (
    DayStatusCountsDTO,
    DeliveryDayDTO,
    MonthlyCalendarDayDTO,
    MonthlyCalendarDTO,
    MonthlyCustomerEntryDTO,
    SubscriptionOrderDTO,
)
from modules.subscriptions.scheduling import iter_dates

ScheduledEntry = Tuple[SubscriptionOrderDTO, DeliveryDayDTO]


class DateIndex(Protocol):
    def entries_for(self, target: date) -> Sequence[ScheduledEntry]: ...


class ScanningDateIndex:
    """Scans every order on each lookup."""

    def __init__(self, orders: Iterable[SubscriptionOrderDTO]) -> None:
        self._orders = list(orders)

    def entries_for(self, target: date) -> Sequence[ScheduledEntry]:
        entries = []
        for order in self._orders:
            day = order.find_day(target)
            if day is not None:
                entries.append((order, day))
        return entries


class DeliveryDateIndex:
    """Date -> (order, record) mapping built in one pass over the orders."""

    def __init__(self, by_date: Dict[date, List[ScheduledEntry]]) -> None:
        self._by_date = by_date

    @classmethod
    def from_orders(
        cls,
        orders: Iterable[SubscriptionOrderDTO],
        first: Optional[date] = None,
        last: Optional[date] = None,
    ) -> DeliveryDateIndex:
        by_date: Dict[date, List[ScheduledEntry]] = defaultdict(list)
        for order in orders:
            for day in order.delivery_days:
                if first is not None and day.delivery_date < first:
                    continue
                if last is not None and day.delivery_date > last:
                    continue
                by_date[day.delivery_date].append((order, day))
        return cls(dict(by_date))

    def entries_for(self, target: date) -> Sequence[ScheduledEntry]:
        return self._by_date.get(target, [])


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}.")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _build_day(
    target: date, entries: Sequence[ScheduledEntry], day_number: int
) -> MonthlyCalendarDayDTO:
    pending = out_for_delivery = delivered = 0
    customers = []
    for order, record in entries:
        if record.is_rest_day:
            continue
        if record.status == DeliveryStatus.PENDING:
            pending += 1
        elif record.status == DeliveryStatus.OUT_FOR_DELIVERY:
            out_for_delivery += 1
        elif record.status == DeliveryStatus.DELIVERED:
            delivered += 1
        customers.append(
            MonthlyCustomerEntryDTO(
                order_id=order.id,
                customer_name=order.customer_name,
                pack_name=order.pack_name,
                status=record.status,
            )
        )
    return MonthlyCalendarDayDTO(
        calendar_date=target,
        is_rest_day=False,
        day_number=day_number,
        total_customers=len(customers),
        stats=DayStatusCountsDTO(
            pending=pending,
            out_for_delivery=out_for_delivery,
            delivered=delivered,
        ),
        customers=tuple(customers),
    )


def build_monthly_calendar(
    year: int,
    month: int,
    orders: Iterable[SubscriptionOrderDTO],
    index: Optional[DateIndex] = None,
    rest_weekday: int = REST_WEEKDAY,
) -> MonthlyCalendarDTO:
    """Roll up every order's delivery status for each date of a month.

    Rest days come back as empty records.  ``day_number`` counts the
    month's deliverable dates from 1.

    Raises:
        ValueError: ``month`` is outside 1..12.
    """
    first, last = month_bounds(year, month)
    if index is None:
        index = DeliveryDateIndex.from_orders(orders, first, last)

    days = []
    customer_ids = set()
    day_number = 0
    for current in iter_dates(first, last):
        if current.weekday() == rest_weekday:
            days.append(MonthlyCalendarDayDTO(calendar_date=current, is_rest_day=True))
            continue
        day_number += 1
        day = _build_day(current, index.entries_for(current), day_number)
        customer_ids.update(entry.order_id for entry in day.customers)
        days.append(day)

    return MonthlyCalendarDTO(
        year=year,
        month=month,
        total_delivery_days=day_number,
        total_subscription_customers=len(customer_ids),
        days=tuple(days),
    )

"""Delivery calendar generation.

Runs once per subscription, when the order store persists a new order.
The output is never regenerated afterwards.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator, List

from modules.subscriptions.constants import REST_WEEKDAY, DeliveryStatus
from modules.subscriptions.dtos import DeliveryDayDTO
from modules.subscriptions.exceptions import InvalidRangeError


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def generate_delivery_calendar(
    start: date, end: date, rest_weekday: int = REST_WEEKDAY
) -> List[DeliveryDayDTO]:
    """Build the delivery-day sequence for ``[start, end]``.

    Dates falling on ``rest_weekday`` become ``rest`` records with no
    delivery index.  Every other date becomes a ``pending`` record, and
    the index counter skips rest days so indices are dense ``1..N``.

    Raises:
        InvalidRangeError: ``end`` precedes ``start``.
    """
    if end < start:
        raise InvalidRangeError(
            f"Subscription end date {end} precedes start date {start}."
        )

    days: List[DeliveryDayDTO] = []
    index = 0
    for current in iter_dates(start, end):
        if current.weekday() == rest_weekday:
            days.append(
                DeliveryDayDTO(
                    delivery_date=current,
                    is_rest_day=True,
                    status=DeliveryStatus.REST,
                )
            )
            continue
        index += 1
        days.append(
            DeliveryDayDTO(
                delivery_date=current,
                is_rest_day=False,
                delivery_index=index,
                status=DeliveryStatus.PENDING,
            )
        )
    return days

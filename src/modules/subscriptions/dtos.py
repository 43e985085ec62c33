"""Subscription delivery DTOs.

Framework-agnostic data transfer objects using Pydantic v2.  These are
the contracts between the order store, the scheduling engine and the
API layer.  All DTOs are immutable (``frozen=True``): the engine derives
new records with ``model_copy`` instead of mutating them.

- ``DeliveryDayDTO``: one calendar date of a subscription.
- ``SubscriptionOrderDTO``: an order with its full delivery calendar.
- ``OrderStatisticsDTO``: per-order (or summed) counts by status.
- ``MonthlyCalendarDTO`` / ``MonthlyCalendarDayDTO``: cross-order rollup.
- ``ScheduledDeliveryDTO``: one order's delivery on a given date.
- ``BatchResultDTO``: outcome of a batch transition.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Tuple

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from modules.subscriptions.constants import DeliveryStatus
from modules.subscriptions.exceptions import PartialBatchFailure

if TYPE_CHECKING:
    from modules.subscriptions.models import (
        DeliveryDay,
        DeliveryStatusHistory,
        SubscriptionOrder,
    )


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderItemDTO(BaseModel):
    """One line of a subscription pack."""

    model_config = ConfigDict(frozen=True)

    name: str
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateSubscriptionOrderDTO(BaseModel):
    """An already-purchased subscription handed to the order store.

    Pricing and payment happen upstream; the store only persists the
    order and its generated delivery calendar.
    """

    model_config = ConfigDict(frozen=True)

    customer_name: str
    customer_phone: str = ""
    customer_email: str = ""
    college: str = ""
    items: Tuple[OrderItemDTO, ...] = ()
    total_amount: Decimal = Decimal("0.00")
    placed_at: Optional[datetime] = None
    start_date: date
    end_date: date


# ---------------------------------------------------------------------------
# Delivery calendar
# ---------------------------------------------------------------------------


class TransitionRecordDTO(BaseModel):
    """Audit entry for one applied status change."""

    model_config = ConfigDict(frozen=True)

    actor: str
    from_status: DeliveryStatus
    to_status: DeliveryStatus
    occurred_at: datetime

    @classmethod
    def from_entity(cls, history: DeliveryStatusHistory) -> TransitionRecordDTO:
        return cls(
            actor=history.actor,
            from_status=history.old_status,
            to_status=history.new_status,
            occurred_at=history.occurred_at,
        )


class DeliveryDayDTO(BaseModel):
    """One calendar date in a subscription's range.

    ``delivery_index`` is the 1-based position among the order's
    deliverable (non-rest) days and is ``None`` on rest days.
    """

    model_config = ConfigDict(frozen=True)

    delivery_date: date
    is_rest_day: bool
    delivery_index: Optional[int] = None
    status: DeliveryStatus
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    history: Tuple[TransitionRecordDTO, ...] = ()

    @classmethod
    def from_entity(cls, day: DeliveryDay) -> DeliveryDayDTO:
        """Assumes ``history`` is prefetched."""
        return cls(
            delivery_date=day.delivery_date,
            is_rest_day=day.is_rest_day,
            delivery_index=day.delivery_index,
            status=day.status,
            updated_by=day.updated_by or None,
            updated_at=day.status_updated_at,
            history=tuple(TransitionRecordDTO.from_entity(h) for h in day.history.all()),
        )


class SubscriptionOrderDTO(BaseModel):
    """A subscription order and its delivery calendar, in date order."""

    model_config = ConfigDict(frozen=True)

    id: str
    customer_name: str
    customer_phone: str = ""
    customer_email: str = ""
    college: str = ""
    items: Tuple[OrderItemDTO, ...] = ()
    total_amount: Decimal = Decimal("0.00")
    placed_at: Optional[datetime] = None
    start_date: date
    end_date: date
    delivery_days: Tuple[DeliveryDayDTO, ...] = ()

    @property
    def pack_name(self) -> str:
        return ", ".join(item.name for item in self.items)

    def covers(self, target: date) -> bool:
        return self.start_date <= target <= self.end_date

    def find_day(self, target: date) -> Optional[DeliveryDayDTO]:
        if not self.covers(target):
            return None
        for day in self.delivery_days:
            if day.delivery_date == target:
                return day
        return None

    @classmethod
    def from_entity(cls, order: SubscriptionOrder) -> SubscriptionOrderDTO:
        """Build a DTO from a ``SubscriptionOrder`` model instance.

        Assumes ``delivery_days`` (and their ``history``) are prefetched
        in date order.
        """
        return cls(
            id=str(order.id),
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_email=order.customer_email,
            college=order.college,
            items=tuple(OrderItemDTO(**item) for item in order.items),
            total_amount=order.total_amount,
            placed_at=order.placed_at,
            start_date=order.start_date,
            end_date=order.end_date,
            delivery_days=tuple(
                DeliveryDayDTO.from_entity(day) for day in order.delivery_days.all()
            ),
        )


# ---------------------------------------------------------------------------
# Derived read models
# ---------------------------------------------------------------------------


class OrderStatisticsDTO(BaseModel):
    """Counts of deliverable days by status.  Never persisted."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    pending: int = 0
    out_for_delivery: int = 0
    delivered: int = 0


class SubscriptionOrderSummaryDTO(BaseModel):
    """List-view row: an order without its calendar, plus statistics."""

    model_config = ConfigDict(frozen=True)

    id: str
    customer_name: str
    college: str
    pack_name: str
    start_date: date
    end_date: date
    stats: OrderStatisticsDTO


class DayStatusCountsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    pending: int = 0
    out_for_delivery: int = 0
    delivered: int = 0


class MonthlyCustomerEntryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    customer_name: str
    pack_name: str
    status: DeliveryStatus


class MonthlyCalendarDayDTO(BaseModel):
    """Every order scheduled on one date, rolled up."""

    model_config = ConfigDict(frozen=True)

    calendar_date: date
    is_rest_day: bool
    day_number: Optional[int] = None
    total_customers: int = 0
    stats: DayStatusCountsDTO = DayStatusCountsDTO()
    customers: Tuple[MonthlyCustomerEntryDTO, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_delivered(self) -> bool:
        return self.total_customers > 0 and self.stats.delivered == self.total_customers


class MonthlyCalendarDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    total_delivery_days: int
    total_subscription_customers: int
    days: Tuple[MonthlyCalendarDayDTO, ...]


class ScheduledDeliveryDTO(BaseModel):
    """One order's delivery on a specific date, with progress so far."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    customer_name: str
    customer_phone: str
    college: str
    pack_name: str
    delivery_date: date
    delivery_index: int
    status: DeliveryStatus
    delivered_so_far: int
    total_days: int


# ---------------------------------------------------------------------------
# Batch results
# ---------------------------------------------------------------------------


class BatchFailureDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    reason: str


class BatchResultDTO(BaseModel):
    """Outcome of one batch transition.

    ``succeeded`` lists orders this batch actually moved.  ``unchanged``
    lists orders a concurrent writer had already brought to the target by
    the time the store locked the record.  ``not_attempted`` lists
    eligible orders skipped because the batch was cancelled.  Ineligible
    orders never appear anywhere in the result.
    """

    model_config = ConfigDict(frozen=True)

    target_date: date
    target_status: DeliveryStatus
    succeeded: Tuple[str, ...] = ()
    unchanged: Tuple[str, ...] = ()
    failed: Tuple[BatchFailureDTO, ...] = ()
    not_attempted: Tuple[str, ...] = ()
    cancelled: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.unchanged) + len(self.failed)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def updated(self) -> int:
        return len(self.succeeded)

    def raise_for_failures(self) -> None:
        """Raise ``PartialBatchFailure`` if any order failed."""
        if self.failed:
            raise PartialBatchFailure(self)

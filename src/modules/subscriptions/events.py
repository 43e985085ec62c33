"""Domain events for the Subscriptions bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class DeliveryStatusChanged(DomainEvent):
    """Raised when a delivery day actually changes status (never on a no-op)."""

    delivery_date: date
    old_status: str
    new_status: str
    actor: str
    transitioned_at: datetime


@dataclass(frozen=True, kw_only=True)
class NextDayReminderRequested(DomainEvent):
    """Raised when a customer should hear about their next delivery."""

    delivery_date: date
    delivery_index: Optional[int] = None

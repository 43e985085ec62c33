"""Order store interface.

The scheduling engine and the service layer depend exclusively on this
contract (DIP).  Implementations own all mutable state: every write of a
delivery-day status goes through ``apply_transition``, which must be
atomic per (order id, date) pair.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from modules.subscriptions.dtos import (
        CreateSubscriptionOrderDTO,
        DeliveryDayDTO,
        SubscriptionOrderDTO,
    )
    from modules.subscriptions.transitions import TransitionOutcome


class ISubscriptionOrderRepository(ABC):
    """Repository contract for the SubscriptionOrder aggregate root."""

    @abstractmethod
    def create(
        self,
        dto: CreateSubscriptionOrderDTO,
        delivery_days: Sequence[DeliveryDayDTO],
    ) -> SubscriptionOrderDTO:
        """Persist an order together with its generated delivery calendar."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[SubscriptionOrderDTO]:
        """Fetch one order with its delivery days, or ``None``."""

    @abstractmethod
    def list_all(self, filters: Optional[Dict[str, Any]] = None) -> List[SubscriptionOrderDTO]:
        """Fetch every order with its delivery days."""

    @abstractmethod
    def apply_transition(
        self,
        order_id: str,
        delivery_date: date,
        new_status: str,
        actor: str,
        timestamp: datetime,
    ) -> TransitionOutcome:
        """Atomically move one delivery day to ``new_status``.

        The implementation re-validates the move against the stored status
        (via ``transitions.transition``) while holding the record, so
        concurrent duplicates are coalesced and regressions rejected.

        Raises:
            NotFoundError: unknown order, or no delivery day on that date.
            InvalidTransitionError: the stored status forbids the move.
            DeliveryStoreError: the write itself failed.
        """

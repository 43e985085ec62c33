"""In-memory collaborators for service-level unit tests."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import pytest

from modules.subscriptions.dtos import SubscriptionOrderDTO
from modules.subscriptions.exceptions import DeliveryStoreError, NotFoundError
from modules.subscriptions.repositories.interfaces import ISubscriptionOrderRepository
from modules.subscriptions.transitions import transition


class InMemoryOrderRepository(ISubscriptionOrderRepository):
    """Dict-backed order store.  Orders in ``failing`` reject every write."""

    def __init__(
        self,
        orders: Iterable[SubscriptionOrderDTO] = (),
        failing: Iterable[str] = (),
    ) -> None:
        self.orders: Dict[str, SubscriptionOrderDTO] = {o.id: o for o in orders}
        self.failing = set(failing)
        self.writes: List[tuple] = []

    def create(self, dto, delivery_days):
        order_id = f"order-{len(self.orders) + 1}"
        order = SubscriptionOrderDTO(
            id=order_id,
            delivery_days=tuple(delivery_days),
            **dto.model_dump(),
        )
        self.orders[order_id] = order
        return order

    def get_by_id(self, id: str) -> Optional[SubscriptionOrderDTO]:
        return self.orders.get(id)

    def list_all(self, filters=None) -> List[SubscriptionOrderDTO]:
        return list(self.orders.values())

    def apply_transition(self, order_id, delivery_date, new_status, actor, timestamp):
        self.writes.append((order_id, delivery_date, str(new_status)))
        if order_id in self.failing:
            raise DeliveryStoreError(f"Could not update order {order_id}.")
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Subscription order {order_id} not found.")
        day = order.find_day(delivery_date)
        if day is None:
            raise NotFoundError(f"Order {order_id} has no delivery on {delivery_date}.")

        outcome = transition(day, new_status, actor, timestamp, order_id=order_id)
        if outcome.changed:
            days = tuple(
                outcome.record if d.delivery_date == delivery_date else d
                for d in order.delivery_days
            )
            self.orders[order_id] = order.model_copy(update={"delivery_days": days})
        return outcome


class RacingWriterRepository(InMemoryOrderRepository):
    """Store where another writer moves ``raced`` orders to the requested
    status just before this caller's write takes the record."""

    def __init__(self, orders=(), raced=()) -> None:
        super().__init__(orders)
        self.raced = set(raced)

    def apply_transition(self, order_id, delivery_date, new_status, actor, timestamp):
        if order_id in self.raced:
            super().apply_transition(
                order_id, delivery_date, new_status, "other-dispatcher", timestamp
            )
        return super().apply_transition(
            order_id, delivery_date, new_status, actor, timestamp
        )


class RecordingEventBus:
    def __init__(self) -> None:
        self.published = []

    def subscribe(self, event_class, handler) -> None:
        pass

    def publish(self, event) -> None:
        self.published.append(event)

    def of_type(self, event_class):
        return [e for e in self.published if isinstance(e, event_class)]


@pytest.fixture()
def recording_bus():
    return RecordingEventBus()


@pytest.fixture()
def memory_repo_factory():
    return InMemoryOrderRepository


@pytest.fixture()
def racing_repo_factory():
    return RacingWriterRepository

"""Unit tests for SubscriptionDeliveryService with an in-memory order store."""

from __future__ import annotations

import threading
from datetime import date, datetime, timezone

import pytest

from modules.subscriptions.constants import DeliveryStatus
from modules.subscriptions.events import DeliveryStatusChanged, NextDayReminderRequested
from modules.subscriptions.exceptions import (
    InvalidRangeError,
    InvalidTransitionError,
    NotFoundError,
    PartialBatchFailure,
)
from modules.subscriptions.services import SubscriptionDeliveryService
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit

NOW = datetime(2026, 2, 3, 18, 0, tzinfo=timezone.utc)
BATCH_DATE = date(2026, 2, 3)


class BrokerDown:
    """Event handler whose enqueue fails for ``order_ids`` (every order if empty)."""

    def __init__(self, order_ids=()) -> None:
        self.order_ids = set(order_ids)
        self.handled = []

    def handle(self, event) -> None:
        if not self.order_ids or event.aggregate_id in self.order_ids:
            raise ConnectionError("redis broker unreachable")
        self.handled.append(event.aggregate_id)


class CancelAfter:
    """Cancellation token that trips after ``checks`` calls to ``is_set``."""

    def __init__(self, checks: int) -> None:
        self._remaining = checks

    def is_set(self) -> bool:
        if self._remaining == 0:
            return True
        self._remaining -= 1
        return False


@pytest.fixture()
def ten_orders(order_factory):
    """7 orders with a pending record on BATCH_DATE and 3 that start later."""
    covering = [order_factory(order_id=f"c{i}") for i in range(7)]
    later = [
        order_factory(order_id=f"l{i}", start=date(2026, 2, 4)) for i in range(3)
    ]
    return covering + later


@pytest.fixture()
def make_service(recording_bus, memory_repo_factory):
    def _build(orders=(), failing=()):
        repo = memory_repo_factory(orders, failing=failing)
        return SubscriptionDeliveryService(order_repository=repo, event_bus=recording_bus), repo

    return _build


# ===========================================================================
# Registration
# ===========================================================================


class TestRegisterSubscription:
    def test_calendar_generated_once_on_registration(self, make_service, subscription_dto):
        service, repo = make_service()

        order = service.register_subscription(subscription_dto())

        assert len(order.delivery_days) == 7
        assert repo.orders[order.id] is order
        assert order.pack_name == "Fruit Bowl"

    def test_invalid_range_is_not_persisted(self, make_service, subscription_dto):
        service, repo = make_service()

        with pytest.raises(InvalidRangeError):
            service.register_subscription(
                subscription_dto(start=date(2026, 2, 8), end=date(2026, 2, 2))
            )
        assert repo.orders == {}


# ===========================================================================
# Single transitions
# ===========================================================================


class TestTransitionDelivery:
    def test_publishes_one_event_per_change(self, make_service, order_factory, recording_bus):
        service, _ = make_service([order_factory()])

        day = service.transition_delivery(
            "order-1", BATCH_DATE, "out_for_delivery", "rider-7", NOW
        )

        assert day.status == DeliveryStatus.OUT_FOR_DELIVERY
        [event] = recording_bus.published
        assert isinstance(event, DeliveryStatusChanged)
        assert event.old_status == "pending"
        assert event.actor == "rider-7"

    def test_noop_publishes_nothing(self, make_service, order_factory, recording_bus):
        order = order_factory(statuses={BATCH_DATE: DeliveryStatus.OUT_FOR_DELIVERY})
        service, _ = make_service([order])

        day = service.transition_delivery(
            "order-1", BATCH_DATE, "out_for_delivery", "rider-7", NOW
        )

        assert day.history == ()
        assert recording_bus.published == []

    def test_delivered_requests_reminder_for_tomorrow(
        self, make_service, order_factory, recording_bus
    ):
        service, _ = make_service([order_factory()])

        service.transition_delivery("order-1", date(2026, 2, 4), "delivered", "rider-7", NOW)

        [reminder] = recording_bus.of_type(NextDayReminderRequested)
        assert reminder.delivery_date == date(2026, 2, 5)
        assert reminder.delivery_index == 4

    def test_saturday_delivery_sends_no_reminder_for_monday(
        self, make_service, order_factory, recording_bus
    ):
        service, _ = make_service([order_factory(end=date(2026, 2, 10))])

        service.transition_delivery("order-1", date(2026, 2, 7), "delivered", "rider-7", NOW)

        assert recording_bus.of_type(NextDayReminderRequested) == []
        assert len(recording_bus.of_type(DeliveryStatusChanged)) == 1

    def test_notification_failure_does_not_fail_the_transition(
        self, memory_repo_factory, order_factory
    ):
        repo = memory_repo_factory([order_factory()])
        bus = InMemoryEventBus()
        bus.subscribe(DeliveryStatusChanged, BrokerDown())
        bus.subscribe(NextDayReminderRequested, BrokerDown())
        service = SubscriptionDeliveryService(order_repository=repo, event_bus=bus)

        day = service.transition_delivery("order-1", BATCH_DATE, "delivered", "rider-7", NOW)

        assert day.status == DeliveryStatus.DELIVERED
        stored = repo.orders["order-1"].find_day(BATCH_DATE)
        assert stored.status == DeliveryStatus.DELIVERED

    def test_last_delivery_requests_no_reminder(self, make_service, order_factory, recording_bus):
        service, _ = make_service([order_factory()])

        service.transition_delivery("order-1", date(2026, 2, 7), "delivered", "rider-7", NOW)

        assert recording_bus.of_type(NextDayReminderRequested) == []
        assert len(recording_bus.of_type(DeliveryStatusChanged)) == 1

    def test_regression_is_rejected(self, make_service, order_factory, recording_bus):
        order = order_factory(statuses={BATCH_DATE: DeliveryStatus.DELIVERED})
        service, _ = make_service([order])

        with pytest.raises(InvalidTransitionError, match="Already delivered"):
            service.transition_delivery("order-1", BATCH_DATE, "pending", "rider-7", NOW)
        assert recording_bus.published == []

    def test_rest_day_is_rejected(self, make_service, order_factory):
        service, _ = make_service([order_factory()])

        with pytest.raises(InvalidTransitionError):
            service.transition_delivery(
                "order-1", date(2026, 2, 8), "delivered", "rider-7", NOW
            )

    def test_unknown_order_raises_not_found(self, make_service):
        service, _ = make_service()

        with pytest.raises(NotFoundError):
            service.transition_delivery("missing", BATCH_DATE, "delivered", "rider-7", NOW)

    def test_date_outside_range_raises_not_found(self, make_service, order_factory):
        service, _ = make_service([order_factory()])

        with pytest.raises(NotFoundError):
            service.transition_delivery(
                "order-1", date(2026, 3, 3), "delivered", "rider-7", NOW
            )


# ===========================================================================
# Batch transitions
# ===========================================================================


class TestBatchTransition:
    def test_only_eligible_orders_are_attempted(self, make_service, ten_orders):
        service, repo = make_service(ten_orders)

        result = service.batch_transition(BATCH_DATE, "out_for_delivery", "hub", NOW)

        assert result.attempted == 7
        assert len(repo.writes) == 7
        assert set(result.succeeded) == {f"c{i}" for i in range(7)}
        reported = set(result.succeeded) | {f.order_id for f in result.failed}
        assert reported.isdisjoint({"l0", "l1", "l2"})
        assert result.not_attempted == ()

    def test_orders_already_at_target_are_skipped(self, make_service, order_factory):
        done = order_factory(order_id="done", statuses={BATCH_DATE: DeliveryStatus.DELIVERED})
        service, repo = make_service([done, order_factory(order_id="open")])

        result = service.batch_transition(BATCH_DATE, "out_for_delivery", "hub", NOW)

        assert result.succeeded == ("open",)
        assert [w[0] for w in repo.writes] == ["open"]

    def test_failures_do_not_abort_the_batch(self, make_service, ten_orders, recording_bus):
        service, _ = make_service(ten_orders, failing={"c1", "c4"})

        result = service.batch_transition(BATCH_DATE, "out_for_delivery", "hub", NOW)

        assert len(result.succeeded) == 5
        assert {f.order_id for f in result.failed} == {"c1", "c4"}
        assert all(f.reason for f in result.failed)
        assert len(recording_bus.of_type(DeliveryStatusChanged)) == 5

        with pytest.raises(PartialBatchFailure) as exc_info:
            result.raise_for_failures()
        assert exc_info.value.result is result

    def test_clean_batch_raises_nothing(self, make_service, ten_orders):
        service, _ = make_service(ten_orders)

        result = service.batch_transition(BATCH_DATE, "delivered", "hub", NOW)

        result.raise_for_failures()
        assert result.updated == 7

    def test_cancellation_leaves_remaining_orders_untouched(self, make_service, ten_orders):
        service, repo = make_service(ten_orders)

        result = service.batch_transition(
            BATCH_DATE, "out_for_delivery", "hub", NOW, cancel=CancelAfter(3)
        )

        assert result.cancelled is True
        assert len(result.succeeded) == 3
        assert len(result.not_attempted) == 4
        untouched = repo.orders[result.not_attempted[0]].find_day(BATCH_DATE)
        assert untouched.status == DeliveryStatus.PENDING

    def test_preset_cancel_token_attempts_nothing(self, make_service, ten_orders):
        service, repo = make_service(ten_orders)
        token = threading.Event()
        token.set()

        result = service.batch_transition(
            BATCH_DATE, "out_for_delivery", "hub", NOW, cancel=token
        )

        assert result.attempted == 0
        assert len(result.not_attempted) == 7
        assert repo.writes == []

    def test_delivered_batch_reminds_only_succeeded_orders(
        self, make_service, ten_orders, recording_bus
    ):
        service, _ = make_service(ten_orders, failing={"c0"})

        service.batch_transition(BATCH_DATE, "delivered", "hub", NOW)

        reminders = recording_bus.of_type(NextDayReminderRequested)
        assert {r.aggregate_id for r in reminders} == {f"c{i}" for i in range(1, 7)}
        assert all(r.delivery_date == date(2026, 2, 4) for r in reminders)

    def test_failing_notification_handler_does_not_abort_the_batch(
        self, memory_repo_factory, order_factory
    ):
        orders = [order_factory(order_id=f"c{i}") for i in range(5)]
        repo = memory_repo_factory(orders)
        handler = BrokerDown(order_ids={"c2"})
        bus = InMemoryEventBus()
        bus.subscribe(DeliveryStatusChanged, handler)
        service = SubscriptionDeliveryService(order_repository=repo, event_bus=bus)

        result = service.batch_transition(BATCH_DATE, "out_for_delivery", "hub", NOW)

        assert result.succeeded == ("c0", "c1", "c2", "c3", "c4")
        assert result.failed == ()
        assert len(repo.writes) == 5
        assert handler.handled == ["c0", "c1", "c3", "c4"]
        assert all(
            o.find_day(BATCH_DATE).status == DeliveryStatus.OUT_FOR_DELIVERY
            for o in repo.orders.values()
        )

    def test_failing_reminder_handler_still_returns_result(
        self, memory_repo_factory, ten_orders
    ):
        bus = InMemoryEventBus()
        bus.subscribe(NextDayReminderRequested, BrokerDown())
        service = SubscriptionDeliveryService(
            order_repository=memory_repo_factory(ten_orders), event_bus=bus
        )

        result = service.batch_transition(BATCH_DATE, "delivered", "hub", NOW)

        assert result.updated == 7

    def test_order_delivered_by_another_writer_is_reported_unchanged(
        self, racing_repo_factory, order_factory, recording_bus
    ):
        orders = [order_factory(order_id=f"c{i}") for i in range(4)]
        repo = racing_repo_factory(orders, raced={"c1"})
        service = SubscriptionDeliveryService(order_repository=repo, event_bus=recording_bus)

        result = service.batch_transition(BATCH_DATE, "delivered", "hub", NOW)

        assert result.succeeded == ("c0", "c2", "c3")
        assert result.unchanged == ("c1",)
        assert result.updated == 3
        assert result.attempted == 4
        changed = {e.aggregate_id for e in recording_bus.of_type(DeliveryStatusChanged)}
        reminded = {e.aggregate_id for e in recording_bus.of_type(NextDayReminderRequested)}
        assert changed == {"c0", "c2", "c3"}
        assert reminded == {"c0", "c2", "c3"}
        day = repo.orders["c1"].find_day(BATCH_DATE)
        assert day.updated_by == "other-dispatcher"

    def test_out_for_delivery_batch_sends_no_reminders(
        self, make_service, ten_orders, recording_bus
    ):
        service, _ = make_service(ten_orders)

        service.batch_transition(BATCH_DATE, "out_for_delivery", "hub", NOW)

        assert recording_bus.of_type(NextDayReminderRequested) == []

    @pytest.mark.parametrize("target", ["pending", "rest", "lost"])
    def test_invalid_batch_target_is_rejected(self, make_service, ten_orders, target):
        service, repo = make_service(ten_orders)

        with pytest.raises(InvalidTransitionError):
            service.batch_transition(BATCH_DATE, target, "hub", NOW)
        assert repo.writes == []

    def test_rest_day_batch_is_empty(self, make_service, ten_orders):
        service, repo = make_service(ten_orders)

        result = service.batch_transition(date(2026, 2, 8), "delivered", "hub", NOW)

        assert result.attempted == 0
        assert repo.writes == []


# ===========================================================================
# Queries
# ===========================================================================


class TestQueries:
    def test_get_order_not_found(self, make_service):
        service, _ = make_service()

        with pytest.raises(NotFoundError):
            service.get_order("missing")

    def test_overall_statistics(self, make_service, ten_orders):
        service, _ = make_service(ten_orders)

        stats = service.get_overall_statistics()

        assert stats.total == 7 * 6 + 3 * 4
        assert stats.pending == stats.total

    def test_list_orders_with_statistics(self, make_service, ten_orders):
        service, _ = make_service(ten_orders)

        rows = service.list_orders_with_statistics()

        assert len(rows) == 10
        assert rows[0].stats.total == 6

    def test_next_day_after_batch_date(self, make_service, ten_orders):
        service, _ = make_service(ten_orders)

        upcoming = service.get_next_day_deliveries(BATCH_DATE)

        assert len(upcoming) == 10
        assert [u.delivery_index for u in upcoming[:3]] == [1, 1, 1]

    def test_monthly_calendar_uses_rest_weekday(self, recording_bus, memory_repo_factory):
        service = SubscriptionDeliveryService(
            order_repository=memory_repo_factory(),
            event_bus=recording_bus,
            rest_weekday=0,
        )

        monthly = service.get_monthly_calendar(2026, 2)

        assert monthly.days[1].is_rest_day is True
        assert monthly.total_delivery_days == 24

"""Subscription delivery service layer (Use Cases).

Orchestrates the scheduling engine against the order store:

- calendar generation when a purchased subscription is registered,
- single delivery-day transitions,
- batch transitions for one calendar date across every order,
- read-only derivations (statistics, monthly calendar, next-day
  lookahead, daily worklist).

Every date-dependent operation takes its reference date or timestamp as
an argument; the service never reads the wall clock.  Side effects
(customer notifications, next-day reminders) leave the service only as
domain events published on the event bus after the store has persisted
the change.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Set

import structlog

from modules.subscriptions.constants import (
    BATCH_TARGET_STATUSES,
    REST_WEEKDAY,
    DeliveryStatus,
)
from modules.subscriptions.dtos import (
    BatchFailureDTO,
    BatchResultDTO,
    DeliveryDayDTO,
    MonthlyCalendarDTO,
    OrderStatisticsDTO,
    ScheduledDeliveryDTO,
    SubscriptionOrderDTO,
    SubscriptionOrderSummaryDTO,
)
from modules.subscriptions.events import NextDayReminderRequested
from modules.subscriptions.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    SubscriptionDeliveryError,
)
from modules.subscriptions.lookahead import (
    find_deliveries_for_date,
    find_next_day_deliveries,
    find_next_deliverable_day,
)
from modules.subscriptions.monthly import DateIndex, build_monthly_calendar
from modules.subscriptions.scheduling import generate_delivery_calendar
from modules.subscriptions.statistics import (
    compute_order_statistics,
    summarize_order,
    summarize_orders,
)
from modules.subscriptions.transitions import TransitionOutcome, is_eligible, parse_status

if TYPE_CHECKING:
    from modules.subscriptions.dtos import CreateSubscriptionOrderDTO
    from modules.subscriptions.repositories.interfaces import (
        ISubscriptionOrderRepository,
    )
    from shared.domain.bus import IEventBus
    from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class CancellationToken(Protocol):
    """Anything with ``is_set()``, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


class SubscriptionDeliveryService:
    """Application service for subscription delivery use-cases.

    Receives the order store and the event bus via constructor
    injection (DIP).  The bus defaults to the process-wide in-memory bus
    whose handlers enqueue notifications on the Celery worker.
    """

    def __init__(
        self,
        order_repository: ISubscriptionOrderRepository,
        event_bus: Optional[IEventBus] = None,
        rest_weekday: int = REST_WEEKDAY,
    ) -> None:
        if event_bus is None:
            from shared.infrastructure.bus import event_bus as default_bus

            event_bus = default_bus
        self._order_repo = order_repository
        self._event_bus = event_bus
        self._rest_weekday = rest_weekday

    # ------------------------------------------------------------------
    # Calendar generation
    # ------------------------------------------------------------------

    def generate_calendar(self, start: date, end: date) -> List[DeliveryDayDTO]:
        """Delivery-day sequence for ``[start, end]``.

        Raises:
            InvalidRangeError: ``end`` precedes ``start``.
        """
        return generate_delivery_calendar(start, end, self._rest_weekday)

    def register_subscription(self, dto: CreateSubscriptionOrderDTO) -> SubscriptionOrderDTO:
        """Persist a purchased subscription with its generated calendar.

        The calendar is generated exactly once, here.

        Raises:
            InvalidRangeError: the subscription's end date precedes its start.
        """
        days = self.generate_calendar(dto.start_date, dto.end_date)
        order = self._order_repo.create(dto, days)
        logger.info(
            "subscription.registered",
            order_id=order.id,
            start_date=dto.start_date.isoformat(),
            end_date=dto.end_date.isoformat(),
        )
        return order

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def transition_delivery(
        self,
        order_id: str,
        delivery_date: date,
        target_status: str,
        actor: str,
        timestamp: datetime,
    ) -> DeliveryDayDTO:
        """Move one order's delivery day to ``target_status``.

        Transitioning to the current status succeeds without recording
        history or notifying anyone.  Marking a day ``delivered`` also
        requests a reminder when the order has a delivery the following
        day.  The persisted change is returned even if publishing its
        notifications fails.

        Raises:
            NotFoundError: unknown order, or no delivery day on that date.
            InvalidTransitionError: rest day, unknown status or regression.
            DeliveryStoreError: the store could not persist the change.
        """
        target = parse_status(target_status)
        log = logger.bind(
            order_id=order_id,
            delivery_date=delivery_date.isoformat(),
            target_status=target.value,
            actor=actor,
        )

        try:
            outcome = self._order_repo.apply_transition(
                order_id, delivery_date, target, actor, timestamp
            )
        except InvalidTransitionError as exc:
            log.warning("delivery.invalid_transition", reason=str(exc))
            raise

        if not outcome.changed:
            log.info("delivery.transition_noop")
            return outcome.record

        log.info("delivery.transitioned", old_status=outcome.previous_status.value)
        self._publish_outcome(outcome)
        if target == DeliveryStatus.DELIVERED:
            self._request_next_delivery_reminder(order_id, delivery_date)
        return outcome.record

    def batch_transition(
        self,
        target_date: date,
        target_status: str,
        actor: str,
        timestamp: datetime,
        cancel: Optional[CancellationToken] = None,
    ) -> BatchResultDTO:
        """Apply ``target_status`` to every eligible delivery on ``target_date``.

        Eligible records are non-rest records ranked strictly below the
        target.  Each one is written independently: a failing order is
        recorded with its cause and the batch moves on.  ``cancel`` is
        checked between orders; transitions already applied stay applied.
        An order the store finds already at the target when it takes the
        row lock is reported in ``unchanged`` and publishes nothing.

        When the target is ``delivered``, the next-day lookahead runs once
        after the loop and every order the batch delivered that has a
        delivery tomorrow gets a reminder.  Notification failures are
        logged and never abort the loop.

        Raises:
            InvalidTransitionError: target is not ``out_for_delivery`` or
                ``delivered``.
        """
        target = parse_status(target_status)
        if target not in BATCH_TARGET_STATUSES:
            raise InvalidTransitionError(
                f"Batch updates can only target {', '.join(sorted(BATCH_TARGET_STATUSES))}."
            )

        log = logger.bind(
            target_date=target_date.isoformat(),
            target_status=target.value,
            actor=actor,
        )

        orders = self._order_repo.list_all()
        eligible: List[str] = []
        for order in orders:
            day = order.find_day(target_date)
            if day is not None and is_eligible(day, target):
                eligible.append(order.id)
        log.info("batch.started", order_count=len(orders), eligible_count=len(eligible))

        succeeded: List[str] = []
        unchanged: List[str] = []
        failed: List[BatchFailureDTO] = []
        not_attempted: List[str] = []
        cancelled = False

        for position, order_id in enumerate(eligible):
            if cancel is not None and cancel.is_set():
                cancelled = True
                not_attempted = eligible[position:]
                log.warning("batch.cancelled", remaining=len(not_attempted))
                break
            try:
                outcome = self._order_repo.apply_transition(
                    order_id, target_date, target, actor, timestamp
                )
            except SubscriptionDeliveryError as exc:
                log.warning("batch.order_failed", order_id=order_id, reason=str(exc))
                failed.append(BatchFailureDTO(order_id=order_id, reason=str(exc)))
                continue
            if not outcome.changed:
                log.info("batch.order_unchanged", order_id=order_id)
                unchanged.append(order_id)
                continue
            succeeded.append(order_id)
            self._publish_outcome(outcome)

        if target == DeliveryStatus.DELIVERED and succeeded:
            self._send_next_day_reminders(target_date, set(succeeded))

        result = BatchResultDTO(
            target_date=target_date,
            target_status=target,
            succeeded=tuple(succeeded),
            unchanged=tuple(unchanged),
            failed=tuple(failed),
            not_attempted=tuple(not_attempted),
            cancelled=cancelled,
        )
        log.info(
            "batch.completed",
            succeeded=len(result.succeeded),
            unchanged=len(result.unchanged),
            failed=len(result.failed),
            not_attempted=len(result.not_attempted),
        )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> SubscriptionOrderDTO:
        """Raises ``NotFoundError`` if the order does not exist."""
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Subscription order {order_id} not found.")
        return order

    def get_order_statistics(self, order_id: str) -> OrderStatisticsDTO:
        return compute_order_statistics(self.get_order(order_id).delivery_days)

    def list_orders_with_statistics(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> List[SubscriptionOrderSummaryDTO]:
        return [summarize_order(order) for order in self._order_repo.list_all(filters)]

    def get_overall_statistics(self) -> OrderStatisticsDTO:
        return summarize_orders(self._order_repo.list_all())

    def get_monthly_calendar(
        self, year: int, month: int, index: Optional[DateIndex] = None
    ) -> MonthlyCalendarDTO:
        """Raises ``ValueError`` for a month outside 1..12."""
        return build_monthly_calendar(
            year,
            month,
            self._order_repo.list_all(),
            index=index,
            rest_weekday=self._rest_weekday,
        )

    def get_next_day_deliveries(self, reference_date: date) -> List[ScheduledDeliveryDTO]:
        return find_next_day_deliveries(reference_date, self._order_repo.list_all())

    def get_deliveries_for_date(self, target_date: date) -> List[ScheduledDeliveryDTO]:
        return find_deliveries_for_date(target_date, self._order_repo.list_all())

    # ------------------------------------------------------------------
    # Post-transition events
    # ------------------------------------------------------------------

    def _publish(self, event: DomainEvent) -> None:
        """Hand ``event`` to the bus without letting a handler failure escape.

        The store write has already committed when this runs, so a broken
        handler or an unreachable broker is logged and dropped.
        """
        try:
            self._event_bus.publish(event)
        except Exception:
            logger.exception(
                "notification.publish_failed",
                event_name=event.event_name,
                order_id=event.aggregate_id,
            )

    def _publish_outcome(self, outcome: TransitionOutcome) -> None:
        if outcome.event is not None:
            self._publish(outcome.event)

    def _request_next_delivery_reminder(self, order_id: str, delivered_on: date) -> None:
        """Remind the customer only when the order delivers again tomorrow."""
        order = self._order_repo.get_by_id(order_id)
        if order is None:
            return
        next_day = find_next_deliverable_day(order, delivered_on)
        if next_day is None:
            logger.info("delivery.subscription_completed", order_id=order_id)
            return
        if next_day.delivery_date != delivered_on + timedelta(days=1):
            logger.info(
                "delivery.reminder_not_due",
                order_id=order_id,
                next_delivery_date=next_day.delivery_date.isoformat(),
            )
            return
        self._publish(
            NextDayReminderRequested(
                aggregate_id=order_id,
                delivery_date=next_day.delivery_date,
                delivery_index=next_day.delivery_index,
            )
        )

    def _send_next_day_reminders(self, target_date: date, delivered_ids: Set[str]) -> None:
        upcoming = self.get_next_day_deliveries(target_date)
        reminded = 0
        for delivery in upcoming:
            if delivery.order_id not in delivered_ids:
                continue
            self._publish(
                NextDayReminderRequested(
                    aggregate_id=delivery.order_id,
                    delivery_date=delivery.delivery_date,
                    delivery_index=delivery.delivery_index,
                )
            )
            reminded += 1
        logger.info(
            "batch.next_day_reminders",
            target_date=target_date.isoformat(),
            upcoming=len(upcoming),
            reminded=reminded,
        )

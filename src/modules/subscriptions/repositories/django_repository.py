"""Django ORM implementation of the subscription order store.

Satisfies ``ISubscriptionOrderRepository`` using Django's QuerySet API.
Reads return immutable DTOs with the full delivery calendar prefetched
(three queries regardless of order count).

``apply_transition`` locks the delivery-day row with
``select_for_update()`` inside ``transaction.atomic`` and re-runs the
shared transition guard against the locked row, so two concurrent
requests for the same (order, date) serialize: the second one becomes a
no-op or is rejected as a regression.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Prefetch, QuerySet

from modules.subscriptions.dtos import (
    CreateSubscriptionOrderDTO,
    DeliveryDayDTO,
    SubscriptionOrderDTO,
)
from modules.subscriptions.exceptions import DeliveryStoreError, NotFoundError
from modules.subscriptions.models import (
    DeliveryDay,
    DeliveryStatusHistory,
    SubscriptionOrder,
)
from modules.subscriptions.repositories.interfaces import ISubscriptionOrderRepository
from modules.subscriptions.transitions import TransitionOutcome, transition

logger = structlog.get_logger(__name__)


def subscription_queryset() -> QuerySet:
    """Orders with delivery days (date order) and their history prefetched."""
    return SubscriptionOrder.objects.prefetch_related(
        Prefetch(
            "delivery_days",
            queryset=DeliveryDay.objects.order_by("delivery_date").prefetch_related(
                "history"
            ),
        )
    )


class SubscriptionOrderDjangoRepository(ISubscriptionOrderRepository):
    """Concrete order store backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + calendar)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(
        self,
        dto: CreateSubscriptionOrderDTO,
        delivery_days: Sequence[DeliveryDayDTO],
    ) -> SubscriptionOrderDTO:
        order = SubscriptionOrder(
            customer_name=dto.customer_name,
            customer_phone=dto.customer_phone,
            customer_email=dto.customer_email,
            college=dto.college,
            items=[item.model_dump() for item in dto.items],
            total_amount=dto.total_amount,
            start_date=dto.start_date,
            end_date=dto.end_date,
        )
        if dto.placed_at is not None:
            order.placed_at = dto.placed_at
        order.save()

        DeliveryDay.objects.bulk_create(
            [
                DeliveryDay(
                    order=order,
                    delivery_date=day.delivery_date,
                    is_rest_day=day.is_rest_day,
                    delivery_index=day.delivery_index,
                    status=day.status,
                )
                for day in delivery_days
            ]
        )

        logger.info(
            "subscription.created",
            order_id=str(order.id),
            day_count=len(delivery_days),
        )
        return self.get_by_id(str(order.id))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[SubscriptionOrderDTO]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            order = subscription_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None
        if order is None:
            return None
        return SubscriptionOrderDTO.from_entity(order)

    def list_all(self, filters: Optional[Dict[str, Any]] = None) -> List[SubscriptionOrderDTO]:
        """List orders, optionally filtered with ORM lookups.

        Supported filter keys include ``college``, ``start_date__lte`` and
        ``end_date__gte``.
        """
        queryset = subscription_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return [SubscriptionOrderDTO.from_entity(order) for order in queryset]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def apply_transition(
        self,
        order_id: str,
        delivery_date: date,
        new_status: str,
        actor: str,
        timestamp: datetime,
    ) -> TransitionOutcome:
        log = logger.bind(
            order_id=str(order_id),
            delivery_date=delivery_date.isoformat(),
            new_status=str(new_status),
        )
        try:
            with transaction.atomic():
                day = self._get_day_for_update(order_id, delivery_date)
                outcome = transition(
                    DeliveryDayDTO.from_entity(day),
                    new_status,
                    actor,
                    timestamp,
                    order_id=str(order_id),
                )
                if outcome.changed:
                    day.status = outcome.record.status
                    day.updated_by = actor
                    day.status_updated_at = timestamp
                    day.save(update_fields=["status", "updated_by", "status_updated_at"])
                    DeliveryStatusHistory.objects.create(
                        delivery_day=day,
                        actor=actor,
                        old_status=outcome.previous_status,
                        new_status=outcome.record.status,
                        occurred_at=timestamp,
                    )
        except DatabaseError as exc:
            log.error("delivery.store_write_failed", error=str(exc))
            raise DeliveryStoreError(
                f"Could not update order {order_id} on {delivery_date}: {exc}"
            ) from exc

        if outcome.changed:
            log.info("delivery.status_persisted", old_status=str(outcome.previous_status))
        else:
            log.info("delivery.status_unchanged")
        return outcome

    def _get_day_for_update(self, order_id: str, delivery_date: date) -> DeliveryDay:
        """Lock and return the delivery day, or raise ``NotFoundError``."""
        try:
            day = (
                DeliveryDay.objects.select_for_update()
                .filter(order_id=order_id, delivery_date=delivery_date)
                .first()
            )
            order_exists = (
                day is not None or SubscriptionOrder.objects.filter(id=order_id).exists()
            )
        except (ValueError, ValidationError):
            raise NotFoundError(f"Subscription order {order_id} not found.") from None

        if not order_exists:
            raise NotFoundError(f"Subscription order {order_id} not found.")
        if day is None:
            raise NotFoundError(
                f"Order {order_id} has no delivery scheduled on {delivery_date}."
            )
        return day

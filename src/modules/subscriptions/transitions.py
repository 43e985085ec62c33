"""Delivery-day status transition engine.

A single ranked guard (``check_transition``) is shared by the
single-delivery path, the batch processor and the order store's atomic
write, so every path rejects exactly the same moves:

- ``rest`` records never transition, and nothing transitions *to* ``rest``.
- Status only moves forward: ``pending(0) < out_for_delivery(1) < delivered(2)``.
  Skipping straight from ``pending`` to ``delivered`` is allowed.
- Moving to the current status is an idempotent no-op.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from modules.subscriptions.constants import STATUS_RANK, DeliveryStatus
from modules.subscriptions.dtos import DeliveryDayDTO, TransitionRecordDTO
from modules.subscriptions.events import DeliveryStatusChanged
from modules.subscriptions.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of running the engine against one record.

    ``event`` is set only when the status actually changed.
    """

    order_id: str
    record: DeliveryDayDTO
    previous_status: DeliveryStatus
    changed: bool
    event: Optional[DeliveryStatusChanged] = None


def parse_status(value: str) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"Unknown delivery status {value!r}.") from None


def status_rank(status: str) -> int:
    """Return the forward-progression rank of a non-rest status."""
    try:
        return STATUS_RANK[status]
    except KeyError:
        raise InvalidTransitionError(f"Status {status!r} has no delivery rank.") from None


def check_transition(current: str, target: str) -> bool:
    """Validate moving from ``current`` to ``target``.

    Returns ``True`` when the move changes the status and ``False`` for
    an idempotent no-op.

    Raises:
        InvalidTransitionError: rest day involved, unknown status, or regression.
    """
    if current == DeliveryStatus.REST:
        raise InvalidTransitionError("Rest day deliveries cannot change status.")
    if target == DeliveryStatus.REST:
        raise InvalidTransitionError("A delivery day cannot be turned into a rest day.")

    current_rank = status_rank(current)
    target_rank = status_rank(target)
    if target_rank < current_rank:
        if current == DeliveryStatus.DELIVERED:
            raise InvalidTransitionError(
                f"Already delivered, cannot revert to {target}."
            )
        raise InvalidTransitionError(f"Cannot move back from {current} to {target}.")
    return target_rank != current_rank


def is_eligible(record: DeliveryDayDTO, target: str) -> bool:
    """``True`` for a non-rest record strictly below ``target``'s rank."""
    if record.is_rest_day or record.status == DeliveryStatus.REST:
        return False
    return status_rank(record.status) < status_rank(target)


def transition(
    record: DeliveryDayDTO,
    target_status: str,
    actor: str,
    timestamp: datetime,
    *,
    order_id: str,
) -> TransitionOutcome:
    """Apply ``target_status`` to ``record``.

    The record itself is never mutated; the outcome carries the updated
    copy with its appended history entry and the ``DeliveryStatusChanged``
    event to publish once the change is persisted.
    """
    target = parse_status(target_status)
    previous = DeliveryStatus(record.status)
    if not check_transition(previous, target):
        return TransitionOutcome(
            order_id=order_id,
            record=record,
            previous_status=previous,
            changed=False,
        )

    entry = TransitionRecordDTO(
        actor=actor,
        from_status=previous,
        to_status=target,
        occurred_at=timestamp,
    )
    updated = record.model_copy(
        update={
            "status": target,
            "updated_by": actor,
            "updated_at": timestamp,
            "history": record.history + (entry,),
        }
    )
    event = DeliveryStatusChanged(
        aggregate_id=order_id,
        delivery_date=record.delivery_date,
        old_status=previous.value,
        new_status=target.value,
        actor=actor,
        transitioned_at=timestamp,
    )
    return TransitionOutcome(
        order_id=order_id,
        record=updated,
        previous_status=previous,
        changed=True,
        event=event,
    )

"""Subscription delivery domain exceptions.

Raised by the scheduling engine, the order store and the service layer
when a delivery invariant would be violated.  The API layer (views)
catches these and translates them into HTTP responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modules.subscriptions.dtos import BatchResultDTO


class SubscriptionDeliveryError(Exception):
    """Base class for every delivery-engine failure."""


class InvalidRangeError(SubscriptionDeliveryError):
    """A subscription's end date precedes its start date."""


class InvalidTransitionError(SubscriptionDeliveryError):
    """A status regression, or any transition touching a rest day."""


class NotFoundError(SubscriptionDeliveryError):
    """The order, or the order's delivery day for a date, does not exist."""


class DeliveryStoreError(SubscriptionDeliveryError):
    """The order store failed to persist a transition."""


class PartialBatchFailure(SubscriptionDeliveryError):
    """A batch completed but at least one order failed.

    Not a total failure: ``result`` still lists every order that was
    updated, plus the ones found already at the target.
    """

    def __init__(self, result: BatchResultDTO) -> None:
        self.result = result
        super().__init__(
            f"Batch for {result.target_date} completed with "
            f"{len(result.failed)} failure(s) and "
            f"{len(result.succeeded)} success(es)."
        )

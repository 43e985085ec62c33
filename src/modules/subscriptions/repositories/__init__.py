"""Subscription order repositories package."""

from modules.subscriptions.repositories.django_repository import (
    SubscriptionOrderDjangoRepository,
)
from modules.subscriptions.repositories.interfaces import ISubscriptionOrderRepository

__all__ = ["ISubscriptionOrderRepository", "SubscriptionOrderDjangoRepository"]

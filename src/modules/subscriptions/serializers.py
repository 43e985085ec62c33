"""Subscription DRF serializers for API input.

Serializers only validate HTTP payloads at the interface layer.  Output
is rendered straight from the service's Pydantic DTOs
(``model_dump(mode="json")``).
"""

from __future__ import annotations

from rest_framework import serializers

from modules.subscriptions.constants import BATCH_TARGET_STATUSES, DeliveryStatus

BATCH_STATUS_CHOICES = [
    (value, label)
    for value, label in DeliveryStatus.choices
    if value in BATCH_TARGET_STATUSES
]


class DeliveryTransitionSerializer(serializers.Serializer):
    """Validates a single delivery-day status change request."""

    date = serializers.DateField()
    status = serializers.ChoiceField(choices=DeliveryStatus.choices)
    actor = serializers.CharField(required=False, max_length=150)


class BatchTransitionSerializer(serializers.Serializer):
    """Validates a batch status change request for one calendar date."""

    date = serializers.DateField()
    status = serializers.ChoiceField(choices=BATCH_STATUS_CHOICES)
    actor = serializers.CharField(required=False, max_length=150)


class ReferenceDateSerializer(serializers.Serializer):
    """Optional ``?date=YYYY-MM-DD`` query parameter."""

    date = serializers.DateField(required=False)

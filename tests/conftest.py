from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from config import celery_app
from modules.subscriptions.constants import DeliveryStatus
from modules.subscriptions.dtos import (
    CreateSubscriptionOrderDTO,
    OrderItemDTO,
    SubscriptionOrderDTO,
)
from modules.subscriptions.scheduling import generate_delivery_calendar


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _celery_eager():
    """Run notification tasks inline instead of sending them to Redis."""
    celery_app.conf.update(CELERY_TASK_ALWAYS_EAGER=True, CELERY_TASK_EAGER_PROPAGATES=True)
    yield


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def staff_user():
    return get_user_model().objects.create_user(
        "dispatcher", password="dispatcher123", is_staff=True
    )


@pytest.fixture()
def auth_client(api_client, staff_user):
    """APIClient authenticated as a staff user."""
    api_client.force_authenticate(user=staff_user)
    return api_client


@pytest.fixture()
def subscription_dto():
    """Factory for purchased-subscription input DTOs."""

    def _build(
        customer_name="Aarav Sharma",
        start=date(2026, 2, 2),
        end=date(2026, 2, 8),
        pack="Fruit Bowl",
        **extra,
    ) -> CreateSubscriptionOrderDTO:
        fields = {
            "customer_phone": "9876543210",
            "customer_email": "aarav@example.com",
            "college": "IIT Delhi",
            "total_amount": Decimal("1499.00"),
        }
        fields.update(extra)
        return CreateSubscriptionOrderDTO(
            customer_name=customer_name,
            items=(OrderItemDTO(name=pack, quantity=1),),
            start_date=start,
            end_date=end,
            **fields,
        )

    return _build


@pytest.fixture()
def order_factory():
    """Factory for in-memory orders with a generated calendar.

    ``statuses`` maps a date to the status its (non-rest) record should
    carry instead of ``pending``.
    """

    def _build(
        order_id="order-1",
        start=date(2026, 2, 2),
        end=date(2026, 2, 8),
        statuses=None,
        customer_name=None,
        pack="Fruit Bowl",
        **extra,
    ) -> SubscriptionOrderDTO:
        statuses = statuses or {}
        days = []
        for day in generate_delivery_calendar(start, end):
            status = statuses.get(day.delivery_date)
            if status is not None and not day.is_rest_day:
                day = day.model_copy(update={"status": DeliveryStatus(status)})
            days.append(day)
        return SubscriptionOrderDTO(
            id=order_id,
            customer_name=customer_name or f"Customer {order_id}",
            items=(OrderItemDTO(name=pack),),
            start_date=start,
            end_date=end,
            delivery_days=tuple(days),
            **extra,
        )

    return _build

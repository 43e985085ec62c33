"""Subscription delivery API views.

Exposes ``SubscriptionDeliveryService`` via HTTP using a DRF ViewSet.
Domain exceptions are caught and translated into HTTP status codes; the
view never swallows generic exceptions.  The wall clock is read here,
and only here: "now" and "today" are resolved per request and passed
down to the service.
"""

from __future__ import annotations

from django.conf import settings
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.subscriptions.dtos import SubscriptionOrderDTO
from modules.subscriptions.exceptions import (
    DeliveryStoreError,
    InvalidTransitionError,
    NotFoundError,
    PartialBatchFailure,
)
from modules.subscriptions.filters import SubscriptionOrderFilter
from modules.subscriptions.repositories.django_repository import (
    SubscriptionOrderDjangoRepository,
    subscription_queryset,
)
from modules.subscriptions.serializers import (
    BatchTransitionSerializer,
    DeliveryTransitionSerializer,
    ReferenceDateSerializer,
)
from modules.subscriptions.services import SubscriptionDeliveryService
from modules.subscriptions.statistics import compute_order_statistics, summarize_order


class SubscriptionViewSet(GenericViewSet):
    """ViewSet for subscription delivery operations.

    Does **not** extend ``ModelViewSet``: every write goes through the
    service and the order store's atomic ``apply_transition``.
    """

    filterset_class = SubscriptionOrderFilter
    search_fields = ["customer_name", "college"]
    ordering_fields = ["start_date", "end_date", "customer_name"]
    ordering = ["start_date", "id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = SubscriptionDeliveryService(
            order_repository=SubscriptionOrderDjangoRepository(),
            rest_weekday=settings.SUBSCRIPTION_REST_WEEKDAY,
        )

    def get_queryset(self):
        return subscription_queryset()

    def _actor(self, request: Request, data: dict) -> str:
        if data.get("actor"):
            return data["actor"]
        if request.user and request.user.is_authenticated:
            return request.user.get_username()
        return "system"

    def _reference_date(self, request: Request):
        serializer = ReferenceDateSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data.get("date") or timezone.localdate()

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/subscriptions/

        Every order with its delivery statistics.  Filtering (college,
        active_on, date bounds), search and ordering are handled by the
        filter backends.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        rows = [
            summarize_order(SubscriptionOrderDTO.from_entity(order)).model_dump(mode="json")
            for order in page
        ]
        return paginator.get_paginated_response(rows)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/subscriptions/{pk}/"""
        try:
            order = self._service.get_order(str(pk))
        except NotFoundError:
            return Response(
                {"detail": "Subscription not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        data = order.model_dump(mode="json")
        data["pack_name"] = order.pack_name
        data["stats"] = compute_order_statistics(order.delivery_days).model_dump()
        return Response(data)

    @action(detail=True, methods=["get"])
    def statistics(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/subscriptions/{pk}/statistics/"""
        try:
            stats = self._service.get_order_statistics(str(pk))
        except NotFoundError:
            return Response(
                {"detail": "Subscription not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(stats.model_dump())

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def transition(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/subscriptions/{pk}/transition/

        Body: ``{"date": "2026-02-03", "status": "delivered", "actor": "..."}``.
        """
        serializer = DeliveryTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            day = self._service.transition_delivery(
                order_id=str(pk),
                delivery_date=data["date"],
                target_status=data["status"],
                actor=self._actor(request, data),
                timestamp=timezone.now(),
            )
        except NotFoundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidTransitionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except DeliveryStoreError as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response(day.model_dump(mode="json"))

    @action(detail=False, methods=["post"])
    def batch(self, request: Request) -> Response:
        """POST /api/v1/subscriptions/batch/

        Returns 200 when every eligible order was updated and 207 when the
        batch completed with per-order failures.
        """
        serializer = BatchTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._service.batch_transition(
                target_date=data["date"],
                target_status=data["status"],
                actor=self._actor(request, data),
                timestamp=timezone.now(),
            )
        except InvalidTransitionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result.raise_for_failures()
        except PartialBatchFailure as exc:
            return Response(
                exc.result.model_dump(mode="json"),
                status=status.HTTP_207_MULTI_STATUS,
            )
        return Response(result.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Cross-order views
    # ------------------------------------------------------------------

    @action(
        detail=False,
        methods=["get"],
        url_path=r"calendar/(?P<year>\d{4})/(?P<month>\d{1,2})",
    )
    def calendar(self, request: Request, year: str, month: str) -> Response:
        """GET /api/v1/subscriptions/calendar/{year}/{month}/"""
        try:
            monthly = self._service.get_monthly_calendar(int(year), int(month))
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(monthly.model_dump(mode="json"))

    @action(detail=False, methods=["get"], url_path="next-day")
    def next_day(self, request: Request) -> Response:
        """GET /api/v1/subscriptions/next-day/?date=YYYY-MM-DD

        Deliveries scheduled for the day after ``date`` (default: today).
        """
        reference = self._reference_date(request)
        deliveries = self._service.get_next_day_deliveries(reference)
        return Response(
            {
                "reference_date": reference.isoformat(),
                "count": len(deliveries),
                "deliveries": [d.model_dump(mode="json") for d in deliveries],
            }
        )

    @action(detail=False, methods=["get"])
    def deliveries(self, request: Request) -> Response:
        """GET /api/v1/subscriptions/deliveries/?date=YYYY-MM-DD

        Deliveries still open on ``date`` (default: today).
        """
        target = self._reference_date(request)
        deliveries = self._service.get_deliveries_for_date(target)
        return Response(
            {
                "date": target.isoformat(),
                "count": len(deliveries),
                "deliveries": [d.model_dump(mode="json") for d in deliveries],
            }
        )

    @action(detail=False, methods=["get"])
    def summary(self, request: Request) -> Response:
        """GET /api/v1/subscriptions/summary/"""
        return Response(self._service.get_overall_statistics().model_dump())

"""Subscription URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.subscriptions.views import SubscriptionViewSet

router = DefaultRouter(trailing_slash=True)
router.register("subscriptions", SubscriptionViewSet, basename="subscription")

urlpatterns = router.urls

from django.apps import AppConfig


class SubscriptionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.subscriptions"
    label = "subscriptions"

    def ready(self) -> None:
        from modules.subscriptions.events import (
            DeliveryStatusChanged,
            NextDayReminderRequested,
        )
        from modules.subscriptions.handlers import (
            delivery_status_changed_handler,
            next_day_reminder_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(DeliveryStatusChanged, delivery_status_changed_handler)
        event_bus.subscribe(NextDayReminderRequested, next_day_reminder_handler)

from __future__ import annotations

import random
from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.subscriptions.dtos import CreateSubscriptionOrderDTO, OrderItemDTO
from modules.subscriptions.models import SubscriptionOrder
from modules.subscriptions.repositories import SubscriptionOrderDjangoRepository
from modules.subscriptions.services import SubscriptionDeliveryService

CUSTOMERS = [
    ("Aarav Sharma", "9876543210", "aarav@example.com", "IIT Delhi"),
    ("Diya Patel", "9123456780", "diya@example.com", "IIT Delhi"),
    ("Ishaan Reddy", "9988776655", "ishaan@example.com", "BITS Pilani"),
    ("Kavya Nair", "9012345678", "kavya@example.com", "BITS Pilani"),
    ("Rohan Gupta", "9876501234", "rohan@example.com", "NIT Trichy"),
    ("Sneha Iyer", "9765432109", "sneha@example.com", "NIT Trichy"),
    ("Arjun Mehta", "9654321098", "arjun@example.com", "IIT Bombay"),
    ("Ananya Das", "9543210987", "ananya@example.com", "IIT Bombay"),
    ("Vivaan Joshi", "9432109876", "vivaan@example.com", "VIT Vellore"),
    ("Meera Pillai", "9321098765", "meera@example.com", "VIT Vellore"),
    ("Kabir Singh", "9210987654", "kabir@example.com", "DTU"),
    ("Saanvi Rao", "9109876543", "saanvi@example.com", "DTU"),
]

PACKS = [
    ("Fruit Bowl", Decimal("1499.00")),
    ("Protein Salad", Decimal("1799.00")),
    ("Breakfast Box", Decimal("1299.00")),
    ("Juice Combo", Decimal("999.00")),
]


class Command(BaseCommand):
    help = "Seed database with subscription orders and their delivery calendars."

    def add_arguments(self, parser):
        parser.add_argument(
            "--start",
            type=date.fromisoformat,
            default=date(2026, 2, 2),
            help="Earliest subscription start date (YYYY-MM-DD).",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding subscription data...")

        users_created = self._seed_users()
        orders_created = self._seed_subscriptions(options["start"])

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: users={users_created}, subscriptions={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="delivery").exists():
            User.objects.create_user("delivery", password="delivery123", is_staff=True)
            created += 1
        return created

    def _seed_subscriptions(self, earliest: date) -> int:
        self.stdout.write("Creating subscriptions...")
        service = SubscriptionDeliveryService(
            order_repository=SubscriptionOrderDjangoRepository(),
            rest_weekday=settings.SUBSCRIPTION_REST_WEEKDAY,
        )
        created = 0
        for name, phone, email, college in CUSTOMERS:
            if SubscriptionOrder.objects.filter(customer_email=email).exists():
                continue
            pack_name, price = random.choice(PACKS)
            start = earliest + timedelta(days=random.randint(0, 6))
            length = random.choice([7, 14, 28])
            service.register_subscription(
                CreateSubscriptionOrderDTO(
                    customer_name=name,
                    customer_phone=phone,
                    customer_email=email,
                    college=college,
                    items=(OrderItemDTO(name=pack_name, quantity=1),),
                    total_amount=price * length // 7,
                    start_date=start,
                    end_date=start + timedelta(days=length - 1),
                )
            )
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating subscriptions... Done!"))
        return created

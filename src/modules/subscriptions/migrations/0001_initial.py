import decimal

import django.db.models.deletion
import django.utils.timezone
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SubscriptionOrder",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("customer_name", models.CharField(max_length=200)),
                (
                    "customer_phone",
                    models.CharField(blank=True, default="", max_length=20),
                ),
                (
                    "customer_email",
                    models.EmailField(blank=True, default="", max_length=254),
                ),
                ("college", models.CharField(blank=True, default="", max_length=200)),
                ("items", models.JSONField(default=list)),
                (
                    "total_amount",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=10,
                    ),
                ),
                (
                    "placed_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
            ],
            options={
                "db_table": "subscription_orders",
                "ordering": ["start_date", "id"],
                "indexes": [
                    models.Index(
                        fields=["start_date", "end_date"],
                        name="sub_orders_range_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DeliveryDay",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("delivery_date", models.DateField()),
                ("is_rest_day", models.BooleanField(default=False)),
                (
                    "delivery_index",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("rest", "Rest day"),
                            ("pending", "Pending"),
                            ("out_for_delivery", "Out for delivery"),
                            ("delivered", "Delivered"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "updated_by",
                    models.CharField(blank=True, default="", max_length=150),
                ),
                ("status_updated_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="delivery_days",
                        to="subscriptions.subscriptionorder",
                    ),
                ),
            ],
            options={
                "db_table": "subscription_delivery_days",
                "ordering": ["delivery_date"],
                "indexes": [
                    models.Index(
                        fields=["delivery_date", "status"],
                        name="delivery_day_date_status_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "delivery_date"),
                        name="delivery_day_unique_per_order",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DeliveryStatusHistory",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("actor", models.CharField(max_length=150)),
                (
                    "old_status",
                    models.CharField(
                        choices=[
                            ("rest", "Rest day"),
                            ("pending", "Pending"),
                            ("out_for_delivery", "Out for delivery"),
                            ("delivered", "Delivered"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "new_status",
                    models.CharField(
                        choices=[
                            ("rest", "Rest day"),
                            ("pending", "Pending"),
                            ("out_for_delivery", "Out for delivery"),
                            ("delivered", "Delivered"),
                        ],
                        max_length=20,
                    ),
                ),
                ("occurred_at", models.DateTimeField()),
                (
                    "delivery_day",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="subscriptions.deliveryday",
                    ),
                ),
            ],
            options={
                "db_table": "subscription_delivery_history",
                "ordering": ["occurred_at", "id"],
            },
        ),
    ]

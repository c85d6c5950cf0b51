"""
Migration: Initial schema of the tracker application.
"""

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Crawler",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100, unique=True)),
                ("token", models.UUIDField(default=uuid.uuid4, help_text="Bearer token the crawler authenticates with", unique=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "crawlers",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("url_hash", models.CharField(help_text="SHA-256 of the canonical URL", max_length=64, unique=True)),
                ("shop", models.CharField(db_index=True, max_length=50)),
                ("url", models.URLField(help_text="Canonical product URL", max_length=2000)),
                ("title", models.CharField(blank=True, default="", max_length=512)),
                ("image", models.URLField(blank=True, max_length=2000, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("hold", "Hold")],
                        db_index=True,
                        default="active",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "products",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ProductHistory",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ok", "OK"),
                            ("not_found", "Not Found"),
                            ("skip", "Skip"),
                            ("required_to_change_location", "Required to Change Location"),
                            ("age_restriction", "Age Restriction"),
                        ],
                        max_length=30,
                    ),
                ),
                ("original_price", models.DecimalField(blank=True, decimal_places=2, help_text="Price without discount", max_digits=12, null=True)),
                ("discount_price", models.DecimalField(blank=True, decimal_places=2, help_text="Price with discount", max_digits=12, null=True)),
                ("in_stock", models.BooleanField(default=False)),
                ("title", models.CharField(blank=True, max_length=512, null=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "crawler",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reports",
                        to="tracker.crawler",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="tracker.product",
                    ),
                ),
            ],
            options={
                "verbose_name": "Product History",
                "verbose_name_plural": "Product History Records",
                "db_table": "product_history",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["product", "status", "created_at"], name="product_history_lookup_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("status", "ok"),
                            models.Q(("original_price__isnull", True), ("discount_price__isnull", True)),
                            _connector="OR",
                        ),
                        name="product_history_prices_only_when_ok",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductQueue",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("url", models.URLField(max_length=2000)),
                ("url_hash", models.CharField(db_index=True, max_length=64)),
                ("shop", models.CharField(max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "requested_by",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="queued_products",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "skip_for_crawler",
                    models.ForeignKey(
                        blank=True,
                        help_text="Crawler which cannot serve this URL",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="skipped_queue_entries",
                        to="tracker.crawler",
                    ),
                ),
            ],
            options={
                "db_table": "product_queue",
                "ordering": ["url"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("url", "url_hash", "requested_by"),
                        name="product_queue_unique_request",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="UserProduct",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("favorited", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="owners",
                        to="tracker.product",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="user_products",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "user_products",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user", "product"),
                        name="user_products_unique_owner",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("price__gte", 0)),
                        name="user_products_price_not_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductSubscription",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "subscription_type",
                    models.CharField(
                        choices=[("on_change_status_to_in_stock", "On Change Status to In Stock")],
                        max_length=50,
                    ),
                ),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subscriptions",
                        to="tracker.product",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="product_subscriptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "product_subscriptions",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user", "product", "subscription_type"),
                        name="product_subscriptions_unique_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TelegramAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("account", models.CharField(max_length=64, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="telegram_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "telegram_accounts",
            },
        ),
        migrations.CreateModel(
            name="TelegramMessage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "event",
                    models.CharField(
                        choices=[
                            ("first_time_in_stock", "First Time in Stock"),
                            ("back_in_stock", "Back in Stock"),
                        ],
                        max_length=30,
                    ),
                ),
                ("recipient", models.CharField(help_text="Telegram chat id", max_length=64)),
                ("message", models.TextField()),
                (
                    "delivery_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("sent", "Sent"), ("failed", "Failed")],
                        db_index=True,
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("error", models.TextField(blank=True, default="")),
                ("attempted_at", models.DateTimeField(blank=True, null=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="telegram_messages",
                        to="tracker.product",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="telegram_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "telegram_messages",
                "ordering": ["-created_at"],
            },
        ),
    ]

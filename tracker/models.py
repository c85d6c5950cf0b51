"""
Django models for the Price Tracker service.

Crawlers report snapshots of shop product pages; every snapshot becomes an
append-only ProductHistory row. Users track products through UserProduct,
subscribe to stock events through ProductSubscription and receive Telegram
notifications persisted as TelegramMessage outbox rows.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class ProductStatusChoices(models.TextChoices):
    """Lifecycle status of a tracked product."""

    ACTIVE = "active", "Active"
    HOLD = "hold", "Hold"


class HistoryStatusChoices(models.TextChoices):
    """Status reported by a crawler for a product page."""

    OK = "ok", "OK"
    NOT_FOUND = "not_found", "Not Found"
    SKIP = "skip", "Skip"
    REQUIRED_TO_CHANGE_LOCATION = "required_to_change_location", "Required to Change Location"
    AGE_RESTRICTION = "age_restriction", "Age Restriction"


class SubscriptionTypeChoices(models.TextChoices):
    """Kinds of stock events a user can subscribe to."""

    ON_CHANGE_STATUS_TO_IN_STOCK = "on_change_status_to_in_stock", "On Change Status to In Stock"


class NotificationEventChoices(models.TextChoices):
    """Stock transition that produced a notification."""

    FIRST_TIME_IN_STOCK = "first_time_in_stock", "First Time in Stock"
    BACK_IN_STOCK = "back_in_stock", "Back in Stock"


class DeliveryStatusChoices(models.TextChoices):
    """Delivery state of an outbox notification."""

    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    FAILED = "failed", "Failed"


# Statuses which tell something about the product itself; skip is crawler noise
PRICE_SIGNAL_STATUSES = (
    HistoryStatusChoices.OK,
    HistoryStatusChoices.NOT_FOUND,
    HistoryStatusChoices.AGE_RESTRICTION,
    HistoryStatusChoices.REQUIRED_TO_CHANGE_LOCATION,
)


class Crawler(models.Model):
    """
    An external agent that fetches shop pages and reports their state.

    Crawlers authenticate with a bearer token. The instance itself is used
    as ``request.user`` on crawler endpoints.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    token = models.UUIDField(
        default=uuid.uuid4,
        unique=True,
        help_text="Bearer token the crawler authenticates with",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "crawlers"
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def is_authenticated(self):
        return True


class Product(models.Model):
    """
    A single product page of a supported shop.

    One row per identity hash of the canonical URL.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    url_hash = models.CharField(
        max_length=64,
        unique=True,
        help_text="SHA-256 of the canonical URL",
    )
    shop = models.CharField(max_length=50, db_index=True)
    url = models.URLField(max_length=2000, help_text="Canonical product URL")
    title = models.CharField(max_length=512, blank=True, default="")
    image = models.URLField(max_length=2000, blank=True, null=True)
    status = models.CharField(
        max_length=10,
        choices=ProductStatusChoices.choices,
        default=ProductStatusChoices.ACTIVE,
        db_index=True,
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "products"
        ordering = ["-created_at"]

    def __str__(self):
        return self.title or self.url[:100]


class ProductHistory(models.Model):
    """
    One crawler report for a product. Rows are never updated.

    The latest record is the one with the greatest created_at, ties broken
    by the auto-increment primary key.
    """

    id = models.BigAutoField(primary_key=True)
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="history",
    )
    crawler = models.ForeignKey(
        Crawler,
        on_delete=models.PROTECT,
        related_name="reports",
    )
    status = models.CharField(max_length=30, choices=HistoryStatusChoices.choices)
    original_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        blank=True,
        null=True,
        help_text="Price without discount",
    )
    discount_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        blank=True,
        null=True,
        help_text="Price with discount",
    )
    in_stock = models.BooleanField(default=False)
    title = models.CharField(max_length=512, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "product_history"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["product", "status", "created_at"], name="product_history_lookup_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status=HistoryStatusChoices.OK)
                | (Q(original_price__isnull=True) & Q(discount_price__isnull=True)),
                name="product_history_prices_only_when_ok",
            ),
        ]
        verbose_name = "Product History"
        verbose_name_plural = "Product History Records"

    def __str__(self):
        return f"{self.product_id} {self.status} ({self.created_at})"


class ProductQueue(models.Model):
    """
    A pending request to crawl a URL for which no Product exists yet.
    """

    id = models.BigAutoField(primary_key=True)
    url = models.URLField(max_length=2000)
    url_hash = models.CharField(max_length=64, db_index=True)
    shop = models.CharField(max_length=50)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="queued_products",
    )
    skip_for_crawler = models.ForeignKey(
        Crawler,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="skipped_queue_entries",
        help_text="Crawler which cannot serve this URL",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "product_queue"
        ordering = ["url"]
        constraints = [
            models.UniqueConstraint(
                fields=["url", "url_hash", "requested_by"],
                name="product_queue_unique_request",
            ),
        ]

    def __str__(self):
        return self.url[:100]


class UserProduct(models.Model):
    """
    Ownership of a product by a user.

    ``price`` is the price the product had when the user started tracking
    it. Zero means the price was not known yet.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="user_products",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="owners",
    )
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    favorited = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "user_products"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product"],
                name="user_products_unique_owner",
            ),
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name="user_products_price_not_negative",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.product_id}"


class ProductSubscription(models.Model):
    """A user's request to be notified about a stock event of a product."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="product_subscriptions",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    subscription_type = models.CharField(
        max_length=50,
        choices=SubscriptionTypeChoices.choices,
    )
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "product_subscriptions"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product", "subscription_type"],
                name="product_subscriptions_unique_type",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} {self.subscription_type} {self.product_id}"


class TelegramAccount(models.Model):
    """Telegram chat linked to a user; the notification recipient handle."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="telegram_account",
    )
    account = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "telegram_accounts"

    def __str__(self):
        return self.account


class TelegramMessage(models.Model):
    """
    Outbox record of a notification addressed to a user.

    Created inside the ingestion transaction, delivered exactly once by
    ``tracker.tasks.deliver_notification``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="telegram_messages",
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="telegram_messages",
    )
    event = models.CharField(max_length=30, choices=NotificationEventChoices.choices)
    recipient = models.CharField(max_length=64, help_text="Telegram chat id")
    message = models.TextField()
    delivery_status = models.CharField(
        max_length=10,
        choices=DeliveryStatusChoices.choices,
        default=DeliveryStatusChoices.PENDING,
        db_index=True,
    )
    error = models.TextField(blank=True, default="")
    attempted_at = models.DateTimeField(blank=True, null=True)
    sent_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "telegram_messages"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.event} -> {self.recipient} ({self.delivery_status})"

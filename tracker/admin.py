"""
Django admin configuration for Price Tracker models.

Crawlers are managed here (enable, disable, rotate tokens); products,
history and the notification outbox are mostly read-only views.
"""

import uuid

from django.contrib import admin
from django.utils.html import format_html

from tracker.models import (
    Crawler,
    DeliveryStatusChoices,
    Product,
    ProductHistory,
    ProductQueue,
    ProductSubscription,
    TelegramAccount,
    TelegramMessage,
    UserProduct,
)
from tracker.services.stock_notifier import enqueue_delivery

BADGE_STYLE = "background-color: {}; color: white; padding: 2px 8px; border-radius: 4px;"


def _badge(color, text):
    return format_html('<span style="' + BADGE_STYLE + '">{}</span>', color, text)


@admin.register(Crawler)
class CrawlerAdmin(admin.ModelAdmin):
    list_display = ["name", "is_active_badge", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["name"]
    readonly_fields = ["id", "token", "created_at"]
    actions = ["enable_crawlers", "disable_crawlers", "rotate_tokens"]

    def is_active_badge(self, obj):
        """Display active status as colored badge."""
        if obj.is_active:
            return _badge("#28a745", "Active")
        return _badge("#6c757d", "Inactive")
    is_active_badge.short_description = "Active"
    is_active_badge.admin_order_field = "is_active"

    @admin.action(description="Enable selected crawlers")
    def enable_crawlers(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f"Enabled {count} crawler(s).")

    @admin.action(description="Disable selected crawlers")
    def disable_crawlers(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f"Disabled {count} crawler(s).")

    @admin.action(description="Rotate tokens of selected crawlers")
    def rotate_tokens(self, request, queryset):
        count = 0
        for crawler in queryset:
            crawler.token = uuid.uuid4()
            crawler.save(update_fields=["token"])
            count += 1
        self.message_user(request, f"Rotated {count} token(s).")


class ProductHistoryInline(admin.TabularInline):
    model = ProductHistory
    extra = 0
    can_delete = False
    ordering = ["-created_at", "-id"]
    fields = ["status", "in_stock", "original_price", "discount_price", "crawler", "created_at"]
    readonly_fields = fields


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin interface for products.

    History is append-only and shown inline, newest first.
    """

    list_display = ["title", "shop", "status_badge", "created_at"]
    list_filter = ["shop", "status"]
    search_fields = ["title", "url", "url_hash"]
    readonly_fields = ["id", "url_hash", "created_at"]
    inlines = [ProductHistoryInline]

    def status_badge(self, obj):
        """Display status as colored badge."""
        colors = {
            "active": "#28a745",
            "hold": "#ffc107",
        }
        return _badge(colors.get(obj.status, "#6c757d"), obj.status.title())
    status_badge.short_description = "Status"
    status_badge.admin_order_field = "status"


@admin.register(ProductHistory)
class ProductHistoryAdmin(admin.ModelAdmin):
    list_display = ["product", "status", "in_stock", "original_price", "discount_price", "crawler", "created_at"]
    list_filter = ["status", "in_stock", "crawler", ("created_at", admin.DateFieldListFilter)]
    search_fields = ["product__title", "product__url"]
    list_select_related = ["product", "crawler"]

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(ProductQueue)
class ProductQueueAdmin(admin.ModelAdmin):
    list_display = ["url", "shop", "requested_by", "skip_for_crawler", "created_at"]
    list_filter = ["shop"]
    search_fields = ["url", "url_hash"]


@admin.register(UserProduct)
class UserProductAdmin(admin.ModelAdmin):
    list_display = ["user", "product", "price", "favorited", "created_at"]
    list_filter = ["favorited"]
    search_fields = ["product__title", "user__username"]
    list_select_related = ["user", "product"]


@admin.register(ProductSubscription)
class ProductSubscriptionAdmin(admin.ModelAdmin):
    list_display = ["user", "product", "subscription_type", "created_at"]
    list_filter = ["subscription_type"]


@admin.register(TelegramAccount)
class TelegramAccountAdmin(admin.ModelAdmin):
    list_display = ["user", "account", "created_at"]
    search_fields = ["account", "user__username"]


@admin.register(TelegramMessage)
class TelegramMessageAdmin(admin.ModelAdmin):
    """
    Notification outbox.

    Failed records are never retried automatically; the retry action puts
    them back to pending and schedules delivery again.
    """

    list_display = ["recipient", "product", "event", "delivery_badge", "attempted_at", "sent_at"]
    list_filter = ["event", "delivery_status", ("created_at", admin.DateFieldListFilter)]
    search_fields = ["recipient", "product__title"]
    readonly_fields = ["id", "attempted_at", "sent_at", "error", "created_at"]
    actions = ["retry_delivery"]

    def delivery_badge(self, obj):
        """Display delivery status as colored badge."""
        colors = {
            "pending": "#ffc107",
            "sent": "#28a745",
            "failed": "#dc3545",
        }
        return _badge(colors.get(obj.delivery_status, "#6c757d"), obj.delivery_status.title())
    delivery_badge.short_description = "Delivery"
    delivery_badge.admin_order_field = "delivery_status"

    @admin.action(description="Retry delivery of failed messages")
    def retry_delivery(self, request, queryset):
        count = 0
        for record in queryset.filter(delivery_status=DeliveryStatusChoices.FAILED):
            record.delivery_status = DeliveryStatusChoices.PENDING
            record.error = ""
            record.save(update_fields=["delivery_status", "error"])
            enqueue_delivery(str(record.id))
            count += 1
        self.message_user(request, f"Scheduled {count} message(s) for delivery.")

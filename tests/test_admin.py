"""
Tests for Django Admin actions.
"""

from unittest.mock import patch

import pytest
from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.contrib.messages.storage.fallback import FallbackStorage
from django.contrib.sessions.middleware import SessionMiddleware
from django.test import RequestFactory

from tracker.admin import CrawlerAdmin, ProductAdmin, TelegramMessageAdmin
from tracker.models import (
    Crawler,
    DeliveryStatusChoices,
    NotificationEventChoices,
    Product,
    TelegramMessage,
)


@pytest.fixture
def admin_user(db):
    """Create an admin user for testing."""
    User = get_user_model()
    return User.objects.create_superuser(
        username="admin",
        email="admin@test.com",
        password="testpass123",
    )


@pytest.fixture
def admin_request(admin_user):
    """Create an admin request with user and messages support attached."""
    request = RequestFactory().get("/admin/")
    request.user = admin_user

    middleware = SessionMiddleware(lambda x: None)
    middleware.process_request(request)
    request.session.save()

    setattr(request, "_messages", FallbackStorage(request))

    return request


@pytest.mark.django_db
class TestCrawlerAdmin:
    """Crawler management actions."""

    def test_rotate_tokens(self, admin_request, crawler):
        old_token = crawler.token
        model_admin = CrawlerAdmin(Crawler, AdminSite())

        model_admin.rotate_tokens(admin_request, Crawler.objects.all())

        crawler.refresh_from_db()
        assert crawler.token != old_token

    def test_disable_and_enable(self, admin_request, crawler):
        model_admin = CrawlerAdmin(Crawler, AdminSite())

        model_admin.disable_crawlers(admin_request, Crawler.objects.all())
        crawler.refresh_from_db()
        assert crawler.is_active is False

        model_admin.enable_crawlers(admin_request, Crawler.objects.all())
        crawler.refresh_from_db()
        assert crawler.is_active is True

    def test_badges(self, crawler, product):
        assert "Active" in CrawlerAdmin(Crawler, AdminSite()).is_active_badge(crawler)
        assert "Active" in ProductAdmin(Product, AdminSite()).status_badge(product)


@pytest.mark.django_db
class TestTelegramMessageAdmin:
    """Manual retry of failed notifications."""

    def test_retry_only_failed_records(self, admin_request, product, telegram_user):
        failed = TelegramMessage.objects.create(
            user=telegram_user,
            product=product,
            event=NotificationEventChoices.FIRST_TIME_IN_STOCK,
            recipient="1001",
            message="First time in stock!",
            delivery_status=DeliveryStatusChoices.FAILED,
            error="blocked",
        )
        sent = TelegramMessage.objects.create(
            user=telegram_user,
            product=product,
            event=NotificationEventChoices.BACK_IN_STOCK,
            recipient="1001",
            message="Back in stock!",
            delivery_status=DeliveryStatusChoices.SENT,
        )
        model_admin = TelegramMessageAdmin(TelegramMessage, AdminSite())

        with patch("tracker.admin.enqueue_delivery") as mock_enqueue:
            model_admin.retry_delivery(admin_request, TelegramMessage.objects.all())

        mock_enqueue.assert_called_once_with(str(failed.id))
        failed.refresh_from_db()
        sent.refresh_from_db()
        assert failed.delivery_status == DeliveryStatusChoices.PENDING
        assert failed.error == ""
        assert sent.delivery_status == DeliveryStatusChoices.SENT

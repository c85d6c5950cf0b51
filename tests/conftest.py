"""
Pytest configuration and fixtures for the Price Tracker test suite.
"""

from decimal import Decimal

import pytest


@pytest.fixture(scope="session")
def django_db_setup(django_db_blocker):
    """Configure the test database and run migrations."""
    from django.core.management import call_command

    with django_db_blocker.unblock():
        call_command("migrate", "--run-syncdb", verbosity=0)


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def store():
    """Tracker store bound to the default database."""
    from tracker.store import TrackerStore

    return TrackerStore()


@pytest.fixture
def user(db, django_user_model):
    """A user without a linked Telegram account."""
    return django_user_model.objects.create_user(username="alice", password="secret")


@pytest.fixture
def other_user(db, django_user_model):
    return django_user_model.objects.create_user(username="bob", password="secret")


@pytest.fixture
def make_telegram_user(db, django_user_model):
    """Factory for users with a linked Telegram account."""
    from tracker.models import TelegramAccount

    def _make(username, account):
        user = django_user_model.objects.create_user(username=username, password="secret")
        TelegramAccount.objects.create(user=user, account=account)
        return user

    return _make


@pytest.fixture
def telegram_user(make_telegram_user):
    return make_telegram_user("carol", "1001")


@pytest.fixture
def crawler(db):
    """An active crawler."""
    from tracker.models import Crawler

    return Crawler.objects.create(name="moscow-1")


@pytest.fixture
def make_product(db):
    """
    Factory for products stored under their canonical URL.

    The raw URL goes through the canonicalizer, so the stored url_hash is
    the one ingestion and tracking compute.
    """
    from tracker.models import Product
    from tracker.services.url_canonicalizer import canonicalize

    def _make(url="https://www.ozon.ru/product/phone-123/", **kwargs):
        canonical = canonicalize(url)
        kwargs.setdefault("title", "Phone")
        return Product.objects.create(
            url_hash=canonical.url_hash,
            shop=canonical.shop,
            url=canonical.url,
            **kwargs,
        )

    return _make


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def add_history(db):
    """Factory for history records; prices accept ints or strings."""
    from django.utils import timezone

    from tracker.models import ProductHistory

    def _add(product, crawler, status="ok", in_stock=True, original_price=None,
             discount_price=None, title=None, created_at=None):
        return ProductHistory.objects.create(
            product=product,
            crawler=crawler,
            status=status,
            in_stock=in_stock,
            original_price=Decimal(str(original_price)) if original_price is not None else None,
            discount_price=Decimal(str(discount_price)) if discount_price is not None else None,
            title=title,
            created_at=created_at or timezone.now(),
        )

    return _add


@pytest.fixture
def crawler_client(crawler):
    """API client authenticated as ``crawler``."""
    from rest_framework.test import APIClient

    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {crawler.token}")
    return client


@pytest.fixture
def user_client(user):
    """API client authenticated as ``user``."""
    from rest_framework.test import APIClient

    client = APIClient()
    client.force_authenticate(user=user)
    return client

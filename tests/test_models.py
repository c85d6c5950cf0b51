"""
Tests for database models and their constraints.
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from tracker.errors import IdentityConflict
from tracker.models import Crawler, ProductHistory, ProductQueue, UserProduct


@pytest.mark.django_db
class TestConstraints:
    """Invariants enforced by the database."""

    def test_url_hash_is_unique(self, store, product):
        with pytest.raises(IdentityConflict):
            store.create_product(url_hash=product.url_hash, shop="ozon", url=product.url)

    def test_store_keeps_transaction_usable_after_conflict(self, store, product):
        with transaction.atomic():
            with pytest.raises(IdentityConflict):
                store.create_product(url_hash=product.url_hash, shop="ozon", url=product.url)
            assert store.get_product_by_hash(product.url_hash) == product

    def test_non_ok_history_cannot_carry_prices(self, product, crawler):
        with pytest.raises(IntegrityError), transaction.atomic():
            ProductHistory.objects.create(
                product=product,
                crawler=crawler,
                status="not_found",
                original_price=Decimal("10"),
            )

    def test_ownership_price_not_negative(self, product, user):
        with pytest.raises(IntegrityError), transaction.atomic():
            UserProduct.objects.create(user=user, product=product, price=Decimal("-1"))

    def test_queue_entry_is_unique_per_requester(self, user):
        fields = {"url": "https://www.ozon.ru/product/a-1/", "url_hash": "c" * 64, "shop": "ozon", "requested_by": user}
        ProductQueue.objects.create(**fields)

        with pytest.raises(IntegrityError), transaction.atomic():
            ProductQueue.objects.create(**fields)


@pytest.mark.django_db
class TestCrawler:
    """Crawler identity."""

    def test_token_is_generated(self):
        first = Crawler.objects.create(name="a")
        second = Crawler.objects.create(name="b")

        assert first.token != second.token
        assert first.is_authenticated is True

    def test_history_ordering_is_newest_first(self, product, crawler, add_history):
        older = add_history(product, crawler, original_price=10)
        newer = add_history(product, crawler, original_price=20)

        assert list(ProductHistory.objects.filter(product=product)) == [newer, older]

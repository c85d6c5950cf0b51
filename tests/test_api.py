"""
Tests for the REST API endpoints.

Crawler endpoints authenticate with a bearer token, user endpoints with
a Django user.
"""

import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.urls import reverse

from tracker import messages
from tracker.errors import StoreUnavailable
from tracker.models import (
    Product,
    ProductHistory,
    ProductQueue,
    ProductSubscription,
    SubscriptionTypeChoices,
    UserProduct,
)


@pytest.mark.django_db
class TestCrawlerQueueEndpoint:
    """GET /api/v1/crawlers/queue/"""

    def test_lists_entries(self, crawler_client, user):
        ProductQueue.objects.create(
            url="https://www.ozon.ru/product/phone-123/",
            url_hash="a" * 64,
            shop="ozon",
            requested_by=user,
        )

        response = crawler_client.get(reverse("tracker_api:crawler_queue"))

        assert response.status_code == 200
        assert response.json() == {
            "products": [
                {
                    "url_hash": "a" * 64,
                    "url": "https://www.ozon.ru/product/phone-123/",
                    "shop": "ozon",
                    "requested_by": user.pk,
                },
            ],
        }


@pytest.mark.django_db
class TestCrawlerProductsEndpoint:
    """GET and POST /api/v1/crawlers/products/"""

    def test_outdated_products(self, crawler_client, product):
        response = crawler_client.get(reverse("tracker_api:crawler_products"))

        assert response.status_code == 200
        assert response.json() == {
            "products": [{"id": str(product.id), "url": product.url, "image": None}],
        }

    def test_report_new_product(self, crawler_client, user, api_client):
        api_client.force_authenticate(user=user)
        api_client.post(
            reverse("tracker_api:track_product"),
            {"url": "https://www.ozon.ru/product/phone-123/"},
            format="json",
        )
        entry = ProductQueue.objects.get()

        response = crawler_client.post(
            reverse("tracker_api:crawler_products"),
            {
                "requested_by": user.pk,
                "url_hash": entry.url_hash,
                "shop": entry.shop,
                "url": entry.url,
                "status": "ok",
                "in_stock": True,
                "title": "Phone",
                "original_price": 50,
                "discount_price": 38,
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["status"] == "product_created"
        product = Product.objects.get()
        assert UserProduct.objects.get(user=user, product=product).price == Decimal("38")
        assert ProductQueue.objects.count() == 0

    def test_report_new_product_missing_field(self, crawler_client):
        response = crawler_client.post(
            reverse("tracker_api:crawler_products"),
            {"status": "ok"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json() == messages.MISSING_REQUESTED_BY

    def test_non_object_body(self, crawler_client):
        response = crawler_client.post(reverse("tracker_api:crawler_products"), [1, 2], format="json")

        assert response.status_code == 400


@pytest.mark.django_db
class TestCrawlerProductResultEndpoint:
    """PUT /api/v1/crawlers/products/<product_id>/"""

    def url(self, product_id):
        return reverse("tracker_api:crawler_product_result", args=[product_id])

    def test_report_result(self, crawler_client, product):
        response = crawler_client.put(
            self.url(product.id),
            {"status": "ok", "in_stock": True, "title": "Phone", "original_price": "42", "discount_price": "35"},
            format="json",
        )

        assert response.status_code == 201
        assert response.json() == {
            "status": "product_history_created",
            "message": messages.PRODUCT_HISTORY_CREATED["message"],
            "product_id": str(product.id),
        }
        assert ProductHistory.objects.get().discount_price == Decimal("35")

    def test_skip_is_accepted(self, crawler_client, product):
        response = crawler_client.put(self.url(product.id), {"status": "skip"}, format="json")

        assert response.status_code == 200
        assert ProductHistory.objects.count() == 0

    def test_invalid_product_uuid(self, crawler_client):
        response = crawler_client.put(self.url("not-a-uuid"), {"status": "skip"}, format="json")

        assert response.status_code == 400
        assert response.json() == messages.INVALID_PRODUCT_UUID

    def test_unknown_product(self, crawler_client):
        response = crawler_client.put(self.url(uuid.uuid4()), {"status": "skip"}, format="json")

        assert response.status_code == 404
        assert response.json() == messages.PRODUCT_DOES_NOT_EXIST

    def test_semantically_invalid_price(self, crawler_client, product):
        response = crawler_client.put(
            self.url(product.id),
            {"status": "ok", "in_stock": True, "title": "Phone", "original_price": -5},
            format="json",
        )

        assert response.status_code == 422
        assert response.json() == messages.ORIGINAL_PRICE_MUST_BE_POSITIVE

    def test_price_above_column_range(self, crawler_client, product):
        response = crawler_client.put(
            self.url(product.id),
            {"status": "ok", "in_stock": True, "title": "X", "original_price": "1e30"},
            format="json",
        )

        assert response.status_code == 422
        assert response.json() == messages.ORIGINAL_PRICE_IS_TOO_LARGE
        assert ProductHistory.objects.count() == 0

    def test_store_failure_is_reported(self, crawler_client, product, crawler):
        with patch("tracker.api.views.CrawlResultIngestor") as mock_ingestor, \
                patch("tracker.api.views.capture_crawler_error") as mock_capture:
            mock_ingestor.return_value.report_result.side_effect = StoreUnavailable()

            response = crawler_client.put(self.url(product.id), {"status": "skip"}, format="json")

        assert response.status_code == 500
        assert response.json() == messages.STORE_UNAVAILABLE
        assert mock_capture.call_args[1]["section"] == "ingestion.report_result"
        assert mock_capture.call_args[1]["crawler"] == crawler

    def test_unexpected_error_is_reported(self, crawler_client, product):
        with patch("tracker.api.views.CrawlResultIngestor") as mock_ingestor, \
                patch("tracker.api.views.capture_crawler_error") as mock_capture:
            mock_ingestor.return_value.report_result.side_effect = RuntimeError("boom")

            response = crawler_client.put(self.url(product.id), {"status": "skip"}, format="json")

        assert response.status_code == 500
        assert response.json() == messages.UNHANDLED_ERROR
        mock_capture.assert_called_once()


@pytest.mark.django_db
class TestTrackingEndpoints:
    """User endpoints under /api/v1/products/"""

    def test_requires_authentication(self, api_client):
        response = api_client.post(reverse("tracker_api:track_product"), {"url": "x"}, format="json")

        assert response.status_code in (401, 403)

    def test_track_queues_unknown_product(self, user_client):
        response = user_client.post(
            reverse("tracker_api:track_product"),
            {"url": "Look https://m.ozon.ru/product/phone-123"},
            format="json",
        )

        assert response.status_code == 201
        assert response.json() == messages.PRODUCT_ADDED_TO_QUEUE

    def test_track_unsupported_shop(self, user_client):
        response = user_client.post(
            reverse("tracker_api:track_product"),
            {"url": "https://www.amazon.com/dp/B000000"},
            format="json",
        )

        assert response.status_code == 422
        assert response.json() == messages.SHOP_IS_NOT_SUPPORTED_YET

    @pytest.mark.parametrize("body", [["https://www.ozon.ru/product/phone-123/"], {"url": 123}])
    def test_track_without_url_string(self, user_client, body):
        response = user_client.post(reverse("tracker_api:track_product"), body, format="json")

        assert response.status_code == 422
        assert response.json() == messages.INVALID_URL

    def test_track_existing_product_twice(self, user_client, product):
        first = user_client.post(reverse("tracker_api:track_product"), {"url": product.url}, format="json")
        second = user_client.post(reverse("tracker_api:track_product"), {"url": product.url}, format="json")

        assert first.status_code == 201
        assert first.json()["product_id"] == str(product.id)
        assert second.status_code == 200
        assert second.json() == messages.YOU_ARE_ALREADY_HAVE_THIS_PRODUCT

    def test_untrack(self, user_client, user, product):
        UserProduct.objects.create(user=user, product=product)

        response = user_client.delete(reverse("tracker_api:untrack_product", args=[product.id]))

        assert response.status_code == 200
        assert response.json() == messages.PRODUCT_REMOVED_FROM_USER
        assert UserProduct.objects.count() == 0

    def test_history(self, user_client, user, product, crawler, add_history):
        add_history(product, crawler, original_price=50, discount_price=38)
        UserProduct.objects.create(user=user, product=product, price=Decimal("45"))

        response = user_client.get(reverse("tracker_api:product_history", args=[product.id]))

        assert response.status_code == 200
        data = response.data
        assert data["product"]["id"] == str(product.id)
        assert data["state"]["last_price"] == Decimal("38")
        assert data["state"]["my_benefit"] == Decimal("7")
        assert data["state"]["has_discount"] is True
        assert len(data["history"]) == 1
        assert data["subscriptions"] == []

    def test_history_of_untracked_product(self, user_client, product):
        response = user_client.get(reverse("tracker_api:product_history", args=[product.id]))

        assert response.status_code == 404
        assert response.json() == messages.USER_DOES_NOT_HAVE_PRODUCT


@pytest.mark.django_db
class TestSubscriptionEndpoints:
    """Subscription endpoints under /api/v1/products/<product_id>/subscriptions/"""

    def test_subscribe_and_unsubscribe(self, api_client, telegram_user, product):
        api_client.force_authenticate(user=telegram_user)
        UserProduct.objects.create(user=telegram_user, product=product)

        response = api_client.post(
            reverse("tracker_api:create_subscription", args=[product.id]),
            {"subscription_type": SubscriptionTypeChoices.ON_CHANGE_STATUS_TO_IN_STOCK},
            format="json",
        )

        assert response.status_code == 201
        subscription_id = response.json()["subscription_id"]
        assert ProductSubscription.objects.filter(pk=subscription_id).exists()

        response = api_client.delete(
            reverse("tracker_api:delete_subscription", args=[product.id, subscription_id]),
        )

        assert response.status_code == 200
        assert response.json() == messages.SUBSCRIPTION_REMOVED
        assert ProductSubscription.objects.count() == 0

    def test_subscribe_without_telegram(self, user_client, user, product):
        UserProduct.objects.create(user=user, product=product)

        response = user_client.post(
            reverse("tracker_api:create_subscription", args=[product.id]),
            {"subscription_type": SubscriptionTypeChoices.ON_CHANGE_STATUS_TO_IN_STOCK},
            format="json",
        )

        assert response.status_code == 422
        assert response.json() == messages.USER_DOES_NOT_HAVE_LINKED_TELEGRAM_ACCOUNT

    def test_subscribe_with_list_body(self, user_client, user, product):
        UserProduct.objects.create(user=user, product=product)

        response = user_client.post(
            reverse("tracker_api:create_subscription", args=[product.id]),
            [SubscriptionTypeChoices.ON_CHANGE_STATUS_TO_IN_STOCK],
            format="json",
        )

        assert response.status_code == 400
        assert response.json() == messages.MISSING_SUBSCRIPTION_TYPE

    def test_unsubscribe_malformed_id(self, user_client, product):
        response = user_client.delete(
            reverse("tracker_api:delete_subscription", args=[product.id, "nope"]),
        )

        assert response.status_code == 404
        assert response.json() == messages.PRODUCT_SUBSCRIPTION_DOES_NOT_EXIST


@pytest.mark.django_db
class TestHealthCheck:
    """GET /api/health/"""

    def test_healthy(self, client, user, product):
        ProductQueue.objects.create(url=product.url, url_hash="b" * 64, shop="ozon", requested_by=user)

        with patch("tracker.views.get_celery_worker_count", return_value=2):
            response = client.get(reverse("health-check"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["redis"] == "not_configured"
        assert data["celery_workers"] == 2
        assert data["queue_depth"] == 1
        assert data["last_report"] is None
        assert data["pending_notifications"] == 0

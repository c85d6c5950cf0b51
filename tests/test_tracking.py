"""
Tests for the user tracking flow: track, untrack, overview, subscriptions.
"""

from decimal import Decimal

import pytest

from tracker import messages
from tracker.errors import InvalidURL, InvalidValue, NotFoundError, ValidationError
from tracker.models import (
    ProductQueue,
    ProductStatusChoices,
    ProductSubscription,
    SubscriptionTypeChoices,
    UserProduct,
)
from tracker.services.tracking import TrackingService

RESTOCK = SubscriptionTypeChoices.ON_CHANGE_STATUS_TO_IN_STOCK


@pytest.fixture
def tracking(store):
    return TrackingService(store)


@pytest.mark.django_db
class TestTrack:
    """Adding products to a user's list."""

    def test_unknown_product_is_queued(self, tracking, user):
        result = tracking.track(user, "Look: https://m.ozon.ru/product/phone-123?from=share")

        assert result.http_status == 201
        assert result.body == messages.PRODUCT_ADDED_TO_QUEUE
        assert result.queue_entry.url == "https://www.ozon.ru/product/phone-123/"
        assert ProductQueue.objects.count() == 1

    def test_known_product_is_added_at_current_price(self, tracking, user, product, crawler, add_history):
        add_history(product, crawler, original_price=50, discount_price=38)

        result = tracking.track(user, "https://ozon.ru/product/phone-123")

        assert result.http_status == 201
        assert result.body["status"] == "product_added_to_user"
        assert result.body["product_id"] == str(product.id)
        assert UserProduct.objects.get(user=user, product=product).price == Decimal("38")
        assert ProductQueue.objects.count() == 0

    def test_known_product_without_history_is_added_at_zero(self, tracking, user, product):
        tracking.track(user, product.url)

        assert UserProduct.objects.get(user=user).price == 0

    def test_already_tracking(self, tracking, user, product):
        UserProduct.objects.create(user=user, product=product)

        result = tracking.track(user, product.url)

        assert result.http_status == 200
        assert result.body == messages.YOU_ARE_ALREADY_HAVE_THIS_PRODUCT
        assert UserProduct.objects.count() == 1

    def test_hold_product_becomes_active(self, tracking, user, make_product):
        product = make_product(status=ProductStatusChoices.HOLD)

        tracking.track(user, product.url)

        product.refresh_from_db()
        assert product.status == ProductStatusChoices.ACTIVE

    def test_in_stock_without_price_is_refused(self, tracking, user, product, crawler):
        from tracker.models import ProductHistory

        # Legacy rows may carry in_stock without prices
        ProductHistory.objects.create(product=product, crawler=crawler, status="ok", in_stock=True)

        with pytest.raises(InvalidValue) as exc_info:
            tracking.track(user, product.url)

        assert exc_info.value.body == messages.UNABLE_TO_ADD_PRODUCT_RIGHT_NOW
        assert UserProduct.objects.count() == 0

    def test_text_without_url(self, tracking, user):
        with pytest.raises(InvalidURL):
            tracking.track(user, "my favourite phone")


@pytest.mark.django_db
class TestUntrack:
    """Removing products from a user's list."""

    def test_untrack_removes_ownership_and_subscriptions(self, tracking, telegram_user, product):
        UserProduct.objects.create(user=telegram_user, product=product)
        ProductSubscription.objects.create(user=telegram_user, product=product, subscription_type=RESTOCK)

        tracking.untrack(telegram_user, product.id)

        assert UserProduct.objects.count() == 0
        assert ProductSubscription.objects.count() == 0
        product.refresh_from_db()
        assert product.status == ProductStatusChoices.HOLD

    def test_untrack_not_owned(self, tracking, user, product):
        with pytest.raises(NotFoundError) as exc_info:
            tracking.untrack(user, product.id)

        assert exc_info.value.body == messages.USER_DOES_NOT_HAVE_PRODUCT


@pytest.mark.django_db
class TestOverview:
    """Product state for an owner."""

    def test_overview(self, tracking, user, product, crawler, add_history):
        add_history(product, crawler, original_price=50, discount_price=38)
        add_history(product, crawler, status="skip", in_stock=False)
        UserProduct.objects.create(user=user, product=product, price=Decimal("45"))

        overview = tracking.overview(user, product.id)

        assert overview.state.last_price == Decimal("38")
        assert overview.state.my_benefit == Decimal("7")
        assert len(overview.history) == 1
        assert overview.subscriptions == []

    def test_overview_unknown_product(self, tracking, user):
        with pytest.raises(NotFoundError) as exc_info:
            tracking.overview(user, "0c5e6f5e-0000-4000-8000-000000000000")

        assert exc_info.value.body == messages.PRODUCT_DOES_NOT_EXIST


@pytest.mark.django_db
class TestSubscriptions:
    """Stock event subscriptions."""

    def test_subscribe(self, tracking, telegram_user, product):
        UserProduct.objects.create(user=telegram_user, product=product)

        subscription = tracking.subscribe(telegram_user, product.id, RESTOCK, {"source": "bot"})

        assert subscription.subscription_type == RESTOCK
        assert subscription.payload == {"source": "bot"}

    def test_missing_type(self, tracking, telegram_user, product):
        with pytest.raises(ValidationError) as exc_info:
            tracking.subscribe(telegram_user, product.id, None)

        assert exc_info.value.http_status == 400

    def test_invalid_type(self, tracking, telegram_user, product):
        with pytest.raises(InvalidValue) as exc_info:
            tracking.subscribe(telegram_user, product.id, "on_price_drop")

        assert exc_info.value.body == messages.SUBSCRIPTION_TYPE_IS_NOT_VALID

    def test_requires_ownership(self, tracking, telegram_user, product):
        with pytest.raises(NotFoundError) as exc_info:
            tracking.subscribe(telegram_user, product.id, RESTOCK)

        assert exc_info.value.body == messages.USER_DOES_NOT_HAVE_PRODUCT

    def test_requires_telegram(self, tracking, user, product):
        UserProduct.objects.create(user=user, product=product)

        with pytest.raises(InvalidValue) as exc_info:
            tracking.subscribe(user, product.id, RESTOCK)

        assert exc_info.value.body == messages.USER_DOES_NOT_HAVE_LINKED_TELEGRAM_ACCOUNT

    def test_duplicate_is_rejected(self, tracking, telegram_user, product):
        UserProduct.objects.create(user=telegram_user, product=product)
        tracking.subscribe(telegram_user, product.id, RESTOCK)

        with pytest.raises(InvalidValue) as exc_info:
            tracking.subscribe(telegram_user, product.id, RESTOCK)

        assert exc_info.value.body == messages.USER_ALREADY_SUBSCRIBED_TO_SUBSCRIPTION_TYPE
        assert ProductSubscription.objects.count() == 1

    def test_unsubscribe(self, tracking, telegram_user, product):
        UserProduct.objects.create(user=telegram_user, product=product)
        subscription = tracking.subscribe(telegram_user, product.id, RESTOCK)

        tracking.unsubscribe(telegram_user, product.id, subscription.id)

        assert ProductSubscription.objects.count() == 0

    def test_unsubscribe_someone_elses_subscription(self, tracking, telegram_user, user, product):
        UserProduct.objects.create(user=telegram_user, product=product)
        subscription = tracking.subscribe(telegram_user, product.id, RESTOCK)

        with pytest.raises(NotFoundError):
            tracking.unsubscribe(user, product.id, subscription.id)

        assert ProductSubscription.objects.count() == 1

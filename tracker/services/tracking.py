"""
Product tracking - what users do with products.

A user pastes a link; when the product is already known an ownership is
created on the spot, otherwise the URL goes to the crawl queue and the
ownership is created by ingestion once a crawler reports the page.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tracker import messages
from tracker.errors import InvalidValue, NotFoundError, ValidationError
from tracker.models import (
    HistoryStatusChoices,
    Product,
    ProductQueue,
    ProductSubscription,
    SubscriptionTypeChoices,
    UserProduct,
)
from tracker.services.price_resolver import PriceResolver, ProductState, resolve_price
from tracker.services.product_queue import ProductQueueCoordinator
from tracker.services.url_canonicalizer import detect_url
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)


@dataclass
class TrackResult:
    http_status: int
    body: Dict[str, Any]
    product: Optional[Product] = None
    ownership: Optional[UserProduct] = None
    queue_entry: Optional[ProductQueue] = None


@dataclass
class ProductOverview:
    ownership: UserProduct
    state: ProductState
    history: List[Dict[str, Any]]
    subscriptions: List[ProductSubscription]


class TrackingService:
    """
    Track, untrack and subscribe operations of a user.

    Args:
        store: Persistence handle
        queue: Queue coordinator, built on ``store`` when omitted
        resolver: Price resolver, built on ``store`` when omitted
    """

    def __init__(
        self,
        store: TrackerStore,
        queue: Optional[ProductQueueCoordinator] = None,
        resolver: Optional[PriceResolver] = None,
    ):
        self.store = store
        self.queue = queue or ProductQueueCoordinator(store)
        self.resolver = resolver or PriceResolver(store)

    def _get_product(self, product_id) -> Product:
        product = self.store.get_product(product_id)
        if product is None:
            raise NotFoundError(messages.PRODUCT_DOES_NOT_EXIST)
        return product

    def _get_ownership(self, user, product: Product) -> UserProduct:
        ownership = self.store.get_ownership(user, product)
        if ownership is None:
            raise NotFoundError(messages.USER_DOES_NOT_HAVE_PRODUCT)
        return ownership

    def track(self, user, text: str) -> TrackResult:
        """
        Start tracking the product whose link is somewhere in ``text``.

        Raises:
            InvalidURL, UnsupportedShop, NotASingleProductURL
            InvalidValue: The product is in stock but has no known price yet
        """
        url = detect_url(text)
        result = self.queue.enqueue(url, user)

        if isinstance(result, ProductQueue):
            return TrackResult(201, dict(messages.PRODUCT_ADDED_TO_QUEUE), queue_entry=result)

        product = result
        if self.store.get_ownership(user, product) is not None:
            return TrackResult(200, dict(messages.YOU_ARE_ALREADY_HAVE_THIS_PRODUCT), product=product)

        latest = self.store.latest_history(product)
        if (
            latest is not None
            and latest.status == HistoryStatusChoices.OK
            and latest.in_stock
            and resolve_price(latest.original_price, latest.discount_price) == 0
        ):
            raise InvalidValue(messages.UNABLE_TO_ADD_PRODUCT_RIGHT_NOW)

        price = self.resolver.current_price(product)
        with self.store.atomic():
            ownership, _ = self.store.create_ownership(user, product, price=price)

        logger.info(f"User {user.pk} started tracking product {product.id} at {price}")
        body = dict(messages.PRODUCT_ADDED_TO_USER)
        body["product_id"] = str(product.id)
        return TrackResult(201, body, product=product, ownership=ownership)

    def untrack(self, user, product_id) -> None:
        """Stop tracking a product and drop the user's subscriptions to it."""
        product = self._get_product(product_id)
        ownership = self._get_ownership(user, product)

        with self.store.atomic():
            self.store.delete_subscriptions(user, product)
            self.store.delete_ownership(ownership)

        logger.info(f"User {user.pk} stopped tracking product {product.id}")

    def overview(self, user, product_id, limit: Optional[int] = None) -> ProductOverview:
        """Product state, recent history and subscriptions for an owner."""
        product = self._get_product(product_id)
        ownership = self._get_ownership(user, product)
        return ProductOverview(
            ownership=ownership,
            state=self.resolver.product_state(ownership),
            history=self.resolver.recent_history(product, limit),
            subscriptions=self.store.list_subscriptions(user, product),
        )

    def subscribe(
        self,
        user,
        product_id,
        subscription_type: Optional[str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> ProductSubscription:
        """
        Subscribe an owner to a stock event of a product.

        Raises:
            ValidationError: Missing subscription type
            InvalidValue: Unknown type, no Telegram account, already subscribed
            NotFoundError: Unknown product or the user does not track it
        """
        if not subscription_type:
            raise ValidationError(messages.MISSING_SUBSCRIPTION_TYPE)
        if subscription_type not in SubscriptionTypeChoices.values:
            raise InvalidValue(messages.SUBSCRIPTION_TYPE_IS_NOT_VALID)

        product = self._get_product(product_id)
        self._get_ownership(user, product)

        if not self.store.has_telegram_account(user):
            raise InvalidValue(messages.USER_DOES_NOT_HAVE_LINKED_TELEGRAM_ACCOUNT)
        if self.store.get_subscription_by_type(user, product, subscription_type) is not None:
            raise InvalidValue(messages.USER_ALREADY_SUBSCRIBED_TO_SUBSCRIPTION_TYPE)

        subscription = self.store.create_subscription(
            user,
            product,
            subscription_type,
            payload if isinstance(payload, dict) else {},
        )
        logger.info(f"User {user.pk} subscribed to {subscription_type} of product {product.id}")
        return subscription

    def unsubscribe(self, user, product_id, subscription_id) -> None:
        product = self._get_product(product_id)
        subscription = self.store.get_subscription(user, product, subscription_id)
        if subscription is None:
            raise NotFoundError(messages.PRODUCT_SUBSCRIPTION_DOES_NOT_EXIST)
        self.store.delete_subscription(subscription)

"""
Persistence handle of the tracker.

All database access of the services goes through a ``TrackerStore``
instance which the caller constructs and passes in. The store is bound to
a database alias, owns transaction boundaries and converts low level
database failures into tracker errors:
- A url_hash collision on product creation becomes ``IdentityConflict``
- Any other ``DatabaseError`` becomes ``StoreUnavailable``
"""

import functools
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from django.contrib.auth import get_user_model
from django.core import exceptions as django_exceptions
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Max, Min, Q

from tracker import messages
from tracker.errors import IdentityConflict, StoreUnavailable, ValidationError
from tracker.models import (
    Crawler,
    HistoryStatusChoices,
    Product,
    ProductHistory,
    ProductQueue,
    ProductStatusChoices,
    ProductSubscription,
    TelegramAccount,
    TelegramMessage,
    UserProduct,
)

logger = logging.getLogger(__name__)


def _guarded(method):
    """Translate unexpected database failures into StoreUnavailable."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (IdentityConflict, StoreUnavailable):
            raise
        except DatabaseError as e:
            logger.error(f"Store operation {method.__name__} failed: {e}")
            raise StoreUnavailable() from e

    return wrapper


class TrackerStore:
    """
    Repository over the tracker models bound to one database alias.

    Args:
        using: Django database alias all queries run against
    """

    def __init__(self, using: str = "default"):
        self.using = using

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def atomic(self):
        """Open a transaction (or a savepoint when already inside one)."""
        return transaction.atomic(using=self.using)

    def on_commit(self, func: Callable[[], None]) -> None:
        """Run ``func`` once the current transaction commits."""
        transaction.on_commit(func, using=self.using)

    # ------------------------------------------------------------------
    # Crawlers and users
    # ------------------------------------------------------------------

    @_guarded
    def get_crawler_by_token(self, token) -> Optional[Crawler]:
        return Crawler.objects.using(self.using).filter(token=token, is_active=True).first()

    @_guarded
    def get_user(self, user_id):
        """Look up a user by primary key. A malformed key is a ValidationError."""
        User = get_user_model()
        if isinstance(user_id, bool):
            raise ValidationError(messages.INVALID_USER_ID)
        try:
            user_id = User._meta.pk.to_python(user_id)
        except django_exceptions.ValidationError:
            raise ValidationError(messages.INVALID_USER_ID)
        return User.objects.using(self.using).filter(pk=user_id).first()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @_guarded
    def get_product(self, product_id) -> Optional[Product]:
        return Product.objects.using(self.using).filter(pk=product_id).first()

    @_guarded
    def get_product_by_hash(self, url_hash: str) -> Optional[Product]:
        return Product.objects.using(self.using).filter(url_hash=url_hash).first()

    @_guarded
    def create_product(self, url_hash: str, shop: str, url: str, title: str = "") -> Product:
        """
        Create a product, failing with IdentityConflict if the hash is taken.

        The insert runs in a savepoint so the caller's transaction stays
        usable after a lost race.
        """
        try:
            with transaction.atomic(using=self.using):
                return Product.objects.using(self.using).create(
                    url_hash=url_hash,
                    shop=shop,
                    url=url,
                    title=title,
                )
        except IntegrityError:
            raise IdentityConflict(url_hash)

    @_guarded
    def set_product_status(self, product: Product, status: str) -> bool:
        """Set the lifecycle status. Returns False when nothing changed."""
        updated = (
            Product.objects.using(self.using)
            .filter(pk=product.pk)
            .exclude(status=status)
            .update(status=status)
        )
        product.status = status
        return updated > 0

    @_guarded
    def outdated_products(self, older_than: datetime, limit: int) -> List[Product]:
        """
        Active products whose latest history record is older than ``older_than``.

        Products without any history are ordered first.
        """
        queryset = (
            Product.objects.using(self.using)
            .filter(status=ProductStatusChoices.ACTIVE)
            .annotate(last_crawled_at=Max("history__created_at"))
            .filter(Q(last_crawled_at__lt=older_than) | Q(last_crawled_at__isnull=True))
            .order_by(F("last_crawled_at").asc(nulls_first=True), "created_at")
        )
        return list(queryset[:limit])

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _history(self, product: Product):
        return ProductHistory.objects.using(self.using).filter(product=product)

    @_guarded
    def add_history(
        self,
        product: Product,
        crawler: Crawler,
        status: str,
        in_stock: bool = False,
        original_price: Optional[Decimal] = None,
        discount_price: Optional[Decimal] = None,
        title: Optional[str] = None,
    ) -> ProductHistory:
        return ProductHistory.objects.using(self.using).create(
            product=product,
            crawler=crawler,
            status=status,
            in_stock=in_stock,
            original_price=original_price,
            discount_price=discount_price,
            title=title,
        )

    @_guarded
    def latest_history(
        self,
        product: Product,
        statuses: Optional[Iterable[str]] = None,
    ) -> Optional[ProductHistory]:
        queryset = self._history(product)
        if statuses is not None:
            queryset = queryset.filter(status__in=list(statuses))
        return queryset.order_by("-created_at", "-id").first()

    @_guarded
    def recent_history(
        self,
        product: Product,
        statuses: Iterable[str],
        limit: int,
    ) -> List[ProductHistory]:
        return list(
            self._history(product)
            .filter(status__in=list(statuses))
            .order_by("-created_at", "-id")[:limit]
        )

    @_guarded
    def has_history(self, product: Product) -> bool:
        return self._history(product).exists()

    @_guarded
    def was_ever_in_stock(self, product: Product) -> bool:
        return self._history(product).filter(status=HistoryStatusChoices.OK, in_stock=True).exists()

    @_guarded
    def price_extremes(self, product: Product) -> Dict[str, Optional[Decimal]]:
        """Min and max of both prices over ``ok`` records."""
        return self._history(product).filter(status=HistoryStatusChoices.OK).aggregate(
            min_discount_price=Min("discount_price"),
            min_original_price=Min("original_price"),
            max_discount_price=Max("discount_price"),
            max_original_price=Max("original_price"),
        )

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    @_guarded
    def get_or_create_queue_entry(
        self,
        url: str,
        url_hash: str,
        shop: str,
        requested_by,
    ) -> Tuple[ProductQueue, bool]:
        """
        Idempotently create a queue entry.

        A concurrent insert of the same triple loses on the unique
        constraint and returns the winner's row.
        """
        lookup = {"url": url, "url_hash": url_hash, "requested_by": requested_by}
        queryset = ProductQueue.objects.using(self.using)
        try:
            with transaction.atomic(using=self.using):
                return queryset.get_or_create(**lookup, defaults={"shop": shop})
        except IntegrityError:
            return queryset.get(**lookup), False

    @_guarded
    def find_queue_entry(self, url: str, url_hash: str, requested_by) -> Optional[ProductQueue]:
        return (
            ProductQueue.objects.using(self.using)
            .filter(url=url, url_hash=url_hash, requested_by=requested_by)
            .first()
        )

    @_guarded
    def queue_entries_for(self, crawler: Crawler) -> List[ProductQueue]:
        return list(
            ProductQueue.objects.using(self.using)
            .exclude(skip_for_crawler=crawler)
            .order_by("url", "id")
        )

    @_guarded
    def mark_queue_skipped(self, url_hash: str, crawler: Crawler) -> int:
        return (
            ProductQueue.objects.using(self.using)
            .filter(url_hash=url_hash)
            .update(skip_for_crawler=crawler)
        )

    @_guarded
    def delete_queue_entries(self, url_hash: str) -> int:
        deleted, _ = ProductQueue.objects.using(self.using).filter(url_hash=url_hash).delete()
        return deleted

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    @_guarded
    def get_ownership(self, user, product: Product) -> Optional[UserProduct]:
        return UserProduct.objects.using(self.using).filter(user=user, product=product).first()

    @_guarded
    def create_ownership(self, user, product: Product, price: Decimal) -> Tuple[UserProduct, bool]:
        """Create the (user, product) ownership unless it already exists."""
        queryset = UserProduct.objects.using(self.using)
        try:
            with transaction.atomic(using=self.using):
                return queryset.get_or_create(user=user, product=product, defaults={"price": price})
        except IntegrityError:
            return queryset.get(user=user, product=product), False

    @_guarded
    def delete_ownership(self, ownership: UserProduct) -> None:
        ownership.delete(using=self.using)

    @_guarded
    def has_owners(self, product: Product) -> bool:
        return UserProduct.objects.using(self.using).filter(product=product).exists()

    @_guarded
    def backfill_zero_prices(self, product: Product, price: Decimal) -> int:
        return (
            UserProduct.objects.using(self.using)
            .filter(product=product, price=0)
            .update(price=price)
        )

    # ------------------------------------------------------------------
    # Subscriptions and notification recipients
    # ------------------------------------------------------------------

    @_guarded
    def telegram_linked_owners(
        self,
        product: Product,
        subscription_type: Optional[str] = None,
    ) -> List[Tuple[object, str]]:
        """
        Owners of ``product`` with a linked Telegram account.

        When ``subscription_type`` is given, only owners subscribed to it
        are returned.

        Returns:
            List of (user, telegram account) pairs
        """
        ownerships = (
            UserProduct.objects.using(self.using)
            .filter(product=product)
            .exclude(user__telegram_account__isnull=True)
            .exclude(user__telegram_account__account="")
            .select_related("user__telegram_account")
            .order_by("created_at", "id")
        )
        if subscription_type is not None:
            subscribed = ProductSubscription.objects.using(self.using).filter(
                product=product,
                subscription_type=subscription_type,
            ).values("user_id")
            ownerships = ownerships.filter(user_id__in=subscribed)

        return [(o.user, o.user.telegram_account.account) for o in ownerships]

    @_guarded
    def has_telegram_account(self, user) -> bool:
        return (
            TelegramAccount.objects.using(self.using)
            .filter(user=user)
            .exclude(account="")
            .exists()
        )

    @_guarded
    def get_subscription(self, user, product: Product, subscription_id) -> Optional[ProductSubscription]:
        return (
            ProductSubscription.objects.using(self.using)
            .filter(pk=subscription_id, user=user, product=product)
            .first()
        )

    @_guarded
    def get_subscription_by_type(self, user, product: Product, subscription_type: str):
        return (
            ProductSubscription.objects.using(self.using)
            .filter(user=user, product=product, subscription_type=subscription_type)
            .first()
        )

    @_guarded
    def list_subscriptions(self, user, product: Product) -> List[ProductSubscription]:
        return list(
            ProductSubscription.objects.using(self.using)
            .filter(user=user, product=product)
            .order_by("created_at")
        )

    @_guarded
    def create_subscription(self, user, product: Product, subscription_type: str, payload: dict):
        return ProductSubscription.objects.using(self.using).create(
            user=user,
            product=product,
            subscription_type=subscription_type,
            payload=payload,
        )

    @_guarded
    def delete_subscription(self, subscription: ProductSubscription) -> None:
        subscription.delete(using=self.using)

    @_guarded
    def delete_subscriptions(self, user, product: Product) -> int:
        deleted, _ = (
            ProductSubscription.objects.using(self.using)
            .filter(user=user, product=product)
            .delete()
        )
        return deleted

    # ------------------------------------------------------------------
    # Notification outbox
    # ------------------------------------------------------------------

    @_guarded
    def create_telegram_message(
        self,
        user,
        product: Product,
        event: str,
        recipient: str,
        message: str,
    ) -> TelegramMessage:
        return TelegramMessage.objects.using(self.using).create(
            user=user,
            product=product,
            event=event,
            recipient=recipient,
            message=message,
        )

    @_guarded
    def get_telegram_message(self, record_id) -> Optional[TelegramMessage]:
        return (
            TelegramMessage.objects.using(self.using)
            .select_related("product")
            .filter(pk=record_id)
            .first()
        )

    @_guarded
    def save_telegram_message(self, record: TelegramMessage, fields: List[str]) -> None:
        record.save(using=self.using, update_fields=fields)

"""
Price Resolver - current, lowest and highest price and stock summaries.

Everything here is derived from the append-only product history:
- Only ``ok`` records carry a price signal
- ``skip`` records are crawler noise and never shown to users
- The resolved price of a record is the lower of its two prices
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings

from tracker.models import (
    PRICE_SIGNAL_STATUSES,
    HistoryStatusChoices,
    Product,
    UserProduct,
)
from tracker.store import TrackerStore

ZERO = Decimal("0")


def resolve_price(
    original_price: Optional[Decimal],
    discount_price: Optional[Decimal],
) -> Decimal:
    """
    Resolve the price a buyer would pay.

    The lower of both prices when both are known, the known one otherwise,
    zero when neither is known.
    """
    if original_price and discount_price:
        return min(original_price, discount_price)
    if discount_price:
        return discount_price
    if original_price:
        return original_price
    return ZERO


@dataclass
class StockSummary:
    """Pre-update stock state of a product used by notifications."""

    has_history: bool
    has_users: bool
    was_in_stock: bool
    recent_in_stock: bool

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass
class ProductState:
    """Owner-facing summary of a product."""

    last_price: Decimal
    in_stock: bool
    price_updated_at: Optional[datetime]
    lowest_price_ever: Decimal
    highest_price_ever: Decimal
    my_price: Decimal
    my_benefit: Decimal
    has_discount: bool


class PriceResolver:
    """
    Derives prices and stock summaries from product history.

    Args:
        store: Persistence handle
    """

    def __init__(self, store: TrackerStore):
        self.store = store

    def latest_ok(self, product: Product):
        return self.store.latest_history(product, statuses=[HistoryStatusChoices.OK])

    def current_price(self, product: Product) -> Decimal:
        """Resolved price of the most recent ``ok`` record, zero if none."""
        record = self.latest_ok(product)
        if record is None:
            return ZERO
        return resolve_price(record.original_price, record.discount_price)

    def recent_history(self, product: Product, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Most recent records carrying a price signal, newest first.

        Args:
            product: Product to read
            limit: Number of records, TRACKER_RECENT_HISTORY_LIMIT by default

        Returns:
            List of dicts with original_price, discount_price, in_stock,
            status and created_at
        """
        if limit is None:
            limit = settings.TRACKER_RECENT_HISTORY_LIMIT

        records = self.store.recent_history(product, PRICE_SIGNAL_STATUSES, limit)
        return [
            {
                "original_price": record.original_price,
                "discount_price": record.discount_price,
                "in_stock": record.in_stock,
                "status": record.status,
                "created_at": record.created_at,
            }
            for record in records
        ]

    def ownership_and_stock_summary(self, product: Product) -> StockSummary:
        latest = self.latest_ok(product)
        return StockSummary(
            has_history=self.store.has_history(product),
            has_users=self.store.has_owners(product),
            was_in_stock=self.store.was_ever_in_stock(product),
            recent_in_stock=bool(latest and latest.in_stock),
        )

    def lowest_price(self, product: Product) -> Decimal:
        """Lowest discount price ever seen, falling back to original prices."""
        extremes = self.store.price_extremes(product)
        return extremes["min_discount_price"] or extremes["min_original_price"] or ZERO

    def highest_price(self, product: Product) -> Decimal:
        """Highest original price ever seen, falling back to discount prices."""
        extremes = self.store.price_extremes(product)
        return extremes["max_original_price"] or extremes["max_discount_price"] or ZERO

    def product_state(self, ownership: UserProduct) -> ProductState:
        """
        Summarise a product for one of its owners.

        ``my_benefit`` is how much cheaper the product is now compared to
        the price the owner started tracking at; zero while either price
        is unknown.
        """
        product = ownership.product
        latest = self.latest_ok(product)

        if latest is None:
            last_price = ZERO
            in_stock = False
            price_updated_at = None
            has_discount = False
        else:
            last_price = resolve_price(latest.original_price, latest.discount_price)
            in_stock = latest.in_stock
            price_updated_at = latest.created_at
            has_discount = bool(
                latest.original_price
                and latest.discount_price
                and latest.discount_price < latest.original_price
            )

        my_benefit = ZERO
        if ownership.price and last_price:
            my_benefit = ownership.price - last_price

        return ProductState(
            last_price=last_price,
            in_stock=in_stock,
            price_updated_at=price_updated_at,
            lowest_price_ever=self.lowest_price(product),
            highest_price_ever=self.highest_price(product),
            my_price=ownership.price,
            my_benefit=my_benefit,
            has_discount=has_discount,
        )

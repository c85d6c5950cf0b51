"""
Stock Transition Notifier.

Compares the stock summary taken before an ``ok`` report is stored with
the incoming ``in_stock`` value:

    never in stock        -> in stock   : first time in stock, all owners
    out of stock (again)  -> in stock   : back in stock, subscribed owners
    anything else                       : nothing

Only owners with a linked Telegram account are notified. For every
recipient a TelegramMessage outbox row is written in the caller's
transaction; delivery is handed to Celery after the transaction commits
and is attempted exactly once.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional

from django.conf import settings

from tracker.models import (
    NotificationEventChoices,
    Product,
    SubscriptionTypeChoices,
    TelegramMessage,
)
from tracker.services.price_resolver import StockSummary
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)

FIRST_TIME_IN_STOCK_TEMPLATE = (
    "First time in stock! Product [{title}]({url}) you are tracking is available.\n\n"
    "Current price: {price}.\n"
    "[Open product page]({product_page})."
)

BACK_IN_STOCK_TEMPLATE = (
    "Back in stock! Product [{title}]({url}) you are tracking is available again.\n\n"
    "Current price: {price}.\n"
    "[Open product page]({product_page})."
)

TEMPLATES = {
    NotificationEventChoices.FIRST_TIME_IN_STOCK: FIRST_TIME_IN_STOCK_TEMPLATE,
    NotificationEventChoices.BACK_IN_STOCK: BACK_IN_STOCK_TEMPLATE,
}

MARKDOWN_SPECIAL_CHARACTERS = "_*[]`"


def format_price(price: Decimal) -> str:
    """Render a price without trailing zeros: 38.00 -> 38, 38.50 -> 38.5."""
    return f"{Decimal(price).normalize():f}"


def _escape_markdown(text: str) -> str:
    for character in MARKDOWN_SPECIAL_CHARACTERS:
        text = text.replace(character, f"\\{character}")
    return text


def render_message(event: str, product: Product, price: Decimal, title: Optional[str] = None) -> str:
    """Render the Telegram message of ``event`` for ``product``."""
    base_url = settings.SERVICE_PRODUCTS_URL.rstrip("/")
    return TEMPLATES[event].format(
        title=_escape_markdown(title or product.title or product.url),
        url=product.url,
        price=format_price(price),
        product_page=f"{base_url}/{product.id}",
    )


def enqueue_delivery(record_id: str) -> None:
    """Hand an outbox record to the Celery delivery task."""
    from tracker.tasks import deliver_notification

    try:
        deliver_notification.delay(record_id)
    except Exception as e:
        # Broker outages must not fail ingestion; the record stays pending
        logger.warning(f"Unable to enqueue delivery of notification {record_id}: {e}")


@dataclass
class NotificationOutcome:
    """What a single evaluation produced."""

    event: Optional[str] = None
    records: List[TelegramMessage] = field(default_factory=list)
    backfilled_owners: int = 0


class StockNotifier:
    """
    Detects stock transitions and writes owner notifications.

    Args:
        store: Persistence handle
        dispatch: Called with the id of every new outbox record once the
            surrounding transaction commits
    """

    def __init__(
        self,
        store: TrackerStore,
        dispatch: Callable[[str], None] = enqueue_delivery,
    ):
        self.store = store
        self.dispatch = dispatch

    @staticmethod
    def detect_event(summary: StockSummary, in_stock: bool) -> Optional[str]:
        """Return the transition event for an incoming ``in_stock`` value."""
        if not in_stock:
            return None
        if not summary.was_in_stock:
            return NotificationEventChoices.FIRST_TIME_IN_STOCK
        if not summary.recent_in_stock:
            return NotificationEventChoices.BACK_IN_STOCK
        return None

    def evaluate(
        self,
        product: Product,
        summary: StockSummary,
        in_stock: bool,
        price: Decimal,
        title: Optional[str] = None,
    ) -> NotificationOutcome:
        """
        Write notifications for the transition ``summary`` -> ``in_stock``.

        Must run inside the ingestion transaction, before the new history
        record is stored.

        Args:
            product: Product the report is about
            summary: Stock summary taken before the report is stored
            in_stock: Incoming stock flag
            price: Resolved price of the incoming report
            title: Incoming title, used when the product has none yet

        Returns:
            NotificationOutcome with the persisted records
        """
        event = self.detect_event(summary, in_stock)
        if event is None:
            return NotificationOutcome()

        outcome = NotificationOutcome(event=event)

        if event == NotificationEventChoices.FIRST_TIME_IN_STOCK:
            recipients = self.store.telegram_linked_owners(product)
            outcome.backfilled_owners = self.store.backfill_zero_prices(product, price)
        else:
            recipients = self.store.telegram_linked_owners(
                product,
                subscription_type=SubscriptionTypeChoices.ON_CHANGE_STATUS_TO_IN_STOCK,
            )

        message = render_message(event, product, price, title=title)
        for user, account in recipients:
            record = self.store.create_telegram_message(
                user=user,
                product=product,
                event=event,
                recipient=account,
                message=message,
            )
            outcome.records.append(record)
            self.store.on_commit(lambda record_id=str(record.id): self.dispatch(record_id))

        logger.info(
            f"Product {product.id} {event}: {len(outcome.records)} notifications, "
            f"{outcome.backfilled_owners} prices backfilled"
        )
        return outcome

"""
Crawl Result Ingestor - the product/history state machine.

Two entry points:
- ``report_result``: a crawler re-checked a known product
- ``report_new_product``: a crawler processed a queue entry, the product
  may not exist yet

Every call validates its whole input first (payload, identity fields,
referenced rows) and only then opens one transaction for all writes. A
rejected call leaves the database untouched.

Transitions:

    status                        existing product           queue entry
    ----------------------------  -------------------------  ---------------------------
    skip                          200, nothing               200, nothing (Sentry note)
    required_to_change_location   200, nothing               200, skip for this crawler
    not_found / age_restriction   201, null-price history,   200, queue resolved,
                                  queue resolved             no product
    ok                            201, history,              201, product + history +
                                  notifications              ownership, queue resolved
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from tracker import messages
from tracker.errors import IdentityConflict, NotFoundError, UnsupportedShop, ValidationError
from tracker.models import Crawler, Product, ProductHistory
from tracker.monitoring.sentry_integration import capture_crawler_message
from tracker.services.crawl_reports import (
    ChangeLocationReport,
    OkReport,
    SkipReport,
    UnavailableReport,
    parse_report,
)
from tracker.services.price_resolver import PriceResolver
from tracker.services.product_queue import ProductQueueCoordinator
from tracker.services.stock_notifier import NotificationOutcome, StockNotifier
from tracker.shops import get_shop
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)

# Identity of a queue entry, sent alongside the report fields
QUEUE_IDENTITY_FIELDS = (
    ("requested_by", messages.MISSING_REQUESTED_BY),
    ("url_hash", messages.MISSING_URL_HASH),
    ("shop", messages.MISSING_SHOP),
    ("url", messages.MISSING_URL),
)


@dataclass
class IngestionResult:
    """Outcome of one crawler report."""

    http_status: int
    body: Dict[str, Any]
    product: Optional[Product] = None
    history: Optional[ProductHistory] = None
    notifications: Optional[NotificationOutcome] = None


def _body(message: Dict[str, str], product: Optional[Product] = None) -> Dict[str, Any]:
    body = dict(message)
    if product is not None:
        body["product_id"] = str(product.id)
    return body


class CrawlResultIngestor:
    """
    Validates crawler reports and applies them to products, history,
    queue and ownerships.

    Args:
        store: Persistence handle shared by all collaborators
        queue: Queue coordinator, built on ``store`` when omitted
        resolver: Price resolver, built on ``store`` when omitted
        notifier: Stock notifier, built on ``store`` when omitted
    """

    def __init__(
        self,
        store: TrackerStore,
        queue: Optional[ProductQueueCoordinator] = None,
        resolver: Optional[PriceResolver] = None,
        notifier: Optional[StockNotifier] = None,
    ):
        self.store = store
        self.queue = queue or ProductQueueCoordinator(store)
        self.resolver = resolver or PriceResolver(store)
        self.notifier = notifier or StockNotifier(store)

    # ------------------------------------------------------------------
    # Existing product
    # ------------------------------------------------------------------

    def report_result(self, crawler: Crawler, product_id, payload: Mapping[str, Any]) -> IngestionResult:
        """
        Apply a report about an existing product.

        Raises:
            NotFoundError: Unknown product
            ValidationError: Invalid payload
        """
        product = self.store.get_product(product_id)
        if product is None:
            raise NotFoundError(messages.PRODUCT_DOES_NOT_EXIST)

        report = parse_report(payload)

        if isinstance(report, SkipReport):
            logger.warning(f"Crawler {crawler.name} skipped product {product.id}")
            return IngestionResult(200, _body(messages.REPORT_ACCEPTED, product), product=product)

        if isinstance(report, ChangeLocationReport):
            logger.warning(f"Crawler {crawler.name} cannot serve product {product.id} from its location")
            return IngestionResult(200, _body(messages.REPORT_ACCEPTED, product), product=product)

        with self.store.atomic():
            if isinstance(report, UnavailableReport):
                history = self._write_unavailable(product, crawler, report)
                notifications = None
            else:
                history, notifications = self._write_ok(product, crawler, report)
            self.queue.resolve(product.url_hash)

        logger.info(f"Crawler {crawler.name} reported {report.status} for product {product.id}")
        return IngestionResult(
            201,
            _body(messages.PRODUCT_HISTORY_CREATED, product),
            product=product,
            history=history,
            notifications=notifications,
        )

    # ------------------------------------------------------------------
    # Queue entry
    # ------------------------------------------------------------------

    def report_new_product(self, crawler: Crawler, payload: Mapping[str, Any]) -> IngestionResult:
        """
        Apply a report about a queued URL.

        The payload carries the queue identity (requested_by, url_hash,
        shop, url) next to the report fields.

        Raises:
            ValidationError: Missing identity field, malformed requester id or
                invalid report
            UnsupportedShop: Unknown shop name
            NotFoundError: Unknown requester, or neither a queue entry nor
                a product exists for the identity
        """
        if not isinstance(payload, Mapping):
            raise ValidationError(messages.MISSING_REQUESTED_BY)

        fields = dict(payload)
        identity = {}
        for name, missing in QUEUE_IDENTITY_FIELDS:
            value = fields.pop(name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(missing)
            identity[name] = value

        report = parse_report(fields)

        if get_shop(identity["shop"]) is None:
            raise UnsupportedShop()

        requester = self.store.get_user(identity["requested_by"])
        if requester is None:
            raise NotFoundError(messages.USER_DOES_NOT_EXIST)

        url_hash = identity["url_hash"]
        product = self.store.get_product_by_hash(url_hash)
        entry = self.queue.find_entry(identity["url"], url_hash, requester)
        if product is None and entry is None:
            raise NotFoundError(messages.PRODUCT_QUEUE_DOES_NOT_EXIST)

        if isinstance(report, SkipReport):
            logger.warning(f"Crawler {crawler.name} skipped new product {identity['url']}")
            capture_crawler_message(
                "New product skipped, another crawler has to process it",
                section="ingestion.report_new_product",
                crawler=crawler,
                extra={"url": identity["url"], "url_hash": url_hash},
            )
            return IngestionResult(200, _body(messages.REPORT_ACCEPTED, product), product=product)

        if isinstance(report, ChangeLocationReport):
            self.queue.skip_for_crawler(url_hash, crawler)
            capture_crawler_message(
                "New product requires another crawler location",
                section="ingestion.report_new_product",
                crawler=crawler,
                extra={"url": identity["url"], "url_hash": url_hash},
            )
            return IngestionResult(
                200,
                _body(messages.PRODUCT_MOVED_TO_CHANGE_LOCATION, product),
                product=product,
            )

        if isinstance(report, UnavailableReport):
            return self._new_product_unavailable(crawler, product, url_hash, report)

        return self._new_product_ok(crawler, product, identity, requester, report)

    def _new_product_unavailable(
        self,
        crawler: Crawler,
        product: Optional[Product],
        url_hash: str,
        report: UnavailableReport,
    ) -> IngestionResult:
        history = None
        with self.store.atomic():
            if product is not None:
                history = self._write_unavailable(product, crawler, report)
            self.queue.resolve(url_hash)

        logger.info(f"Crawler {crawler.name} reported {report.status} for queued {url_hash}")
        if product is not None:
            return IngestionResult(
                200,
                _body(messages.PRODUCT_ALREADY_EXISTS, product),
                product=product,
                history=history,
            )
        return IngestionResult(200, _body(messages.PRODUCT_REMOVED_FROM_QUEUE))

    def _new_product_ok(
        self,
        crawler: Crawler,
        product: Optional[Product],
        identity: Dict[str, Any],
        requester,
        report: OkReport,
    ) -> IngestionResult:
        created = False
        url_hash = identity["url_hash"]

        with self.store.atomic():
            if product is None:
                try:
                    product = self.store.create_product(
                        url_hash=url_hash,
                        shop=identity["shop"],
                        url=identity["url"],
                        title=report.title,
                    )
                    created = True
                except IdentityConflict:
                    logger.info(f"Product {url_hash} created concurrently, using the existing row")
                    product = self.store.get_product_by_hash(url_hash)

            history, notifications = self._write_ok(product, crawler, report)
            self.store.create_ownership(requester, product, price=report.price)
            self.queue.resolve(url_hash)

        if created:
            logger.info(f"Crawler {crawler.name} created product {product.id} ({product.url})")
            return IngestionResult(
                201,
                _body(messages.PRODUCT_CREATED, product),
                product=product,
                history=history,
                notifications=notifications,
            )

        return IngestionResult(
            200,
            _body(messages.PRODUCT_ALREADY_EXISTS, product),
            product=product,
            history=history,
            notifications=notifications,
        )

    # ------------------------------------------------------------------
    # Writes, always called inside a transaction
    # ------------------------------------------------------------------

    def _write_unavailable(self, product: Product, crawler: Crawler, report: UnavailableReport) -> ProductHistory:
        return self.store.add_history(
            product=product,
            crawler=crawler,
            status=report.status,
            in_stock=False,
        )

    def _write_ok(self, product: Product, crawler: Crawler, report: OkReport):
        summary = self.resolver.ownership_and_stock_summary(product)
        notifications = self.notifier.evaluate(
            product,
            summary,
            in_stock=report.in_stock,
            price=report.price,
            title=report.title,
        )
        history = self.store.add_history(
            product=product,
            crawler=crawler,
            status=report.status,
            in_stock=report.in_stock,
            original_price=report.original_price,
            discount_price=report.discount_price,
            title=report.title,
        )
        return history, notifications

"""
Product Queue Coordinator.

Holds crawl requests for URLs that have no Product yet. Pulls are not
leased: every crawler gets every entry except the ones marked as skipped
for it, so the same URL may be crawled twice. Ingestion is idempotent on
url_hash, which makes that harmless.
"""

import logging
from typing import List, Optional, Union

from tracker.models import Crawler, Product, ProductQueue
from tracker.services.url_canonicalizer import canonicalize
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)


class ProductQueueCoordinator:
    """
    Idempotent enqueue, pull, per-crawler skip and resolution of queue entries.

    Args:
        store: Persistence handle
    """

    def __init__(self, store: TrackerStore):
        self.store = store

    def enqueue(self, url: str, requested_by) -> Union[Product, ProductQueue]:
        """
        Request a crawl of ``url`` on behalf of a user.

        Args:
            url: Raw product URL
            requested_by: User asking for the product

        Returns:
            The existing Product when one has the same identity hash,
            otherwise the (possibly pre-existing) queue entry

        Raises:
            InvalidURL, UnsupportedShop, NotASingleProductURL
        """
        canonical = canonicalize(url)

        product = self.store.get_product_by_hash(canonical.url_hash)
        if product is not None:
            return product

        entry, created = self.store.get_or_create_queue_entry(
            url=canonical.url,
            url_hash=canonical.url_hash,
            shop=canonical.shop,
            requested_by=requested_by,
        )
        if created:
            logger.info(f"Queued {canonical.url} for user {requested_by.pk}")
        return entry

    def pull(self, crawler: Crawler) -> List[ProductQueue]:
        """All entries not skipped for ``crawler``, ordered by URL."""
        return self.store.queue_entries_for(crawler)

    def find_entry(self, url: str, url_hash: str, requested_by) -> Optional[ProductQueue]:
        return self.store.find_queue_entry(url, url_hash, requested_by)

    def skip_for_crawler(self, url_hash: str, crawler: Crawler) -> int:
        """
        Hide all entries of ``url_hash`` from ``crawler`` without removing them.

        Returns:
            Number of entries marked
        """
        marked = self.store.mark_queue_skipped(url_hash, crawler)
        logger.info(f"Queue entries for {url_hash} skipped for crawler {crawler.name}: {marked}")
        return marked

    def resolve(self, url_hash: str) -> int:
        """
        Delete every entry of ``url_hash``, whichever user requested it.

        Returns:
            Number of entries deleted
        """
        deleted = self.store.delete_queue_entries(url_hash)
        if deleted:
            logger.debug(f"Resolved {deleted} queue entries for {url_hash}")
        return deleted

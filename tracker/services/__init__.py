"""
Tracker services.

Every service receives the TrackerStore it works with; callers build the
store (usually once per request or task) and pass it in:

    store = TrackerStore()
    ingestor = CrawlResultIngestor(store)
    ingestor.report_result(crawler, product_id, payload)
"""

from .ingestion import CrawlResultIngestor, IngestionResult
from .price_resolver import PriceResolver, resolve_price
from .product_lifecycle import ProductLifecycleManager
from .product_queue import ProductQueueCoordinator
from .stock_notifier import StockNotifier
from .tracking import TrackingService

__all__ = [
    "CrawlResultIngestor",
    "IngestionResult",
    "PriceResolver",
    "resolve_price",
    "ProductLifecycleManager",
    "ProductQueueCoordinator",
    "StockNotifier",
    "TrackingService",
]

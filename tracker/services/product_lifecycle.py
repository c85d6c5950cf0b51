"""
Product Lifecycle Manager.

Products nobody tracks are put on hold so crawlers stop spending requests
on them. The ownership hooks are wired to UserProduct signals in
``tracker/signals.py``.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from django.conf import settings
from django.utils import timezone

from tracker.models import Product, ProductStatusChoices
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)


class ProductLifecycleManager:
    """
    Flips products between active and hold and selects stale products.

    Args:
        store: Persistence handle
    """

    def __init__(self, store: TrackerStore):
        self.store = store

    def move_to_hold(self, product: Product) -> bool:
        changed = self.store.set_product_status(product, ProductStatusChoices.HOLD)
        if changed:
            logger.info(f"Product {product.id} moved to hold")
        return changed

    def move_to_active(self, product: Product) -> bool:
        changed = self.store.set_product_status(product, ProductStatusChoices.ACTIVE)
        if changed:
            logger.info(f"Product {product.id} moved to active")
        return changed

    def ownership_created(self, product: Product) -> None:
        if product.status == ProductStatusChoices.HOLD:
            self.move_to_active(product)

    def ownership_deleted(self, product: Product) -> None:
        if not self.store.has_owners(product):
            self.move_to_hold(product)

    def outdated_products(
        self,
        max_age_hours: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Product]:
        """
        Active products whose latest report is older than ``max_age_hours``.

        Args:
            max_age_hours: Defaults to TRACKER_OUTDATED_AFTER_HOURS
            limit: Defaults to TRACKER_OUTDATED_LIMIT

        Returns:
            Products ordered oldest report first
        """
        if max_age_hours is None:
            max_age_hours = settings.TRACKER_OUTDATED_AFTER_HOURS
        if limit is None:
            limit = settings.TRACKER_OUTDATED_LIMIT

        older_than = timezone.now() - timedelta(hours=max_age_hours)
        return self.store.outdated_products(older_than, limit)

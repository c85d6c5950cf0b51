"""
Management command to list products which need a fresh crawl.

Usage:
    python manage.py outdated_products                  # Settings defaults
    python manage.py outdated_products --hours=6 --limit=100
"""

from django.core.management.base import BaseCommand, CommandError

from tracker.services import ProductLifecycleManager
from tracker.store import TrackerStore


class Command(BaseCommand):
    help = "List active products whose latest crawler report is outdated"

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help="Report age in hours (default: TRACKER_OUTDATED_AFTER_HOURS)",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Maximum number of products (default: TRACKER_OUTDATED_LIMIT)",
        )

    def handle(self, *args, **options):
        hours = options["hours"]
        limit = options["limit"]
        if hours is not None and hours < 0:
            raise CommandError("--hours must not be negative")
        if limit is not None and limit < 1:
            raise CommandError("--limit must be positive")

        products = ProductLifecycleManager(TrackerStore()).outdated_products(
            max_age_hours=hours,
            limit=limit,
        )

        if not products:
            self.stdout.write(self.style.SUCCESS("No outdated products"))
            return

        for product in products:
            self.stdout.write(f"{product.id}  {product.shop:<16} {product.url}")

        self.stdout.write(self.style.WARNING(f"{len(products)} outdated product(s)"))

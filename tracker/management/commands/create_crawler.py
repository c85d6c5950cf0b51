"""
Management command to register a crawler and print its bearer token.

Usage:
    python manage.py create_crawler moscow-1            # Create a crawler
    python manage.py create_crawler moscow-1 --rotate   # Issue a new token
"""

import uuid

from django.core.management.base import BaseCommand, CommandError

from tracker.models import Crawler


class Command(BaseCommand):
    help = "Create a crawler or rotate its token, and print the bearer token"

    def add_arguments(self, parser):
        parser.add_argument("name", type=str, help="Unique crawler name")
        parser.add_argument(
            "--rotate",
            action="store_true",
            help="Issue a new token for an existing crawler",
        )

    def handle(self, *args, **options):
        name = options["name"].strip()
        if not name:
            raise CommandError("Crawler name must not be empty")

        crawler = Crawler.objects.filter(name=name).first()

        if options["rotate"]:
            if crawler is None:
                raise CommandError(f"Crawler '{name}' does not exist")
            crawler.token = uuid.uuid4()
            crawler.save(update_fields=["token"])
            self.stdout.write(self.style.SUCCESS(f"Rotated token of crawler '{name}'"))
        else:
            if crawler is not None:
                raise CommandError(f"Crawler '{name}' already exists, use --rotate for a new token")
            crawler = Crawler.objects.create(name=name)
            self.stdout.write(self.style.SUCCESS(f"Created crawler '{name}'"))

        self.stdout.write(f"Authorization: Bearer {crawler.token}")

"""
Tests for management commands.
"""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from tracker.models import Crawler, ProductStatusChoices


@pytest.mark.django_db
class TestCreateCrawler:
    """create_crawler command."""

    def test_creates_crawler_and_prints_token(self):
        out = StringIO()

        call_command("create_crawler", "moscow-2", stdout=out)

        crawler = Crawler.objects.get(name="moscow-2")
        assert f"Authorization: Bearer {crawler.token}" in out.getvalue()

    def test_existing_name_requires_rotate(self, crawler):
        with pytest.raises(CommandError, match="already exists"):
            call_command("create_crawler", crawler.name, stdout=StringIO())

    def test_rotate(self, crawler):
        old_token = crawler.token
        out = StringIO()

        call_command("create_crawler", crawler.name, "--rotate", stdout=out)

        crawler.refresh_from_db()
        assert crawler.token != old_token
        assert str(crawler.token) in out.getvalue()

    def test_rotate_unknown(self):
        with pytest.raises(CommandError, match="does not exist"):
            call_command("create_crawler", "ghost", "--rotate", stdout=StringIO())


@pytest.mark.django_db
class TestOutdatedProducts:
    """outdated_products command."""

    def test_lists_outdated_products(self, make_product):
        active = make_product("https://www.ozon.ru/product/active-1/")
        held = make_product("https://www.ozon.ru/product/held-1/", status=ProductStatusChoices.HOLD)
        out = StringIO()

        call_command("outdated_products", "--hours=1", "--limit=5", stdout=out)

        output = out.getvalue()
        assert active.url in output
        assert held.url not in output
        assert "1 outdated product(s)" in output

    def test_nothing_outdated(self):
        out = StringIO()

        call_command("outdated_products", stdout=out)

        assert "No outdated products" in out.getvalue()

    def test_invalid_limit(self):
        with pytest.raises(CommandError):
            call_command("outdated_products", "--limit=0", stdout=StringIO())

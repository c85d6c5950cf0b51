"""
Registry of supported shops.

Each shop has one canonical domain, a list of alternate domains which are
aliased to it, and a path pattern recognising single product pages. The
built-in registry can be replaced with the ``TRACKER_SHOPS`` setting, a
list of dicts with the same keys as ``Shop``.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from django.conf import settings

TRAILING_SLASH_ADD = "add"
TRAILING_SLASH_STRIP = "strip"
TRAILING_SLASH_KEEP = "keep"


@dataclass(frozen=True)
class Shop:
    """Configuration of a single supported shop."""

    name: str
    domain: str
    alternate_domains: Tuple[str, ...] = ()
    single_product_pattern: str = ".+"
    trailing_slash: str = TRAILING_SLASH_KEEP
    # Query parameters which are part of the product identity
    identity_params: Tuple[str, ...] = field(default_factory=tuple)

    def matches_host(self, host: str) -> bool:
        return host == self.domain or host in self.alternate_domains

    def is_single_product_path(self, path: str) -> bool:
        return re.match(self.single_product_pattern, path) is not None


DEFAULT_SHOPS: List[Shop] = [
    Shop(
        name="ozon",
        domain="www.ozon.ru",
        alternate_domains=("ozon.ru", "m.ozon.ru"),
        single_product_pattern=r"/product/.+",
        trailing_slash=TRAILING_SLASH_ADD,
    ),
    Shop(
        name="lamoda",
        domain="www.lamoda.ru",
        alternate_domains=("lamoda.ru", "m.lamoda.ru"),
        single_product_pattern=r"/p/.+",
        trailing_slash=TRAILING_SLASH_ADD,
    ),
    Shop(
        name="wildberries",
        domain="www.wildberries.ru",
        alternate_domains=("wildberries.ru",),
        single_product_pattern=r"/catalog/\d{2,}",
        trailing_slash=TRAILING_SLASH_KEEP,
    ),
    Shop(
        name="sbermegamarket",
        domain="sbermegamarket.ru",
        alternate_domains=("www.sbermegamarket.ru",),
        single_product_pattern=r"/catalog/details/.+",
        trailing_slash=TRAILING_SLASH_ADD,
    ),
    Shop(
        name="store77",
        domain="store77.net",
        alternate_domains=("www.store77.net",),
        single_product_pattern=r"/\w+/\w+/",
        trailing_slash=TRAILING_SLASH_ADD,
    ),
    Shop(
        name="goldapple",
        domain="goldapple.ru",
        alternate_domains=("www.goldapple.ru",),
        single_product_pattern=r"/\d+-.+",
        trailing_slash=TRAILING_SLASH_STRIP,
    ),
]


def get_shops() -> List[Shop]:
    """Return the configured shops, honouring the TRACKER_SHOPS override."""
    configured = getattr(settings, "TRACKER_SHOPS", None)
    if not configured:
        return DEFAULT_SHOPS

    shops = []
    for entry in configured:
        data = dict(entry)
        data["alternate_domains"] = tuple(data.get("alternate_domains", ()))
        data["identity_params"] = tuple(data.get("identity_params", ()))
        shops.append(Shop(**data))
    return shops


def find_shop_by_host(host: Optional[str]) -> Optional[Shop]:
    """Find the shop serving ``host`` (canonical or alternate domain)."""
    if not host:
        return None

    clean_host = host.strip().lower()
    for shop in get_shops():
        if shop.matches_host(clean_host):
            return shop
    return None


def get_shop(name: str) -> Optional[Shop]:
    """Find a shop by its registry name."""
    for shop in get_shops():
        if shop.name == name:
            return shop
    return None

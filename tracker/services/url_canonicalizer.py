"""
URL Canonicalizer - product URL identity for shops.

Two URLs that point to the same product page must produce the same
canonical string and therefore the same identity hash:
- Alternate subdomains (m.ozon.ru, ozon.ru) map to the shop's domain
- Host is lowercased, port and credentials are dropped
- Scheme is always https
- Query string and fragment are removed, except parameters a shop
  declares to be part of the product identity
- Duplicate slashes are collapsed and the trailing slash follows the
  shop's policy

Usage:
    from tracker.services.url_canonicalizer import canonicalize

    canonical = canonicalize("https://m.ozon.ru/product/123?from=share")
    canonical.url       # "https://www.ozon.ru/product/123/"
    canonical.url_hash  # sha256 hex digest
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from tracker.errors import InvalidURL, NotASingleProductURL, UnsupportedShop
from tracker.shops import (
    TRAILING_SLASH_ADD,
    TRAILING_SLASH_STRIP,
    Shop,
    find_shop_by_host,
)

# http(s) URL or a bare www. address inside free text
URL_IN_TEXT_PATTERN = re.compile(r"((https?://)|(www\.))[^\s]+", re.IGNORECASE)

DUPLICATE_SLASHES_PATTERN = re.compile(r"/{2,}")


@dataclass(frozen=True)
class CanonicalURL:
    """Canonical form of a single product URL."""

    shop: str
    url: str
    url_hash: str


def detect_url(text: Optional[str]) -> str:
    """
    Find the first URL inside text pasted by a user.

    Shop apps share links as "Look at this! https://...", so the URL has
    to be fished out of the surrounding words.

    Args:
        text: Free text containing a URL

    Returns:
        The URL, prefixed with https:// when it started with www.

    Raises:
        InvalidURL: If the text contains no URL
    """
    if not isinstance(text, str) or not text:
        raise InvalidURL()

    match = URL_IN_TEXT_PATTERN.search(text)
    if match is None:
        raise InvalidURL()

    url = match.group(0)
    if url.lower().startswith("www."):
        url = f"https://{url}"
    return url


def _split(raw_url: str):
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise InvalidURL()

    try:
        parts = urlsplit(raw_url.strip())
        host = parts.hostname
    except ValueError:
        raise InvalidURL()

    if parts.scheme.lower() not in ("http", "https") or not host:
        raise InvalidURL()

    return parts, host.lower()


def _resolve_shop(raw_url: str) -> Shop:
    _, host = _split(raw_url)
    shop = find_shop_by_host(host)
    if shop is None:
        raise UnsupportedShop()
    return shop


def _normalize_path(path: str, shop: Shop) -> str:
    path = DUPLICATE_SLASHES_PATTERN.sub("/", path or "/")
    if not path.startswith("/"):
        path = f"/{path}"

    if path == "/":
        return path
    if shop.trailing_slash == TRAILING_SLASH_ADD and not path.endswith("/"):
        return f"{path}/"
    if shop.trailing_slash == TRAILING_SLASH_STRIP:
        return path.rstrip("/")
    return path


def normalize(raw_url: str) -> str:
    """
    Normalize a raw shop URL to its canonical string.

    Args:
        raw_url: URL as submitted by a user or crawler

    Returns:
        Canonical URL string

    Raises:
        InvalidURL: If the URL is empty, unparsable, not http(s) or has no host
        UnsupportedShop: If the host belongs to no configured shop
    """
    parts, host = _split(raw_url)
    shop = find_shop_by_host(host)
    if shop is None:
        raise UnsupportedShop()

    query = ""
    if shop.identity_params:
        kept = sorted(
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key in shop.identity_params
        )
        query = urlencode(kept)

    path = _normalize_path(parts.path, shop)
    return urlunsplit(("https", shop.domain, path, query, ""))


def is_single_product_page(url: str) -> bool:
    """
    Check that a URL points to a single product page of its shop.

    Args:
        url: Raw or canonical URL

    Returns:
        True for single product pages

    Raises:
        InvalidURL: If the URL is malformed
        UnsupportedShop: If the host belongs to no configured shop
        NotASingleProductURL: For listing, category and search pages
    """
    shop = _resolve_shop(url)
    parts, _ = _split(url)
    path = _normalize_path(parts.path, shop)

    if not shop.is_single_product_path(path):
        raise NotASingleProductURL()
    return True


def identity_hash(canonical_url: str) -> str:
    """SHA-256 hex digest of a canonical URL."""
    return hashlib.sha256(canonical_url.encode()).hexdigest()


def canonicalize(raw_url: str) -> CanonicalURL:
    """
    Normalize, validate and hash a product URL in one go.

    Raises:
        InvalidURL, UnsupportedShop, NotASingleProductURL
    """
    url = normalize(raw_url)
    is_single_product_page(url)
    shop = _resolve_shop(url)
    return CanonicalURL(shop=shop.name, url=url, url_hash=identity_hash(url))

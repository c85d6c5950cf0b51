"""
Crawl reports - typed representation of what a crawler saw on a page.

A raw JSON payload is parsed into exactly one of four report types, one
per status family. Each type only carries the fields legal for its status
so the ingestor never has to guess which fields are meaningful:

    skip                          -> SkipReport
    required_to_change_location   -> ChangeLocationReport
    not_found / age_restriction   -> UnavailableReport
    ok                            -> OkReport

Parsing performs all validation of a report. Nothing is written before
``parse_report`` returns.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from django.conf import settings

from tracker import messages
from tracker.errors import (
    InvalidValue,
    MissingPrices,
    MustBeANumber,
    MustBePositive,
    PriceTooLarge,
    ValidationError,
)
from tracker.models import HistoryStatusChoices
from tracker.services.price_resolver import resolve_price

CENT = Decimal("0.01")

# Largest amount a DecimalField(max_digits=12, decimal_places=2) can hold
MAX_PRICE = Decimal("9999999999.99")

OK_FIELDS = frozenset({"status", "in_stock", "title", "original_price", "discount_price"})
STATUS_ONLY_FIELDS = frozenset({"status"})


@dataclass(frozen=True)
class SkipReport:
    """Transient crawler-side failure: rate limit, captcha, shop outage."""

    status: str = HistoryStatusChoices.SKIP


@dataclass(frozen=True)
class ChangeLocationReport:
    """The shop serves this page only to another region."""

    status: str = HistoryStatusChoices.REQUIRED_TO_CHANGE_LOCATION


@dataclass(frozen=True)
class UnavailableReport:
    """Terminal state without a price: page gone or behind an age gate."""

    status: str


@dataclass(frozen=True)
class OkReport:
    """The page was parsed; prices are quantized to cents."""

    in_stock: bool
    title: str
    original_price: Optional[Decimal] = None
    discount_price: Optional[Decimal] = None
    status: str = HistoryStatusChoices.OK

    @property
    def price(self) -> Decimal:
        return resolve_price(self.original_price, self.discount_price)


CrawlReport = Union[SkipReport, ChangeLocationReport, UnavailableReport, OkReport]


def _present(payload: Mapping[str, Any], key: str) -> bool:
    value = payload.get(key)
    return value is not None and value != ""


def _parse_price(value: Any, not_a_number: dict, not_positive: dict, too_large: dict) -> Decimal:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise MustBeANumber(not_a_number)

    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise MustBeANumber(not_a_number)

    if not price.is_finite():
        raise MustBeANumber(not_a_number)
    if price <= 0:
        raise MustBePositive(not_positive)
    if price > MAX_PRICE:
        raise PriceTooLarge(too_large)

    # Sub-cent prices are stored as one cent
    return max(price.quantize(CENT, rounding=ROUND_HALF_UP), CENT)


def _reject_unknown_fields(payload: Mapping[str, Any], allowed: frozenset) -> None:
    unknown = [key for key, value in payload.items() if key not in allowed and value is not None]
    if unknown:
        raise ValidationError(messages.UNKNOWN_FIELD)


def _parse_ok(payload: Mapping[str, Any]) -> OkReport:
    _reject_unknown_fields(payload, OK_FIELDS)

    if "in_stock" not in payload or payload["in_stock"] is None:
        raise ValidationError(messages.MISSING_IN_STOCK)
    in_stock = payload["in_stock"]
    if not isinstance(in_stock, bool):
        raise ValidationError(messages.IN_STOCK_MUST_BE_BOOLEAN)

    title = payload.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError(messages.MISSING_TITLE)
    title = title.strip()[: settings.TRACKER_TITLE_MAX_LENGTH]

    discount_price = None
    if _present(payload, "discount_price"):
        discount_price = _parse_price(
            payload["discount_price"],
            messages.DISCOUNT_PRICE_MUST_BE_A_NUMBER,
            messages.DISCOUNT_PRICE_MUST_BE_POSITIVE,
            messages.DISCOUNT_PRICE_IS_TOO_LARGE,
        )

    original_price = None
    if _present(payload, "original_price"):
        original_price = _parse_price(
            payload["original_price"],
            messages.ORIGINAL_PRICE_MUST_BE_A_NUMBER,
            messages.ORIGINAL_PRICE_MUST_BE_POSITIVE,
            messages.ORIGINAL_PRICE_IS_TOO_LARGE,
        )

    report = OkReport(
        in_stock=in_stock,
        title=title,
        original_price=original_price,
        discount_price=discount_price,
    )

    # A product in stock must have some price
    if report.in_stock and report.price == 0:
        raise MissingPrices()

    return report


def parse_report(payload: Mapping[str, Any]) -> CrawlReport:
    """
    Parse and validate a crawler payload.

    Keys with a null value are treated as absent.

    Args:
        payload: Decoded JSON body without queue identity fields

    Returns:
        One of SkipReport, ChangeLocationReport, UnavailableReport, OkReport

    Raises:
        ValidationError: Missing status, missing or malformed field, or a
            field which is not legal for the reported status
        InvalidValue: Unsupported status, non-numeric or non-positive
            price, in stock without any price
    """
    if not isinstance(payload, Mapping):
        raise ValidationError(messages.MISSING_STATUS)

    status = payload.get("status")
    if not isinstance(status, str) or not status:
        raise ValidationError(messages.MISSING_STATUS)

    if status == HistoryStatusChoices.OK:
        return _parse_ok(payload)

    if status == HistoryStatusChoices.SKIP:
        report = SkipReport()
    elif status == HistoryStatusChoices.REQUIRED_TO_CHANGE_LOCATION:
        report = ChangeLocationReport()
    elif status in (HistoryStatusChoices.NOT_FOUND, HistoryStatusChoices.AGE_RESTRICTION):
        report = UnavailableReport(status=status)
    else:
        raise InvalidValue(messages.INVALID_PRODUCT_STATUS)

    _reject_unknown_fields(payload, STATUS_ONLY_FIELDS)
    return report

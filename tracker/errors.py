"""
Error taxonomy of the tracker.

Every error a caller can see carries the HTTP status it maps to and a
``{"status", "message"}`` body from ``tracker.messages``. Views translate
these errors into responses; nothing below the view layer builds HTTP
responses itself.
"""

from typing import Dict, Optional

from tracker import messages


class TrackerError(Exception):
    """Base class for all tracker errors."""

    http_status = 500
    default_body = messages.UNHANDLED_ERROR

    def __init__(self, body: Optional[Dict[str, str]] = None):
        self.body = body or self.default_body
        super().__init__(self.body["message"])

    @property
    def code(self) -> str:
        return self.body["status"]


class ValidationError(TrackerError):
    """Missing or malformed input. Raised before any write."""

    http_status = 400


class InvalidValue(ValidationError):
    """Input is present but semantically invalid."""

    http_status = 422


class InvalidURL(InvalidValue):
    default_body = messages.INVALID_URL


class UnsupportedShop(InvalidValue):
    default_body = messages.SHOP_IS_NOT_SUPPORTED_YET


class NotASingleProductURL(InvalidValue):
    default_body = messages.IT_IS_NOT_A_SINGLE_PRODUCT_URL


class MustBeANumber(InvalidValue):
    pass


class MustBePositive(InvalidValue):
    pass


class PriceTooLarge(InvalidValue):
    pass


class MissingPrices(InvalidValue):
    default_body = messages.MISSING_PRICES


class NotFoundError(TrackerError):
    """Unknown product, crawler, user or queue entry."""

    http_status = 404


class IdentityConflict(TrackerError):
    """
    Another request created the product with the same url_hash first.

    Handled inside ingestion; never reaches a caller.
    """

    http_status = 409

    def __init__(self, url_hash: str):
        self.url_hash = url_hash
        super().__init__(messages.PRODUCT_ALREADY_EXISTS)


class StoreUnavailable(TrackerError):
    """The database failed while serving a request."""

    default_body = messages.STORE_UNAVAILABLE


class NotificationDispatchFailure(Exception):
    """
    Pushing a message to Telegram failed.

    Logged by the delivery task and never surfaced to crawlers.
    """

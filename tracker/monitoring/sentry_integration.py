"""
Sentry error tracking integration for the tracker.

Events are tagged with:
- section: the operation which failed (e.g. "ingestion.report_result")
- crawler_id: the crawler whose request was being served

Usage:
    from tracker.monitoring import capture_crawler_error

    try:
        result = ingestor.report_result(crawler, product_id, payload)
    except StoreUnavailable as e:
        capture_crawler_error(e, section="ingestion.report_result", crawler=crawler)
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Sensitive fields to filter from Sentry events
SENSITIVE_FIELDS = {
    "authorization",
    "auth",
    "password",
    "secret",
    "token",
    "cookie",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Filter sensitive data from a dictionary.

    Replaces values for keys that match sensitive field names.

    Args:
        data: Dictionary potentially containing sensitive data

    Returns:
        Dictionary with sensitive values replaced
    """
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value

    return filtered


def add_tracker_breadcrumb(
    message: str,
    category: str = "tracker",
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add a breadcrumb to Sentry.

    Breadcrumbs help trace the sequence of operations leading to an error.
    """
    sentry_sdk.add_breadcrumb(
        category=category,
        message=message,
        level=level,
        data=_filter_sensitive_data(data or {}),
    )


def _apply_context(scope, section: str, crawler=None, extra: Optional[Dict[str, Any]] = None) -> None:
    scope.set_tag("section", section)
    if crawler is not None:
        scope.set_tag("crawler_id", str(crawler.id))
    if extra:
        scope.set_context("args", _filter_sensitive_data(extra))


def capture_crawler_error(
    error: Exception,
    section: str,
    crawler=None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture an exception to Sentry with crawler context.

    Args:
        error: The exception that occurred
        section: Operation that failed
        crawler: Crawler being served (optional)
        extra: Call arguments (filtered for sensitive data)
    """
    logger.error(f"{section} failed: {type(error).__name__}: {error}")

    with sentry_sdk.new_scope() as scope:
        _apply_context(scope, section, crawler, extra)
        sentry_sdk.capture_exception(error)


def capture_crawler_message(
    message: str,
    section: str,
    crawler=None,
    extra: Optional[Dict[str, Any]] = None,
    level: str = "warning",
) -> None:
    """
    Capture a message which needs a developer's attention.

    Used for reports that cannot be handled automatically, e.g. a new
    product only another crawler can process.
    """
    with sentry_sdk.new_scope() as scope:
        _apply_context(scope, section, crawler, extra)
        sentry_sdk.capture_message(message, level=level)

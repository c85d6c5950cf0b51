"""
Monitoring module for the tracker.

- Sentry error tracking with crawler context (section and crawler_id tags)
- Sensitive data filtering for event context
"""

from .sentry_integration import capture_crawler_error, capture_crawler_message, add_tracker_breadcrumb

__all__ = [
    "capture_crawler_error",
    "capture_crawler_message",
    "add_tracker_breadcrumb",
]

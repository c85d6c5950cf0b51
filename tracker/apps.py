"""
Tracker application configuration.
"""

from django.apps import AppConfig


class TrackerConfig(AppConfig):
    """Configuration for the tracker Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "tracker"
    verbose_name = "Price Tracker"

    def ready(self):
        """
        Perform application initialization.

        Imports signal handlers so that ownership changes flip products
        between active and hold.
        """
        from tracker import signals  # noqa: F401

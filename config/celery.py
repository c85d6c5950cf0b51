"""
Celery configuration for the Price Tracker service.

Notification delivery runs on its own queue so a slow Telegram API never
holds up other background work.
"""

import os
from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("price_tracker")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.task_queues = {
    "notifications": {
        "exchange": "notifications",
        "routing_key": "notifications",
    },
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
}

# Default task routing
app.conf.task_default_queue = "default"
app.conf.task_default_exchange = "default"
app.conf.task_default_routing_key = "default"

app.conf.task_routes = {
    "tracker.tasks.deliver_notification": {"queue": "notifications"},
}

"""
Test settings for the Price Tracker service.

Uses in-memory SQLite and eager Celery for fast test execution.
"""

from .base import *

# Test mode
DEBUG = False

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

# Test database - in-memory SQLite for speed
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Test Cache - use local memory cache
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "unique-snowflake",
    }
}

# Test Celery - run tasks synchronously
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Test logging - minimal output
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["tracker"]["level"] = "WARNING"

# Password validators disabled for faster tests
AUTH_PASSWORD_VALIDATORS = []

# Use faster password hasher for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Sentry in tests
SENTRY_DSN = ""

# Deterministic notification settings
TELEGRAM_BOT_TOKEN = "test-bot-token"
TELEGRAM_API_URL = "https://telegram.test"
TELEGRAM_REQUEST_TIMEOUT = 1
SERVICE_PRODUCTS_URL = "https://tracker.test/products"

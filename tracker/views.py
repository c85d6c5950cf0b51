"""
Tracker service views.

Includes health check endpoint for monitoring and load balancer checks.
"""

import logging

import redis
from django.conf import settings
from django.db import DatabaseError, connection
from django.db.models import Max
from django.http import JsonResponse

from tracker.models import DeliveryStatusChoices, ProductHistory, ProductQueue, TelegramMessage

logger = logging.getLogger(__name__)

REDIS_CACHE_BACKEND = "django.core.cache.backends.redis.RedisCache"


def get_redis_connection():
    """
    Get Redis connection for health check.

    Returns:
        Redis client if the default cache is Redis, None if not configured.
    """
    cache_config = settings.CACHES.get("default", {})
    if cache_config.get("BACKEND") != REDIS_CACHE_BACKEND:
        return None

    location = cache_config.get("LOCATION")
    if isinstance(location, (list, tuple)):
        location = location[0]
    return redis.Redis.from_url(location, socket_connect_timeout=2, socket_timeout=2)


def get_celery_worker_count():
    """
    Get the count of active Celery workers.

    Returns:
        int: Number of active workers, 0 if Celery not available.
    """
    from config.celery import app as celery_app

    try:
        inspect = celery_app.control.inspect(timeout=1)
        active = inspect.active()
    except Exception as e:
        logger.warning(f"Celery inspection failed: {e}")
        return 0

    if active:
        return len(active)
    return 0


def health_check(request):
    """
    Health check endpoint for the tracker service.

    Endpoint: GET /api/health/
    No authentication required (for load balancer checks).

    Response fields:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "error"
        - redis: "connected", "not_configured", or "error"
        - celery_workers: integer count of active workers
        - queue_depth: number of queued product requests
        - last_report: ISO timestamp of the latest crawler report
        - pending_notifications: outbox records not delivered yet

    Returns:
        JsonResponse: HTTP 200 for healthy, HTTP 503 for unhealthy
    """
    status = "healthy"
    http_status = 200

    # Check database connection
    database_status = "connected"
    try:
        connection.ensure_connection()
    except DatabaseError as e:
        logger.error(f"Health check database error: {e}")
        database_status = "error"
        status = "unhealthy"
        http_status = 503

    # Check Redis connection (graceful degradation)
    redis_status = "not_configured"
    redis_client = get_redis_connection()
    if redis_client is not None:
        try:
            redis_status = "connected" if redis_client.ping() else "error"
        except redis.RedisError as e:
            logger.warning(f"Health check Redis error: {e}")
            redis_status = "error"

    # Check Celery workers (graceful degradation)
    celery_workers = get_celery_worker_count()

    queue_depth = 0
    last_report = None
    pending_notifications = 0

    if database_status == "connected":
        try:
            queue_depth = ProductQueue.objects.count()
            latest = ProductHistory.objects.aggregate(latest=Max("created_at"))["latest"]
            last_report = latest.isoformat() if latest else None
            pending_notifications = TelegramMessage.objects.filter(
                delivery_status=DeliveryStatusChoices.PENDING,
            ).count()
        except DatabaseError as e:
            # Tables may be missing before migrations run
            logger.warning(f"Health check statistics unavailable: {e}")

    response_data = {
        "status": status,
        "database": database_status,
        "redis": redis_status,
        "celery_workers": celery_workers,
        "queue_depth": queue_depth,
        "last_report": last_report,
        "pending_notifications": pending_notifications,
    }

    return JsonResponse(response_data, status=http_status)

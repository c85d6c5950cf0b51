"""
REST API views of the price tracker.

Crawler endpoints (bearer token of a Crawler):
- Pull the product queue
- Pull outdated products
- Report a queued product or a result for an existing product

User endpoints (session or basic auth):
- Track and untrack products
- Product state and recent history
- Stock event subscriptions

Services raise TrackerError subclasses; this module is the only place
they become HTTP responses.
"""

import logging
import uuid
from dataclasses import asdict

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import status
from rest_framework.decorators import (
    api_view,
    authentication_classes,
    permission_classes,
    throttle_classes,
)
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from tracker import messages
from tracker.api.throttling import CrawlerThrottle, TrackingThrottle
from tracker.authentication import CrawlerTokenAuthentication, IsCrawler
from tracker.errors import NotFoundError, StoreUnavailable, TrackerError, ValidationError
from tracker.monitoring.sentry_integration import add_tracker_breadcrumb, capture_crawler_error
from tracker.services import (
    CrawlResultIngestor,
    ProductLifecycleManager,
    ProductQueueCoordinator,
    TrackingService,
)
from tracker.store import TrackerStore

logger = logging.getLogger(__name__)


def _parse_uuid(value, error=None) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise error or ValidationError(messages.INVALID_PRODUCT_UUID)


def _run(section, call, crawler=None, extra=None) -> Response:
    """
    Run a view body and translate tracker errors into responses.

    Store failures and unexpected exceptions are reported to Sentry before
    the 500 response.
    """
    try:
        return call()

    except StoreUnavailable as e:
        capture_crawler_error(e, section=section, crawler=crawler, extra=extra)
        return Response(e.body, status=e.http_status)

    except TrackerError as e:
        logger.info(f"{section} rejected: {e.code}")
        return Response(e.body, status=e.http_status)

    except Exception as e:
        capture_crawler_error(e, section=section, crawler=crawler, extra=extra)
        return Response(messages.UNHANDLED_ERROR, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _payload(request):
    # JSON arrays and scalars are reported as missing fields
    return request.data if isinstance(request.data, dict) else {}


def _serialize_product(product):
    return {
        "id": str(product.id),
        "url": product.url,
        "shop": product.shop,
        "title": product.title,
        "image": product.image,
        "status": product.status,
    }


def _serialize_subscription(subscription):
    return {
        "id": str(subscription.id),
        "subscription_type": subscription.subscription_type,
        "payload": subscription.payload,
        "created_at": subscription.created_at,
    }


# ----------------------------------------------------------------------
# Crawler endpoints
# ----------------------------------------------------------------------


@extend_schema(
    tags=["Crawlers"],
    summary="Pull the product queue",
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(["GET"])
@authentication_classes([CrawlerTokenAuthentication])
@permission_classes([IsCrawler])
@throttle_classes([CrawlerThrottle])
def crawler_queue(request):
    """
    Queue entries the calling crawler has not been told to skip.

    Pulls are not leased; the same entries are returned until a report
    resolves them.
    """
    crawler = request.user

    def call():
        entries = ProductQueueCoordinator(TrackerStore()).pull(crawler)
        return Response({
            "products": [
                {
                    "url_hash": entry.url_hash,
                    "url": entry.url,
                    "shop": entry.shop,
                    "requested_by": entry.requested_by_id,
                }
                for entry in entries
            ],
        })

    return _run("api.crawler_queue", call, crawler=crawler)


@extend_schema(
    tags=["Crawlers"],
    summary="Outdated products or report a queued product",
    request=OpenApiTypes.OBJECT,
    responses={200: OpenApiTypes.OBJECT, 201: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            "Queued product in stock",
            value={
                "requested_by": 1,
                "url_hash": "3f1c...",
                "shop": "ozon",
                "url": "https://www.ozon.ru/product/123/",
                "status": "ok",
                "in_stock": True,
                "title": "Phone",
                "original_price": 100,
                "discount_price": 90,
            },
            request_only=True,
        ),
    ],
)
@api_view(["GET", "POST"])
@authentication_classes([CrawlerTokenAuthentication])
@permission_classes([IsCrawler])
@throttle_classes([CrawlerThrottle])
def crawler_products(request):
    """
    GET: active products whose latest report is outdated, oldest first.

    POST: report the outcome of crawling a queue entry. The body carries
    requested_by, url_hash, shop and url next to the report fields.
    """
    crawler = request.user

    if request.method == "GET":
        def call():
            products = ProductLifecycleManager(TrackerStore()).outdated_products()
            return Response({
                "products": [
                    {"id": str(product.id), "url": product.url, "image": product.image}
                    for product in products
                ],
            })

        return _run("api.outdated_products", call, crawler=crawler)

    payload = _payload(request)
    add_tracker_breadcrumb(
        "Crawler reported queued product",
        category="crawler.report",
        data={"crawler": crawler.name, "url": payload.get("url"), "status": payload.get("status")},
    )

    def call():
        result = CrawlResultIngestor(TrackerStore()).report_new_product(crawler, payload)
        return Response(result.body, status=result.http_status)

    return _run(
        "ingestion.report_new_product",
        call,
        crawler=crawler,
        extra={"payload": dict(payload)},
    )


@extend_schema(
    tags=["Crawlers"],
    summary="Report a result for an existing product",
    request=OpenApiTypes.OBJECT,
    responses={200: OpenApiTypes.OBJECT, 201: OpenApiTypes.OBJECT},
)
@api_view(["PUT"])
@authentication_classes([CrawlerTokenAuthentication])
@permission_classes([IsCrawler])
@throttle_classes([CrawlerThrottle])
def crawler_product_result(request, product_id):
    crawler = request.user
    payload = _payload(request)
    add_tracker_breadcrumb(
        "Crawler reported product result",
        category="crawler.report",
        data={"crawler": crawler.name, "product_id": product_id, "status": payload.get("status")},
    )

    def call():
        result = CrawlResultIngestor(TrackerStore()).report_result(
            crawler,
            _parse_uuid(product_id),
            payload,
        )
        return Response(result.body, status=result.http_status)

    return _run(
        "ingestion.report_result",
        call,
        crawler=crawler,
        extra={"product_id": product_id, "payload": dict(payload)},
    )


# ----------------------------------------------------------------------
# User endpoints
# ----------------------------------------------------------------------


@extend_schema(
    tags=["Products"],
    summary="Track a product by its link",
    request=OpenApiTypes.OBJECT,
    responses={200: OpenApiTypes.OBJECT, 201: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            "Shared link",
            value={"url": "Look at this https://www.ozon.ru/product/123/?from=share"},
            request_only=True,
        ),
    ],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([TrackingThrottle])
def track_product(request):
    """
    Start tracking the product linked in ``url``.

    The link may be surrounded by other text. Known products are added to
    the user's list at once, unknown ones are queued for crawling.
    """
    def call():
        result = TrackingService(TrackerStore()).track(request.user, _payload(request).get("url"))
        return Response(result.body, status=result.http_status)

    return _run("tracking.track", call, extra={"user_id": request.user.pk})


@extend_schema(
    tags=["Products"],
    summary="Stop tracking a product",
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
@throttle_classes([TrackingThrottle])
def untrack_product(request, product_id):
    def call():
        TrackingService(TrackerStore()).untrack(request.user, _parse_uuid(product_id))
        return Response(messages.PRODUCT_REMOVED_FROM_USER)

    return _run("tracking.untrack", call, extra={"user_id": request.user.pk, "product_id": product_id})


@extend_schema(
    tags=["Products"],
    summary="Product state and recent history",
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
@throttle_classes([TrackingThrottle])
def product_history(request, product_id):
    """
    State of a tracked product for its owner.

    Includes the current, lowest and highest price, the owner's benefit
    since tracking started, the most recent price-carrying history records
    and the owner's subscriptions.
    """
    def call():
        overview = TrackingService(TrackerStore()).overview(request.user, _parse_uuid(product_id))
        return Response({
            "product": _serialize_product(overview.ownership.product),
            "state": asdict(overview.state),
            "history": overview.history,
            "subscriptions": [_serialize_subscription(s) for s in overview.subscriptions],
        })

    return _run("tracking.overview", call, extra={"user_id": request.user.pk, "product_id": product_id})


@extend_schema(
    tags=["Subscriptions"],
    summary="Subscribe to a stock event of a product",
    request=OpenApiTypes.OBJECT,
    responses={201: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            "Back in stock",
            value={"subscription_type": "on_change_status_to_in_stock", "payload": {}},
            request_only=True,
        ),
    ],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([TrackingThrottle])
def create_subscription(request, product_id):
    def call():
        payload = _payload(request)
        subscription = TrackingService(TrackerStore()).subscribe(
            request.user,
            _parse_uuid(product_id),
            payload.get("subscription_type"),
            payload.get("payload"),
        )
        body = dict(messages.SUBSCRIPTION_CREATED)
        body["subscription_id"] = str(subscription.id)
        return Response(body, status=status.HTTP_201_CREATED)

    return _run("tracking.subscribe", call, extra={"user_id": request.user.pk, "product_id": product_id})


@extend_schema(
    tags=["Subscriptions"],
    summary="Remove a subscription",
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
@throttle_classes([TrackingThrottle])
def delete_subscription(request, product_id, subscription_id):
    def call():
        TrackingService(TrackerStore()).unsubscribe(
            request.user,
            _parse_uuid(product_id),
            _parse_uuid(subscription_id, NotFoundError(messages.PRODUCT_SUBSCRIPTION_DOES_NOT_EXIST)),
        )
        return Response(messages.SUBSCRIPTION_REMOVED)

    return _run(
        "tracking.unsubscribe",
        call,
        extra={"user_id": request.user.pk, "product_id": product_id, "subscription_id": subscription_id},
    )

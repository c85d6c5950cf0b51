"""
URL patterns of the tracker REST API, mounted under /api/v1/.

Crawler endpoints:
- GET  crawlers/queue/                 - Pull queued URLs
- GET  crawlers/products/              - Pull outdated products
- POST crawlers/products/              - Report a queued product
- PUT  crawlers/products/<product_id>/ - Report a result for a product

User endpoints:
- POST   products/                                        - Track a product
- DELETE products/<product_id>/                           - Untrack a product
- GET    products/<product_id>/history/                   - State and history
- POST   products/<product_id>/subscriptions/             - Subscribe
- DELETE products/<product_id>/subscriptions/<sub_id>/    - Unsubscribe
"""

from django.urls import path

from tracker.api.views import (
    crawler_product_result,
    crawler_products,
    crawler_queue,
    create_subscription,
    delete_subscription,
    product_history,
    track_product,
    untrack_product,
)

app_name = "tracker_api"

urlpatterns = [
    # Crawler endpoints
    path("crawlers/queue/", crawler_queue, name="crawler_queue"),
    path("crawlers/products/", crawler_products, name="crawler_products"),
    path("crawlers/products/<str:product_id>/", crawler_product_result, name="crawler_product_result"),

    # User endpoints
    path("products/", track_product, name="track_product"),
    path("products/<str:product_id>/", untrack_product, name="untrack_product"),
    path("products/<str:product_id>/history/", product_history, name="product_history"),
    path("products/<str:product_id>/subscriptions/", create_subscription, name="create_subscription"),
    path(
        "products/<str:product_id>/subscriptions/<str:subscription_id>/",
        delete_subscription,
        name="delete_subscription",
    ),
]

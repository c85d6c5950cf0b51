"""
API throttling classes.

Crawlers authenticate as Crawler rows, which UserRateThrottle keys by
primary key the same way it keys users.
"""

from rest_framework.throttling import UserRateThrottle


class CrawlerThrottle(UserRateThrottle):
    """
    Throttle for crawler endpoints.

    Rate: 1200 requests per hour per crawler.
    Applied to: /api/v1/crawlers/...
    """

    rate = "1200/hour"
    scope = "crawler"


class TrackingThrottle(UserRateThrottle):
    """
    Throttle for user tracking endpoints.

    Rate: 120 requests per hour per user.
    Applied to: /api/v1/products/...
    """

    rate = "120/hour"
    scope = "tracking"

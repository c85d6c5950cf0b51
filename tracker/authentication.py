"""
Crawler authentication for the REST API.

Crawlers send ``Authorization: Bearer <token>`` where the token is the
UUID stored on their Crawler row. Failures map to:
- 401: header, Bearer keyword or token missing
- 400: token is not a UUID
- 404: no active crawler owns the token
"""

import uuid

from drf_spectacular.extensions import OpenApiAuthenticationExtension
from rest_framework import exceptions, status
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.permissions import BasePermission

from tracker import messages
from tracker.models import Crawler
from tracker.store import TrackerStore

BEARER_KEYWORD = "Bearer"


class CrawlerAuthenticationFailed(exceptions.APIException):
    """Authentication error carrying a tracker message body."""

    def __init__(self, body, status_code=status.HTTP_401_UNAUTHORIZED):
        self.status_code = status_code
        super().__init__(detail=body)


class CrawlerTokenAuthentication(BaseAuthentication):
    """
    Resolve a bearer token to a Crawler.

    ``request.user`` becomes the Crawler and ``request.auth`` its token.
    """

    keyword = BEARER_KEYWORD

    def authenticate(self, request):
        header = get_authorization_header(request).decode("latin-1").strip()
        if not header:
            raise CrawlerAuthenticationFailed(messages.MISSING_AUTHORIZATION_HEADER)

        parts = header.split()
        if parts[0] != self.keyword:
            raise CrawlerAuthenticationFailed(messages.MISSING_BEARER_KEY)
        if len(parts) < 2 or not parts[1]:
            raise CrawlerAuthenticationFailed(messages.MISSING_TOKEN)

        try:
            token = uuid.UUID(parts[1])
        except ValueError:
            raise CrawlerAuthenticationFailed(
                messages.INVALID_TOKEN_UUID,
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        crawler = TrackerStore().get_crawler_by_token(token)
        if crawler is None:
            raise CrawlerAuthenticationFailed(
                messages.CRAWLER_DOES_NOT_EXIST,
                status_code=status.HTTP_404_NOT_FOUND,
            )

        return crawler, token

    def authenticate_header(self, request):
        return self.keyword


class IsCrawler(BasePermission):
    """Allow only requests authenticated as a Crawler."""

    def has_permission(self, request, view):
        return isinstance(request.user, Crawler)


class CrawlerTokenScheme(OpenApiAuthenticationExtension):
    target_class = "tracker.authentication.CrawlerTokenAuthentication"
    name = "CrawlerToken"

    def get_security_definition(self, auto_schema):
        return {"type": "http", "scheme": "bearer", "bearerFormat": "UUID"}

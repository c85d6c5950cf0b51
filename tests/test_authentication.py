"""
Tests for crawler bearer token authentication.
"""

import uuid

import pytest
from django.urls import reverse

from tracker import messages


def queue_url():
    return reverse("tracker_api:crawler_queue")


@pytest.mark.django_db
class TestCrawlerTokenAuthentication:
    """Header parsing and token resolution."""

    def test_valid_token(self, crawler_client):
        response = crawler_client.get(queue_url())

        assert response.status_code == 200
        assert response.json() == {"products": []}

    def test_missing_header(self, api_client):
        response = api_client.get(queue_url())

        assert response.status_code == 401
        assert response.json() == messages.MISSING_AUTHORIZATION_HEADER

    def test_missing_bearer_keyword(self, api_client, crawler):
        api_client.credentials(HTTP_AUTHORIZATION=f"Token {crawler.token}")

        response = api_client.get(queue_url())

        assert response.status_code == 401
        assert response.json() == messages.MISSING_BEARER_KEY

    def test_missing_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer")

        response = api_client.get(queue_url())

        assert response.status_code == 401
        assert response.json() == messages.MISSING_TOKEN

    def test_malformed_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-uuid")

        response = api_client.get(queue_url())

        assert response.status_code == 400
        assert response.json() == messages.INVALID_TOKEN_UUID

    def test_unknown_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {uuid.uuid4()}")

        response = api_client.get(queue_url())

        assert response.status_code == 404
        assert response.json() == messages.CRAWLER_DOES_NOT_EXIST

    def test_inactive_crawler(self, crawler_client, crawler):
        crawler.is_active = False
        crawler.save()

        response = crawler_client.get(queue_url())

        assert response.status_code == 404

    def test_user_is_not_a_crawler(self, user_client):
        response = user_client.get(queue_url())

        assert response.status_code == 403

"""
Telegram Bot API client.

Push-only: sends a Markdown message to a chat and raises
NotificationDispatchFailure when Telegram does not accept it.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from django.conf import settings

from tracker.errors import NotificationDispatchFailure

logger = logging.getLogger(__name__)


class TelegramClient:
    """
    Minimal client for the ``sendMessage`` Bot API method.

    Args:
        bot_token: Bot token (default: TELEGRAM_BOT_TOKEN)
        api_url: Bot API base URL (default: TELEGRAM_API_URL)
        timeout: Request timeout in seconds (default: TELEGRAM_REQUEST_TIMEOUT)
    """

    def __init__(
        self,
        bot_token: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.bot_token = bot_token if bot_token is not None else settings.TELEGRAM_BOT_TOKEN
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TELEGRAM_REQUEST_TIMEOUT

    @property
    def send_message_endpoint(self) -> str:
        return f"{self.api_url}/bot{self.bot_token}/sendMessage"

    def send_message(self, chat_id: str, text: str) -> Dict[str, Any]:
        """
        Send a Markdown message to a chat.

        Args:
            chat_id: Telegram chat id of the recipient
            text: Message text in Telegram Markdown

        Returns:
            The ``result`` object returned by Telegram

        Raises:
            NotificationDispatchFailure: On missing configuration, transport
                errors and responses Telegram marks as not ok
        """
        if not self.bot_token:
            raise NotificationDispatchFailure("TELEGRAM_BOT_TOKEN is not configured")

        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.send_message_endpoint, json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.TimeoutException as e:
            raise NotificationDispatchFailure(f"Telegram timeout after {self.timeout}s") from e

        except httpx.HTTPStatusError as e:
            raise NotificationDispatchFailure(
                f"Telegram HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e

        except (httpx.HTTPError, ValueError) as e:
            raise NotificationDispatchFailure(f"Telegram request failed: {e}") from e

        if not data.get("ok"):
            raise NotificationDispatchFailure(
                f"Telegram rejected message: {data.get('description', 'unknown error')}"
            )

        logger.debug(f"Telegram message delivered to chat {chat_id}")
        return data.get("result", {})

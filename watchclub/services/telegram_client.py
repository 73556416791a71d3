"""
Telegram Bot API notifier used by the event notifier job.
"""

import httpx

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_BASE_URL = "https://api.telegram.org"
REQUEST_TIMEOUT = 10  # seconds


class UpstreamNotifierError(Exception):
    """The messaging service was unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TelegramNotifier:
    """Sends HTML messages to the club's chat."""

    def __init__(
        self,
        bot_token: str | None = None,
        chat_id: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bot_token = bot_token or settings.TELEGRAM_BOT_TOKEN
        self.chat_id = chat_id or settings.TELEGRAM_CHAT_ID
        self._transport = transport

    async def send_message(self, text: str, parse_mode: str = "HTML") -> dict:
        if not self.bot_token or not self.chat_id:
            raise UpstreamNotifierError("Telegram bot token or chat id not configured")

        url = f"{TELEGRAM_API_BASE_URL}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": parse_mode}

        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.RequestError as e:
            logger.error("Telegram request failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamNotifierError(f"Telegram unreachable: {e}") from e

        if not response.is_success:
            logger.error("Telegram API error", status_code=response.status_code)
            raise UpstreamNotifierError(
                f"Telegram API error: {response.status_code}", status_code=response.status_code
            )

        logger.info("Telegram message sent", chars=len(text))
        return response.json()

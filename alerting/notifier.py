"""
Alerting - Webhook Notifier.

============================================================
PURPOSE
============================================================
POSTs chat-notification payloads to a webhook URL.

PRINCIPLES:
- Fire and forget: no retries
- Never raises; failures are logged
- Only the status code of the response is used

============================================================
"""

import logging
from typing import Any, Dict, Optional

import aiohttp


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 10.0


class WebhookNotifier:
    """
    Sends JSON payloads to a chat webhook.

    Usage:
        notifier = WebhookNotifier("https://hooks.example/...")
        await notifier.send({"text": "...", "blocks": [...]})
        await notifier.close()
    """

    def __init__(self, webhook_url: Optional[str], timeout: float = DEFAULT_TIMEOUT):
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._webhook_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
        return self._session

    async def close(self) -> None:
        """Close the notifier."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send(self, payload: Dict[str, Any]) -> bool:
        """
        POST a payload to the webhook.

        Returns:
            True if the webhook answered with a 2xx status
        """
        if not self._webhook_url:
            logger.error("Cannot send alert - no webhook URL configured")
            return False

        try:
            session = await self._get_session()
            async with session.post(self._webhook_url, json=payload) as response:
                if 200 <= response.status < 300:
                    return True

                logger.error(
                    f"Failed to send webhook alert: {response.status} {response.reason}"
                )
                return False

        except Exception as e:
            logger.error(f"Error sending webhook alert: {e}")
            return False

"""
Alerting - Threshold Alert Base.

============================================================
STATE MACHINE
============================================================
idle -> firing:  metric > threshold and cooldown elapsed
firing:          effective threshold = max(threshold, last value)
firing -> idle:  metric no longer above the effective threshold

A disabled alert, or one still inside its cooldown, is not
evaluated at all.

State lives in memory only and resets on restart.

============================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from core.clock import ClockProtocol, SystemClock
from instances.host import get_hostname

from .notifier import WebhookNotifier


logger = logging.getLogger(__name__)


@dataclass
class AlertOptions:
    """Static settings of one alert."""

    name: str
    emoji: str
    cooldown: float
    """Minimum seconds between two notifications."""

    enabled: bool = True


class ThresholdAlert(ABC):
    """
    Alert on a metric exceeding a threshold, with cooldown
    and hysteresis.

    Subclasses implement measure(), create_alert_message()
    and get_alert_description().
    """

    def __init__(
        self,
        options: AlertOptions,
        threshold: int,
        notifier: WebhookNotifier,
        clock: Optional[ClockProtocol] = None,
    ):
        self.options = options
        self.threshold = threshold
        self._notifier = notifier
        self._clock = clock or SystemClock()

        self.last_alert_sent: Optional[datetime] = None
        self.is_firing = False
        self.last_value = 0

    @property
    def name(self) -> str:
        return self.options.name

    # --------------------------------------------------------
    # Subclass hooks
    # --------------------------------------------------------

    @abstractmethod
    async def measure(self) -> int:
        """Read the current metric value."""
        pass

    @abstractmethod
    def create_alert_message(self) -> Dict[str, Any]:
        """Build the webhook payload for the last measured value."""
        pass

    @abstractmethod
    def get_alert_description(self) -> str:
        pass

    # --------------------------------------------------------
    # Evaluation
    # --------------------------------------------------------

    def in_cooldown(self) -> bool:
        if self.last_alert_sent is None:
            return False
        elapsed = self._clock.now() - self.last_alert_sent
        return elapsed < timedelta(seconds=self.options.cooldown)

    async def check_should_send_alert(self) -> bool:
        value = await self.measure()
        threshold = max(self.threshold, self.last_value) if self.is_firing else self.threshold
        self.last_value = value
        return value > threshold

    async def check(self) -> bool:
        """
        Evaluate the alert once.

        Returns:
            True if a notification was sent
        """
        try:
            if not self.options.enabled:
                return False

            if self.in_cooldown():
                return False

            should_alert = await self.check_should_send_alert()
            if should_alert:
                await self._notifier.send(self.create_alert_message())
                self.last_alert_sent = self._clock.now()
                logger.info(f"Sent {self.name} - {self.get_alert_description()}")

            self.is_firing = should_alert
            return should_alert

        except Exception as e:
            logger.error(f"Error checking {self.name}: {e}")
            return False

    # --------------------------------------------------------
    # Message envelope
    # --------------------------------------------------------

    def create_base_message(self, title: str, text: str) -> Dict[str, Any]:
        emoji = self.options.emoji
        return {
            "text": f"{emoji} *{title}*",
            "blocks": [
                {
                    "type": "header",
                    "text": {
                        "type": "plain_text",
                        "text": f"{emoji} {title}",
                        "emoji": True,
                    },
                },
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": text,
                    },
                },
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": (
                                f"*Hostname:* {get_hostname()} | "
                                f"*Time:* {self._clock.format_iso()}"
                            ),
                        },
                    ],
                },
            ],
        }

    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.options.enabled,
            "is_firing": self.is_firing,
            "last_value": self.last_value,
            "last_alert_sent": self.last_alert_sent.isoformat() if self.last_alert_sent else None,
        }

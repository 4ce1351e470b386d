"""
Alerting - Alerts Service.

============================================================
RESPONSIBILITY
============================================================
Evaluates every alert on a fixed interval.

- Only the primary instance evaluates, except in
  development mode
- One evaluation round runs right after start
- A failing alert never stops the round

============================================================
"""

import logging
from typing import Any, Dict, List, Optional

from core.config import AlertsConfig
from core.exceptions import MissingConfigError
from instances.service import InstancesService
from services.base import Service
from services.timers import PeriodicTask

from .base import ThresholdAlert
from .notifier import WebhookNotifier


logger = logging.getLogger(__name__)


class AlertsService(Service):
    """Periodic alert evaluation on the primary instance."""

    name = "alerts"

    def __init__(
        self,
        config: AlertsConfig,
        alerts: List[ThresholdAlert],
        notifier: WebhookNotifier,
        instances: Optional[InstancesService],
        development: bool = False,
    ):
        """
        Args:
            config: Alert settings
            alerts: Alerts evaluated each round, in order
            notifier: Webhook notifier shared by the alerts
            instances: Instance registry used for primary gating
            development: Evaluate regardless of primary status
        """
        self._config = config
        self.alerts = alerts
        self._notifier = notifier
        self._instances = instances
        self._development = development
        self._timer: Optional[PeriodicTask] = None
        self.rounds = 0

    async def start(self) -> None:
        """
        Raises:
            MissingConfigError: No webhook URL configured
        """
        if not self._notifier.is_configured:
            logger.error("Alert service is enabled, but no webhook URL configured")
            raise MissingConfigError("ALERTS_WEBHOOK_URL", "required when alerts are enabled")

        logger.info("Starting alerts service (checks will only run on primary instance)")
        self._timer = PeriodicTask(
            "alerts-check",
            self._config.check_interval,
            self.check_alerts,
            run_immediately=True,
        )
        self._timer.start()

    async def stop(self) -> None:
        if self._timer is not None:
            await self._timer.cancel()
            self._timer = None
        await self._notifier.close()

    def should_evaluate(self) -> bool:
        if self._development:
            return True
        return self._instances is not None and self._instances.is_primary_instance()

    async def check_alerts(self) -> None:
        """Evaluate every alert once."""
        try:
            if not self.should_evaluate():
                return

            self.rounds += 1
            for alert in self.alerts:
                await alert.check()
        except Exception as e:
            logger.error(f"Error checking alert metrics: {e}")

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": self.name,
            "timer": self._timer.is_running if self._timer else False,
            "alerts": [alert.get_state() for alert in self.alerts],
        }

"""
Alerting - Concrete Alerts.

- ScalingAlert: too many live instances
- SessionsAlert: too many new sessions in a trailing window
"""

from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import ClockProtocol
from core.config import AlertsConfig
from database.models import SessionModel
from instances.repository import InstanceRepository

from .base import AlertOptions, ThresholdAlert
from .notifier import WebhookNotifier


class ScalingAlert(ThresholdAlert):
    """Alerts when more live instances than the threshold exist."""

    def __init__(
        self,
        config: AlertsConfig,
        repository: InstanceRepository,
        stale_threshold: float,
        notifier: WebhookNotifier,
        clock: Optional[ClockProtocol] = None,
    ):
        super().__init__(
            AlertOptions(
                name="ScalingAlert",
                emoji=":chart_with_upwards_trend:",
                cooldown=config.cooldown,
                enabled=config.scaling_enabled,
            ),
            threshold=config.scaling_threshold,
            notifier=notifier,
            clock=clock,
        )
        self._repository = repository
        self._stale_threshold = stale_threshold

    async def measure(self) -> int:
        # Stale rows awaiting cleanup are not counted
        return await self._repository.count(since=self._clock.ago(self._stale_threshold))

    def create_alert_message(self) -> Dict[str, Any]:
        return self.create_base_message(
            "Scaling Alert",
            f"The number of active instances `{self.last_value}` exceeds "
            f"the threshold of `{self.threshold}`.",
        )

    def get_alert_description(self) -> str:
        return f"{self.last_value} instances detected"


class SessionsAlert(ThresholdAlert):
    """Alerts when too many sessions were created recently."""

    def __init__(
        self,
        config: AlertsConfig,
        session_factory: async_sessionmaker,
        notifier: WebhookNotifier,
        clock: Optional[ClockProtocol] = None,
    ):
        super().__init__(
            AlertOptions(
                name="SessionsAlert",
                emoji=":busts_in_silhouette:",
                cooldown=config.cooldown,
                enabled=config.sessions_enabled,
            ),
            threshold=config.sessions_threshold,
            notifier=notifier,
            clock=clock,
        )
        self._session_factory = session_factory
        self.window = config.sessions_window

    async def measure(self) -> int:
        window_start = self._clock.ago(self.window)
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(SessionModel)
                .where(SessionModel.created_at >= window_start)
            )
            return int(result.scalar_one())

    def create_alert_message(self) -> Dict[str, Any]:
        return self.create_base_message(
            "Sessions Alert",
            f"The number of new sessions `{self.last_value}` in the last "
            f"{self.window:g} seconds exceeds the threshold `{self.threshold}`.",
        )

    def get_alert_description(self) -> str:
        return f"{self.last_value} new sessions detected"

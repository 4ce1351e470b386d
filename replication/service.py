"""
Replication - Background Service.

Runs the replicator on a timer on a destination deployment.
Only the primary instance replicates, except in development
mode.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from instances.service import InstancesService
from services.base import Service
from services.timers import PeriodicTask

from .replicator import Replicator


logger = logging.getLogger(__name__)


class ReplicationService(Service):
    """Periodic replication, gated on primary status."""

    name = "replication"

    def __init__(
        self,
        replicator: Replicator,
        instances: Optional[InstancesService],
        interval: float,
        development: bool = False,
    ):
        """
        Args:
            replicator: Replicator to run on each tick
            instances: Instance registry used for primary gating
            interval: Seconds between runs (0 disables the timer)
            development: Run regardless of primary status
        """
        self._replicator = replicator
        self._instances = instances
        self._interval = interval
        self._development = development
        self._timer: Optional[PeriodicTask] = None
        self._lock = asyncio.Lock()

        self.last_result: Optional[Dict[str, int]] = None
        self.last_error: Optional[str] = None

    async def start(self) -> None:
        if self._interval <= 0:
            logger.info("Replication timer disabled (REPLICATION_INTERVAL is 0)")
            return

        self._timer = PeriodicTask("replication", self._interval, self.run_scheduled)
        self._timer.start()
        logger.info(f"Replication scheduled every {self._interval}s")

    async def stop(self) -> None:
        if self._timer is not None:
            await self._timer.cancel()
            self._timer = None

    def should_run(self) -> bool:
        if self._development:
            return True
        return self._instances is not None and self._instances.is_primary_instance()

    async def run_scheduled(self) -> None:
        """Timer tick: replicate if this instance is primary."""
        if not self.should_run():
            logger.debug("Skipping replication on non-primary instance")
            return

        try:
            await self.run_once()
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Scheduled replication failed: {e}")

    async def run_once(self) -> Dict[str, int]:
        """Run one replication; concurrent calls are serialized."""
        async with self._lock:
            result = await self._replicator.run()
        self.last_result = result
        self.last_error = None
        return result

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "status": "error" if self.last_error else "healthy",
            "service": self.name,
            "timer": self._timer.is_running if self._timer else False,
            "last_result": self.last_result,
            "last_error": self.last_error,
        }

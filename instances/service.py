"""
Instances - Registry & Leader Election Service.

============================================================
RESPONSIBILITY
============================================================
Gives every process a row in the shared instances table and
converges on one primary instance using timestamps only.

- Register on start, deregister on stop
- Heartbeat every H
- Primary check (and stale cleanup) every 2H
- The oldest live instance (by start_time) is primary

============================================================
FAILURE SEMANTICS
============================================================
Every store error is logged and swallowed. A failed tick is
retried on the next tick. Two primaries (or none) may exist
for up to one primary-check interval.

============================================================
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from core.clock import ClockProtocol, SystemClock
from core.config import DEFAULT_VERSION, InstancesConfig
from services.base import Service
from services.timers import PeriodicTask

from .host import get_hostname, get_ip_address, get_metadata
from .repository import InstanceRepository


logger = logging.getLogger(__name__)


class InstancesService(Service):
    """
    Instance registry and leader election.

    Usage:
        service = InstancesService(config.instances, repository, port=8787)
        await service.start()
        if service.is_primary_instance():
            ...
        await service.stop()
    """

    name = "instances"

    def __init__(
        self,
        config: InstancesConfig,
        repository: InstanceRepository,
        clock: Optional[ClockProtocol] = None,
        port: Optional[int] = None,
        version: str = DEFAULT_VERSION,
    ):
        """
        Args:
            config: Heartbeat timing
            repository: Instance row primitives
            clock: Time source (SystemClock by default)
            port: Port reported in the instance row
            version: Application version reported in metadata
        """
        self._config = config
        self._repository = repository
        self._clock = clock or SystemClock()
        self._port = port
        self._version = version

        self.instance_id: Optional[str] = None
        self._is_primary = False

        self._heartbeat_timer = PeriodicTask(
            "instances-heartbeat",
            config.heartbeat_interval,
            self.update_heartbeat,
        )
        self._primary_check_timer = PeriodicTask(
            "instances-primary-check",
            config.primary_check_interval,
            self.run_primary_check,
        )

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def start(self) -> None:
        """Register this instance and schedule both timers."""
        await self.register_instance()

        self._heartbeat_timer.start()
        self._primary_check_timer.start()

    async def stop(self) -> None:
        """Cancel the timers and remove this instance's row."""
        await self._heartbeat_timer.cancel()
        await self._primary_check_timer.cancel()

        await self.deregister_instance()

    # --------------------------------------------------------
    # Registration
    # --------------------------------------------------------

    async def register_instance(self) -> None:
        try:
            now = self._clock.now()
            instance = await self._repository.create(
                ip_address=get_ip_address(),
                hostname=get_hostname(),
                port=self._port,
                start_time=now,
                last_heartbeat=now,
                is_primary=False,
                metadata=get_metadata(self._version),
            )
            self.instance_id = instance.instance_id
            logger.info(f"Instance registered with ID: {self.short_instance_id}")

            await self.check_primary_status()
        except Exception as e:
            logger.error(f"Failed to register instance: {e}")

    async def deregister_instance(self) -> None:
        if self.instance_id is None:
            return

        try:
            await self._repository.delete(self.instance_id)
            logger.info(f"Instance {self.short_instance_id} deregistered")
        except Exception as e:
            logger.error(f"Failed to deregister instance: {e}")
        finally:
            self.instance_id = None
            self._is_primary = False

    # --------------------------------------------------------
    # Timer ticks
    # --------------------------------------------------------

    async def update_heartbeat(self) -> None:
        """Refresh this instance's heartbeat and host metadata."""
        if self.instance_id is None:
            return

        try:
            await self._repository.update_heartbeat(
                self.instance_id,
                self._clock.now(),
                metadata=get_metadata(self._version),
            )
        except Exception as e:
            logger.error(f"Failed to update heartbeat: {e}")

    async def check_primary_status(self) -> None:
        """
        Claim or release primary status.

        The oldest live instance is the intended primary. This
        instance only ever writes its own flag; a demoted
        primary steps down on its own next check.
        """
        if self.instance_id is None:
            return

        try:
            instances = await self._repository.list_live(self._stale_cutoff())

            if not instances:
                logger.warning(
                    f"No active instances found when checking for primary status. "
                    f"The current instance ({self.short_instance_id}) seems to not be visible?"
                )
                return

            is_oldest = instances[0].instance_id == self.instance_id

            if not self._is_primary and is_oldest:
                await self._set_primary_status(True)
            elif self._is_primary and not is_oldest:
                await self._set_primary_status(False)
        except Exception as e:
            logger.error(f"Error when checking primary status: {e}")

    async def cleanup_stale_instances(self) -> None:
        """Delete stale rows. Only the primary instance does this."""
        if not self._is_primary:
            return

        try:
            deleted = await self._repository.delete_stale(self._stale_cutoff())
            if deleted > 0:
                logger.info(
                    f"Primary instance {self.short_instance_id} cleaned up "
                    f"{deleted} stale instance(s)"
                )
        except Exception as e:
            logger.error(f"Failed to cleanup stale instances: {e}")

    async def run_primary_check(self) -> None:
        """Primary-check timer tick."""
        await self.check_primary_status()
        await self.cleanup_stale_instances()

    async def _set_primary_status(self, value: bool) -> None:
        try:
            await self._repository.set_primary(self.instance_id, value)
            self._is_primary = value

            if value:
                logger.info(f"Instance {self.short_instance_id} is now the primary instance.")
            else:
                logger.info(f"Instance {self.short_instance_id} released primary status.")
        except Exception as e:
            logger.error(f"Failed to set primary status: {e}")

    # --------------------------------------------------------
    # Queries
    # --------------------------------------------------------

    def is_primary_instance(self) -> bool:
        """Whether this process currently believes it is primary."""
        return self._is_primary

    @property
    def short_instance_id(self) -> str:
        return self.instance_id[:8] if self.instance_id else "n/a"

    def _stale_cutoff(self) -> datetime:
        return self._clock.ago(self._config.stale_threshold)

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.instance_id else "unregistered",
            "service": self.name,
            "instance_id": self.instance_id,
            "is_primary": self._is_primary,
            "heartbeat_timer": self._heartbeat_timer.is_running,
            "primary_check_timer": self._primary_check_timer.is_running,
        }

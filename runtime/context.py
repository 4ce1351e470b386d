"""
Runtime - Application Context.

============================================================
RESPONSIBILITY
============================================================
Owns every long-lived object of one process and wires them
together explicitly:

- configuration and clock
- database engine
- instance registry, alerts and replication services
- the service registry that starts and stops them

Nothing here is a module-level singleton; the context is
passed to the HTTP app and the CLI.

============================================================
STARTUP ORDER
============================================================
1. Connect the database
2. Apply migrations (DATABASE_AUTO_MIGRATE)
3. Wire services
4. Start services: instances -> alerts, instances -> replication

============================================================
"""

import logging
from typing import Any, Dict, Optional

from alerting.evaluators import ScalingAlert, SessionsAlert
from alerting.notifier import WebhookNotifier
from alerting.service import AlertsService
from core.clock import ClockProtocol, SystemClock
from core.config import AppConfig
from core.exceptions import ConfigurationError
from database.engine import Database
from database.versioning import run_migrations
from instances.repository import InstanceRepository
from instances.service import InstancesService
from replication.client import ReplicationClient
from replication.replicator import Replicator
from replication.service import ReplicationService
from services.registry import ServiceRegistry


logger = logging.getLogger(__name__)


class AppContext:
    """Process-wide wiring of configuration, store and services."""

    def __init__(
        self,
        config: AppConfig,
        clock: Optional[ClockProtocol] = None,
        database: Optional[Database] = None,
    ):
        self.config = config
        self.clock = clock or SystemClock()
        self.database = database or Database(config.database)
        self.registry = ServiceRegistry()

        self.instance_repository: Optional[InstanceRepository] = None
        self.instances: Optional[InstancesService] = None
        self.alerts: Optional[AlertsService] = None
        self.notifier: Optional[WebhookNotifier] = None
        self.replication: Optional[ReplicationService] = None
        self.replication_client: Optional[ReplicationClient] = None

        self._wired = False
        self._started = False

    # --------------------------------------------------------
    # Wiring
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Connect the store, migrate it if enabled, wire services."""
        await self.database.connect()
        if self.config.database.auto_migrate:
            await run_migrations(self.database.engine)
        self.wire_services()

    def wire_services(self) -> None:
        """Build and register services (requires a connected database)."""
        if self._wired:
            return

        config = self.config
        session_factory = self.database.session_factory
        self.instance_repository = InstanceRepository(session_factory)

        if config.instances.enabled:
            self.instances = InstancesService(
                config.instances,
                self.instance_repository,
                clock=self.clock,
                port=config.port,
                version=config.version,
            )
            self.registry.register(self.instances)

        gated_on = ["instances"] if self.instances else []

        if config.alerts.enabled:
            self.notifier = WebhookNotifier(config.alerts.webhook_url)
            alerts = [
                ScalingAlert(
                    config.alerts,
                    self.instance_repository,
                    config.instances.stale_threshold,
                    self.notifier,
                    clock=self.clock,
                ),
                SessionsAlert(config.alerts, session_factory, self.notifier, clock=self.clock),
            ]
            self.alerts = AlertsService(
                config.alerts,
                alerts,
                self.notifier,
                self.instances,
                development=config.is_development,
            )
            self.registry.register(self.alerts, dependencies=gated_on)

        if config.replication.is_destination and config.replication.source:
            self.replication_client = ReplicationClient(
                config.replication.source,
                api_key=config.replication.source_api_key,
                version=config.version,
            )
            replicator = Replicator(
                self.database,
                self.replication_client,
                chunk_size=config.replication.chunk_size,
            )
            self.replication = ReplicationService(
                replicator,
                self.instances,
                interval=config.replication.interval,
                development=config.is_development,
            )
            self.registry.register(self.replication, dependencies=gated_on)

        self._wired = True

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def startup(self) -> None:
        """Connect and start every service in dependency order."""
        if self._started:
            return

        await self.connect()
        started = await self.registry.start_all()
        self._started = True
        logger.info(f"Startup complete, services running: {', '.join(started) or 'none'}")

    async def shutdown(self) -> None:
        """Stop services, close outbound clients, dispose the engine."""
        await self.registry.stop_all()

        if self.notifier is not None:
            await self.notifier.close()
        if self.replication_client is not None:
            await self.replication_client.close()

        await self.database.dispose()
        self._started = False
        logger.info("Shutdown complete")

    # --------------------------------------------------------
    # Operations
    # --------------------------------------------------------

    async def run_replication(self) -> Dict[str, int]:
        """
        Run one replication from the configured source.

        Raises:
            ConfigurationError: This deployment is not a destination
        """
        if self.replication is None:
            raise ConfigurationError(
                "Replication destination is not configured "
                "(REPLICATION_ROLE=destination and REPLICATION_SOURCE are required)"
            )
        return await self.replication.run_once()

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "version": self.config.version,
            "services": self.registry.get_health_status(),
        }


def build_context(config: AppConfig, clock: Optional[ClockProtocol] = None) -> AppContext:
    """Create an unconnected context for ``config``."""
    return AppContext(config, clock=clock)

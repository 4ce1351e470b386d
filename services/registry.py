"""
Services - Service Registry.

============================================================
RESPONSIBILITY
============================================================
Starts and stops background services in dependency order.

- Register services with dependencies
- Resolve startup order (topological)
- Stop in reverse order
- Track per-service status

============================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .base import Service


logger = logging.getLogger(__name__)


class ServiceStatus(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ServiceEntry:
    service: Service
    dependencies: List[str] = field(default_factory=list)
    critical: bool = False
    status: ServiceStatus = ServiceStatus.NOT_STARTED
    error: Optional[str] = None


# ============================================================
# DEPENDENCY GRAPH
# ============================================================

class DependencyGraph:
    """
    Service dependencies and resolution order.

    Uses a depth-first topological sort; insertion order is
    kept among independent services.
    """

    def __init__(self):
        self._edges: Dict[str, List[str]] = {}

    def add_node(self, name: str, dependencies: Optional[List[str]] = None) -> None:
        self._edges[name] = list(dependencies or [])
        for dep in dependencies or []:
            self._edges.setdefault(dep, [])

    def get_startup_order(self) -> List[str]:
        """
        Get nodes in startup order (dependencies first).

        Raises:
            ValueError: If a circular dependency is detected
        """
        visited: Set[str] = set()
        temp_visited: Set[str] = set()
        order: List[str] = []

        def visit(node: str) -> None:
            if node in temp_visited:
                raise ValueError(f"Circular dependency detected involving: {node}")
            if node in visited:
                return

            temp_visited.add(node)
            for dep in self._edges.get(node, []):
                visit(dep)
            temp_visited.remove(node)

            visited.add(node)
            order.append(node)

        for node in self._edges:
            visit(node)

        return order


# ============================================================
# SERVICE REGISTRY
# ============================================================

class ServiceRegistry:
    """Registry and lifecycle manager for background services."""

    def __init__(self):
        self._entries: Dict[str, ServiceEntry] = {}
        self._graph = DependencyGraph()

    def register(
        self,
        service: Service,
        dependencies: Optional[List[str]] = None,
        critical: bool = False,
    ) -> None:
        """
        Register a service.

        Args:
            service: Service instance (its name must be unique)
            dependencies: Names of services that must start first
            critical: Abort startup when this service fails to start
        """
        if service.name in self._entries:
            raise ValueError(f"Service already registered: {service.name}")

        self._entries[service.name] = ServiceEntry(
            service=service,
            dependencies=list(dependencies or []),
            critical=critical,
        )
        self._graph.add_node(service.name, dependencies)
        logger.debug(f"Registered service: {service.name}")

    def get(self, name: str) -> Optional[Service]:
        entry = self._entries.get(name)
        return entry.service if entry else None

    def status_of(self, name: str) -> Optional[ServiceStatus]:
        entry = self._entries.get(name)
        return entry.status if entry else None

    def get_startup_order(self) -> List[str]:
        return [name for name in self._graph.get_startup_order() if name in self._entries]

    def get_shutdown_order(self) -> List[str]:
        return list(reversed(self.get_startup_order()))

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def start_all(self) -> List[str]:
        """
        Start all services in dependency order.

        A non-critical failure is logged and its dependents are
        skipped; a critical failure is re-raised.

        Returns:
            Names of services that started
        """
        started = []

        for name in self.get_startup_order():
            entry = self._entries[name]
            if entry.status == ServiceStatus.RUNNING:
                continue

            missing = [
                dep for dep in entry.dependencies
                if dep not in self._entries
                or self._entries[dep].status != ServiceStatus.RUNNING
            ]
            if missing:
                entry.status = ServiceStatus.SKIPPED
                entry.error = f"Dependencies not running: {', '.join(missing)}"
                logger.warning(f"Skipping service {name}: {entry.error}")
                continue

            try:
                await entry.service.start()
                entry.status = ServiceStatus.RUNNING
                entry.error = None
                started.append(name)
                logger.info(f"Started service: {name}")
            except Exception as e:
                entry.status = ServiceStatus.FAILED
                entry.error = str(e)
                logger.error(f"Failed to start service {name}: {e}")
                if entry.critical:
                    raise

        return started

    async def stop_all(self) -> List[str]:
        """
        Stop running services in reverse dependency order.

        Returns:
            Names of services that stopped
        """
        stopped = []

        for name in self.get_shutdown_order():
            entry = self._entries[name]
            if entry.status != ServiceStatus.RUNNING:
                continue

            try:
                await entry.service.stop()
                entry.status = ServiceStatus.STOPPED
                stopped.append(name)
                logger.info(f"Stopped service: {name}")
            except Exception as e:
                entry.status = ServiceStatus.FAILED
                entry.error = str(e)
                logger.error(f"Failed to stop service {name}: {e}")

        return stopped

    def get_health_status(self) -> Dict[str, Any]:
        """Aggregate health of every registered service."""
        result = {}
        for name, entry in self._entries.items():
            if entry.status == ServiceStatus.RUNNING:
                try:
                    result[name] = entry.service.get_health_status()
                except Exception as e:
                    result[name] = {"status": "error", "error": str(e)}
            else:
                result[name] = {"status": entry.status.value, "error": entry.error}
        return result

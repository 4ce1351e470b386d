"""
Services - Base Class.

A service is a long-running background component with an
explicit start/stop lifecycle. Services own their timers
and hold no global state.
"""

from typing import Any, Dict


class Service:
    """Base class for background services."""

    name: str = "service"

    async def start(self) -> None:
        """Start the service. Default does nothing."""
        pass

    async def stop(self) -> None:
        """Stop the service. Default does nothing."""
        pass

    def get_health_status(self) -> Dict[str, Any]:
        """Default health status."""
        return {"status": "healthy", "service": self.name}

"""
Services Package.

Lifecycle plumbing for background services: the base class,
interval timers and the dependency-ordered registry.
"""

from .base import Service
from .timers import PeriodicTask
from .registry import DependencyGraph, ServiceRegistry, ServiceStatus

__all__ = [
    "Service",
    "PeriodicTask",
    "DependencyGraph",
    "ServiceRegistry",
    "ServiceStatus",
]

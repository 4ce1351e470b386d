"""
Instances Package.

Instance registry and leader election over the shared store.
"""

from .repository import InstanceRepository
from .service import InstancesService

__all__ = [
    "InstanceRepository",
    "InstancesService",
]

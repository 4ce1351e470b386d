"""
Instances - Host Probes.

Observability metadata attached to the instance row:
network address, hostname and resource stats.
"""

import platform
import socket
import time
from typing import Any, Dict

import psutil


def get_ip_address() -> str:
    """First non-loopback IPv4 address, or "n/a"."""
    for addresses in psutil.net_if_addrs().values():
        for address in addresses:
            if address.family == socket.AF_INET and not address.address.startswith("127."):
                return address.address
    return "n/a"


def get_hostname() -> str:
    return socket.gethostname()


def get_metadata(version: str) -> Dict[str, Any]:
    """Host stats refreshed with every heartbeat."""
    memory = psutil.virtual_memory()
    return {
        "version": version,
        "system_uptime": int(time.time() - psutil.boot_time()),
        "platform": platform.system().lower(),
        "arch": platform.machine(),
        "python_version": platform.python_version(),
        "cpus": psutil.cpu_count() or 0,
        "memory": memory.total,
        "free_memory": memory.available,
    }

"""
API Package.

FastAPI HTTP surface: public info routes and the
replication endpoints.
"""

from .app import API_PREFIX, create_app
from .errors import AppError

__all__ = [
    "API_PREFIX",
    "create_app",
    "AppError",
]

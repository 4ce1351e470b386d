"""
Runtime Package.

Process wiring (AppContext) and the command-line interface.
"""

from .context import AppContext, build_context

__all__ = [
    "AppContext",
    "build_context",
]

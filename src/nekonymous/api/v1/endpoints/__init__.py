# src/nekonymous/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .system import router as system_router
from .webhook import router as webhook_router

__all__ = [
    "system_router",
    "webhook_router",
]

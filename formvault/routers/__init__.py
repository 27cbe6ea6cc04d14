"""HTTP routers package."""

from .export_router import create_export_router

__all__ = [
    "create_export_router",
]

"""API routes package."""
from .system import router as system_router
from .odds import router as odds_router

__all__ = [
    "system_router",
    "odds_router",
]

"""API layer for trip assist."""
from .routes import router

__all__ = ["router"]

"""API routes for the trip wizard."""
from .routes import router

__all__ = ["router"]

"""API layer - Endpoints de salud y estadísticas del publisher."""

from .app import create_app
from .health import router as health_router

__all__ = ["create_app", "health_router"]

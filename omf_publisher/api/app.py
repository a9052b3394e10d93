from __future__ import annotations

from fastapi import FastAPI

from .. import __version__
from ..core.publisher import OmfPublisher
from .health import router as health_router


def create_app(publisher: OmfPublisher) -> FastAPI:
    """App de estado para un publisher ya construido por el host."""
    app = FastAPI(title="OMF Publisher", version=__version__)
    app.state.publisher = publisher
    app.include_router(health_router)
    return app

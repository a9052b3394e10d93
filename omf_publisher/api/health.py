"""Health and stats endpoints."""

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(tags=["health"])


def _publisher(request: Request):
    return request.app.state.publisher


@router.get("/health")
def health():
    """Liveness check: always ok while the process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    """Readiness check: publisher configured and scheduler running."""
    status = _publisher(request).health()
    if not status.healthy:
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/publisher/health")
def publisher_health(request: Request):
    return _publisher(request).health().to_dict()


@router.get("/publisher/stats")
def publisher_stats(request: Request):
    """Contadores de ingesta/entrega, cola in-flight, esquema conocido y scheduler."""
    return _publisher(request).get_stats()

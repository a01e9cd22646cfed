"""Health check endpoints.

- /healthz: Liveness probe (is the process alive?)
- /readyz: Readiness probe (are the store and streaming client wired?)
- /health: Combined view
- /metrics: Prometheus metrics endpoint
"""

from typing import Any

from fastapi import APIRouter, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from avatar_console.config.settings import get_settings

router = APIRouter(tags=["health"])

# Summarizer is optional: without a completion client summaries use the fallback
CRITICAL_COMPONENTS = ("store", "streaming")

_ready: bool = False
_components: dict[str, bool] = {
    "store": False,
    "streaming": False,
    "summarizer": False,
}


def set_ready(ready: bool) -> None:
    """Set overall readiness status."""
    global _ready
    _ready = ready


def set_component_health(component: str, healthy: bool) -> None:
    """Set health status for a known component."""
    if component in _components:
        _components[component] = healthy


def get_component_health() -> dict[str, bool]:
    return _components.copy()


def _is_ready() -> bool:
    return _ready and all(_components[c] for c in CRITICAL_COMPONENTS)


@router.get("/healthz", response_model=dict[str, str])
async def healthz() -> dict[str, str]:
    """Liveness probe. Returns 200 while the process is alive."""
    return {"status": "alive"}


@router.get("/readyz")
async def readyz(response: Response) -> dict[str, Any]:
    """Readiness probe. 503 until the critical components are up."""
    if _is_ready():
        return {"status": "ready", "components": get_component_health()}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "not_ready", "components": get_component_health()}


@router.get("/health")
async def health(response: Response) -> dict[str, Any]:
    """Combined liveness and readiness information."""
    ready = _is_ready()
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if ready else "degraded",
        "ready": _ready,
        "summaries": "llm" if _components["summarizer"] else "fallback",
        "components": get_component_health(),
    }


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus exposition format. 404 when metrics are disabled."""
    if not get_settings().metrics_enabled:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

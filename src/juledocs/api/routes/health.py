"""Health check route."""

from fastapi import APIRouter, Request

from juledocs.dependencies import SettingsDep
from juledocs.models.schemas import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request, settings: SettingsDep) -> HealthResponse:
    """Return service health and whether the highlighter is set up."""
    ready = getattr(request.app.state, "highlighter", None) is not None
    return HealthResponse(status="ok", app_name=settings.app_name, ready=ready)

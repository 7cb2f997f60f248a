"""HTTP routes: viewer page, health check and metrics."""

from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Response, status
from fastapi.responses import FileResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from pyrock.api.schemas import HealthResponse
from pyrock.core.dependencies import SessionManagerDep, SettingsDep

router = APIRouter()


@router.get("/", include_in_schema=False)
async def index(settings: SettingsDep) -> FileResponse:
    """Serve the viewer page."""
    index_path = settings.static_path / "index.html"
    if not index_path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Viewer page not found")
    return FileResponse(index_path)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Report service liveness and browser session readiness",
    tags=["Monitoring"],
    operation_id="getHealth",
)
async def health(session_manager: SessionManagerDep) -> HealthResponse:
    """Health check endpoint.

    The service itself is always reported ok; ``browser`` reflects whether the
    session can accept operations right now.
    """
    return HealthResponse(
        status="ok",
        browser=session_manager.is_ready(),
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics for monitoring",
    tags=["Monitoring"],
    operation_id="getMetrics",
    response_class=Response,
)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

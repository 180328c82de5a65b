"""FastAPI application."""

from fastapi import FastAPI

from tripline.api.routes.health import router as health_router
from tripline.api.routes.metrics import router as metrics_router
from tripline.api.routes.timeline import router as timeline_router
from tripline.api.routes.trips import router as trips_router
from tripline.api.routes.versions import router as versions_router
from tripline.config import get_settings
from tripline.utils.logging import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="Tripline Plan Versions API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(trips_router)
app.include_router(versions_router)
app.include_router(timeline_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Tripline Plan Versions API", "version": "0.1.0"}

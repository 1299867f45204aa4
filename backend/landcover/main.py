"""ASGI entrypoint of the land-cover viewer backend.

The service sits between a map client and the segmentation service: it
serves filtered coverage statistics and category roll-ups, keeps the
user's color overrides, and turns segmentation masks into overlay
descriptors with geographic bounds.

Example:
    Serve the API locally:
        $ uvicorn landcover.main:app --reload
"""

import fastapi
from fastapi.middleware import cors

from landcover.api import colors, coverage, masks
from landcover.core import config
from landcover.core import logging as core_logging


def create_app() -> fastapi.FastAPI:
    """Build the application from the current settings.

    Logging is configured first so router modules log with the configured
    level from the first request on.

    Returns:
        FastAPI app with the coverage, colors and masks routers, CORS for
        ``settings.allow_origins`` and a ``/health`` probe.
    """
    settings = config.get_settings()
    core_logging.configure_logging(settings.log_level)

    app = fastapi.FastAPI(title="Land Cover Viewer", version="0.1.0")
    for router in (coverage.router, colors.router, masks.router):
        app.include_router(router)

    app.add_middleware(
        cors.CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:  # type: ignore[misc]
        """Liveness check; does not contact the segmentation service."""
        return {"status": "ok"}

    return app


app = create_app()

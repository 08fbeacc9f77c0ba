from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from .api.routes import router as api_router
from .container import OrchestratorContainer, build_container
from .core.audit import AuditLoggingMiddleware
from .core.logging import configure_logging, get_logger

logger = get_logger(name=__name__)


def create_app(container: OrchestratorContainer | None = None) -> FastAPI:
    """Build the API around an explicitly constructed container."""
    container = container or build_container()
    settings = container.settings
    configure_logging(settings.observability.log_level, json_logs=settings.observability.json_logs)

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        await container.startup()
        try:
            yield
        finally:
            await container.shutdown()

    app = FastAPI(title="Friday Orchestrator", version="0.1.0", lifespan=app_lifespan)
    app.state.container = container
    app.add_middleware(AuditLoggingMiddleware, include_prefixes=(f"{settings.api_v1_prefix.rstrip('/')}/",))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get("/", tags=["health"])
    async def root() -> dict[str, str]:
        return {"message": "Friday orchestrator running"}

    if settings.observability.prometheus_enabled:

        @app.get("/metrics", tags=["observability"])
        async def metrics() -> Response:
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    logger.debug("app_created", api_prefix=settings.api_v1_prefix)
    return app

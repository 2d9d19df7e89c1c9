"""FastAPI application main module.

This module builds the FastAPI application for the RecoCache service:
routers, exception handlers, request logging and the health and metrics
endpoints. It also serves as the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recocache import __version__
from recocache.api.dependencies import TokenAuthenticator, build_orchestrator
from recocache.api.logging_config import RequestLoggingMiddleware, setup_logging
from recocache.api.metrics import metrics_service
from recocache.api.routes import recommend
from recocache.config import Settings, get_settings
from recocache.exceptions import GENERIC_FAILURE_MESSAGE, RecoCacheException
from recocache.recommender.orchestrator import RecommendationOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Release the orchestrator's fetch threads on shutdown."""
    yield
    logger.info("Shutting down recommendation orchestrator")
    app.state.orchestrator.close()


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[RecommendationOrchestrator] = None,
    authenticator: Optional[TokenAuthenticator] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Service settings. Defaults to environment settings.
        orchestrator: Pre-built orchestrator. Built from settings if omitted.
        authenticator: Token authenticator. Built from settings if omitted.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="RecoCache API",
        description="Cached, staleness-aware product recommendation service",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.orchestrator = orchestrator or build_orchestrator(settings)
    app.state.authenticator = authenticator or TokenAuthenticator(settings.api_tokens)

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(recommend.router)

    @app.exception_handler(RecoCacheException)
    async def recocache_exception_handler(
        request: Request, exc: RecoCacheException
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Unhandled service error",
                extra={"path": str(request.url.path), "details": exc.details},
            )
            error = GENERIC_FAILURE_MESSAGE
        else:
            error = exc.message
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": error},
        )

    @app.get("/ping")
    def ping() -> Dict[str, str]:
        """Health check endpoint.

        Returns:
            Dictionary with status key set to "ok".
        """
        return {"status": "ok"}

    @app.get("/metrics")
    def metrics() -> Dict[str, Any]:
        """Recommendation outcome counters and latency statistics."""
        return metrics_service.get_metrics()

    return app


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)

    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=8000,
    )


if __name__ == "__main__":
    main()

"""
Voilà Dashboard API Server.

JSON backend of the call-center dashboard.

API Endpoints:
- Dashboard: stats, calls, summaries, regions, bookings, breakdowns, trends
- KPI: chart data of the KPI page
- Frequent questions: question clusters and their questions
- Vapi chat: server-side proxy to the Vapi assistant
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voila_dashboard import __version__
from voila_dashboard.config import Settings, get_settings
from voila_dashboard.exceptions import VoilaError
from voila_dashboard.server.routes import chat_router, dashboard_router, kpi_router, questions_router

logger = logging.getLogger("voila_dashboard.server")

SERVICE_NAME = "voila-dashboard"


def configure_logging(settings: Settings) -> None:
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("voila_dashboard").setLevel(level)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the dashboard API application."""
    settings = settings or get_settings()
    configure_logging(settings)
    start_time = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {SERVICE_NAME} v{__version__}")
        yield
        logger.info(f"Shutting down {SERVICE_NAME}")
        client = getattr(app.state, "data_client", None)
        if client is not None:
            client.close()

    app = FastAPI(
        title="Voilà Dashboard API",
        description="Call statistics, KPI charts, frequent questions and chat proxy",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.data_client = None
    app.state.vapi_proxy = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VoilaError)
    async def voila_error_handler(request: Request, exc: VoilaError) -> JSONResponse:
        status_code = exc.status_code or 500
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse({"detail": exc.message, "code": exc.code}, status_code=status_code)

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "uptime_seconds": time.time() - start_time,
            "chat_provider": settings.chat_provider.value,
        }

    app.include_router(dashboard_router)
    app.include_router(kpi_router)
    app.include_router(questions_router)
    app.include_router(chat_router)

    return app


def main() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "voila_dashboard.server.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()

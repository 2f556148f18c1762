"""HTTP entry point for the adaptive practice service."""

import logging
import os

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adaptive_practice.api.routes import router
from adaptive_practice.config import get_settings


def configure_logging(production: bool) -> None:
    """JSON lines at INFO in production, colored console at DEBUG otherwise."""
    renderer = (
        structlog.processors.JSONRenderer() if production else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if production else logging.DEBUG
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app() -> FastAPI:
    application = FastAPI(title="Adaptive Practice", version="0.1.0")
    origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:8000")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.include_router(router)
    return application


configure_logging(os.getenv("ENV", "development").lower() == "production")
app = create_app()


def main() -> None:
    """Serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "adaptive_practice.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()

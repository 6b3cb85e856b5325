"""
FastAPI application entry point for Repo Monitor.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import ConfigStore, settings
from .api import status_router, approval_router, command_router, config_router
from .services.aggregation_service import ApprovalTracker
from .services.approval_service import ApprovalService
from .services.command_service import CommandHistory, CommandService
from .services.poller import RepoPoller


def configure_logging() -> None:
    """Configure structured logging for the whole process."""
    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = structlog.get_logger(__name__)


def create_app(
    config_store: Optional[ConfigStore] = None,
    poller: Optional[RepoPoller] = None,
    approval_service: Optional[ApprovalService] = None,
    command_service: Optional[CommandService] = None
) -> FastAPI:
    """Build the application with its services attached to ``app.state``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup
        logger.info("Starting Repo Monitor", version=__version__, debug=settings.app_debug)

        config, path = app.state.config_store.load()
        if not config.repos:
            logger.warning("No repositories configured", config_path=str(path) if path else None)
        app.state.poller.start(config)

        yield

        # Shutdown
        logger.info("Shutting down Repo Monitor")
        app.state.poller.stop()

    app = FastAPI(
        title="Repo Monitor",
        description="GitHub repository status and Dependency Dashboard approvals",
        version=__version__,
        debug=settings.app_debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    poller = poller or RepoPoller()
    app.state.config_store = config_store or ConfigStore()
    app.state.poller = poller
    app.state.approval_tracker = ApprovalTracker(poller, approval_service=approval_service)
    app.state.command_service = command_service or CommandService()
    app.state.command_history = CommandHistory()

    app.include_router(status_router, prefix="/api/status", tags=["Status"])
    app.include_router(approval_router, prefix="/api/approvals", tags=["Approvals"])
    app.include_router(command_router, prefix="/api/commands", tags=["Commands"])
    app.include_router(config_router, prefix="/api/config", tags=["Config"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        snapshot = app.state.poller.store.snapshot()
        return {
            "status": "healthy",
            "version": __version__,
            "poller_running": app.state.poller.running,
            "last_update": snapshot.last_update.isoformat() if snapshot.last_update else None
        }

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "repo_monitor.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()

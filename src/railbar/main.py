"""
Main application entry point for RailBar.

This module sets up the FastAPI application, configures logging, wires the
polling engine together and starts polling for the lifetime of the app.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from . import __version__
from .config import Settings, get_settings
from .polling.batcher import QueryBatcher
from .polling.fetcher import DeploymentFetcher
from .polling.orchestrator import PollingController
from .polling.rate_limiter import RateLimitBudget
from .railway_client import RailwayClient
from .state.token_store import TokenStore, TokenStoreFactory
from .status_api import StatusAPI


def setup_logging(settings: Settings) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level), format="%(message)s"
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
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_controller(
    settings: Settings, token_store: TokenStore | None = None
) -> PollingController:
    """Wire budget, transport, batcher and fetcher into a controller."""
    budget = RateLimitBudget()
    client = RailwayClient(settings.transport_config, budget)
    polling_config = settings.polling_config
    batcher = QueryBatcher(client, polling_config.deployment_batch_size)
    fetcher = DeploymentFetcher(client, batcher)
    return PollingController(
        fetcher=fetcher,
        budget=budget,
        token_store=token_store or TokenStoreFactory.create_token_store(settings),
        ticker_interval_seconds=polling_config.ticker_interval_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    setup_logging(settings)
    logger = structlog.get_logger()

    logger.info("Starting RailBar", api_url=settings.railway_api_url)

    controller = build_controller(settings)
    app.state.controller = controller
    await controller.start()

    yield

    logger.info("Shutting down RailBar")
    await controller.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="RailBar",
        description="Railway deployment status monitor",
        version=__version__,
        lifespan=lifespan,
    )

    status_api = StatusAPI()
    app.include_router(status_api.router, tags=["status"])

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "RailBar", "version": __version__, "status": "active"}

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def main() -> None:
    """Main entry point."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings)
    logger = structlog.get_logger()
    server = settings.server_config

    logger.info(
        "Starting server", host=server.host, port=server.port, debug=server.debug
    )

    uvicorn.run(
        "railbar.main:app",
        host=server.host,
        port=server.port,
        reload=server.debug,
        log_config=None,  # We handle logging ourselves
    )


if __name__ == "__main__":
    main()

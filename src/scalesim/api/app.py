# src/scalesim/api/app.py
"""
FastAPI application factory for the scalesim API.

Uses the factory pattern so the app can be created with or without
lifespan management (e.g., tests skip opening the Kubernetes client).
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scalesim import __version__
from scalesim.api.routers import clusters, recommendations
from scalesim.api.routers import config as config_router
from scalesim.core.config import config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the price table on startup and close the cluster client on shutdown."""
    from scalesim.core.factory import get_cluster_store, get_price_table

    logger.info("Starting scalesim API...")
    price_table = get_price_table()
    logger.info("Price table ready with %d machine types.", len(price_table))
    yield
    logger.info("Shutting down scalesim API...")
    await get_cluster_store().close()


def create_app(use_lifespan: bool = False) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        use_lifespan: If True, attach the lifespan handler that loads the
                      price table and closes the Kubernetes client. Set to
                      False for testing.

    Returns:
        A configured FastAPI application instance.
    """
    app = FastAPI(
        title="scalesim API",
        description="Trial-based scale-up and scale-down recommendations for Kubernetes clusters.",
        version=__version__,
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan if use_lifespan else None,
    )

    if config.API_CORS_ALLOW_ALL:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Register API routers
    app.include_router(config_router.router, prefix="/api/v1", tags=["Config"])
    app.include_router(clusters.router, prefix="/api/v1", tags=["Clusters"])
    app.include_router(recommendations.router, prefix="/api/v1", tags=["Recommendations"])

    return app


def main():
    """Entry point for the scalesim-api console script."""
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    app = create_app(use_lifespan=True)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)

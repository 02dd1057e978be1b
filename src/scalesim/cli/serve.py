# src/scalesim/cli/serve.py
"""
Serve command: runs the scalesim HTTP API.
"""

import logging

import typer
import uvicorn
from typing_extensions import Annotated

from ..core.config import config

logger = logging.getLogger(__name__)


def serve(
    host: Annotated[str, typer.Option(help="Interface to bind the API to.")] = config.API_HOST,
    port: Annotated[int, typer.Option(help="Port to bind the API to.")] = config.API_PORT,
):
    """
    Start the scalesim API server.
    """
    from ..api.app import create_app

    logger.info("Starting scalesim API on %s:%d", host, port)
    uvicorn.run(create_app(use_lifespan=True), host=host, port=port)

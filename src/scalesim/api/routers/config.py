# src/scalesim/api/routers/config.py
"""
API routes for health and version information.
"""

import logging

from fastapi import APIRouter

from scalesim import __version__
from scalesim.api.schemas import HealthResponse, VersionResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/version", response_model=VersionResponse)
async def version():
    """Return the current application version."""
    return VersionResponse(version=__version__)

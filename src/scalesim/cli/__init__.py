# src/scalesim/cli/__init__.py
"""
scalesim CLI Package

This package exposes the top-level Typer `app` so tests and the console
entrypoint can import `scalesim.cli.app`.
"""

import logging

# Re-export commonly patched symbols for tests
from ..reporters.console_reporter import ConsoleReporter
from .main import app

logger = logging.getLogger(__name__)

__all__ = ["app", "ConsoleReporter"]

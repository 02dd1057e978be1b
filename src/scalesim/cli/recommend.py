# src/scalesim/cli/recommend.py
"""
Implements the `scale-up` and `scale-down` commands of the scalesim CLI.
"""

import asyncio
import logging
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from ..core.config import config
from ..core.exceptions import ScaleSimError
from ..core.factory import get_cluster_store, get_descriptor_provider, get_price_table
from ..core.scale_down import ScaleDownRecommender
from ..core.scale_up import run_scale_up
from ..exporters.json_exporter import JSONExporter
from ..models.recommendation import StrategyWeights
from ..reporters.console_reporter import ConsoleReporter

logger = logging.getLogger(__name__)


async def handle_export(data: Dict[str, Any], output_path: str) -> None:
    """Writes the report to a JSON file."""
    exporter = JSONExporter()
    path = Path(output_path)
    try:
        written_path = await exporter.export(data, str(path))
        logger.info("Successfully exported report to %s", written_path)
        print(f"Report exported to: {written_path}", file=sys.stderr)
    except Exception as e:
        logger.error("Failed to export report to %s: %s", path, e)
        logger.error(traceback.format_exc())
        raise typer.Exit(code=1)


def scale_up(
    cluster: Annotated[str, typer.Argument(help="Name of the cluster whose worker pools are used.")],
    least_waste: Annotated[
        float, typer.Option("--least-waste", min=0.0, help="Weight of the unused memory ratio.")
    ] = config.DEFAULT_LEAST_WASTE,
    least_cost: Annotated[
        float, typer.Option("--least-cost", min=0.0, help="Weight of the relative price ratio.")
    ] = config.DEFAULT_LEAST_COST,
    output: Annotated[Optional[str], typer.Option("--output", "-o", help="Write the report to this JSON file.")] = None,
):
    """
    Recommend units to add so that all pending workload gets placed.
    """
    logger.info("Running scale-up recommendation for cluster '%s'...", cluster)
    weights = StrategyWeights(least_waste=least_waste, least_cost=least_cost)

    async def _scale_up_async():
        store = get_cluster_store()
        try:
            report = await run_scale_up(store, get_descriptor_provider(), cluster, get_price_table(), weights)
        finally:
            await store.close()

        if output:
            await handle_export(report.model_dump(mode="json"), output)
        else:
            ConsoleReporter().report_scale_up(report)

    try:
        asyncio.run(_scale_up_async())
    except typer.Exit:
        raise
    except ScaleSimError as e:
        logger.error("Scale-up recommendation failed: %s", e)
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error("An unexpected error occurred: %s", e)
        logger.error(traceback.format_exc())
        raise typer.Exit(code=1)


def scale_down(
    output: Annotated[Optional[str], typer.Option("--output", "-o", help="Write the report to this JSON file.")] = None,
):
    """
    Recommend units that can be removed, testing the most expensive first.
    """
    logger.info("Running scale-down recommendation...")

    async def _scale_down_async():
        store = get_cluster_store()
        try:
            report = await ScaleDownRecommender(store, get_price_table()).run()
        finally:
            await store.close()

        if output:
            await handle_export(report.model_dump(mode="json"), output)
        else:
            ConsoleReporter().report_scale_down(report)

    try:
        asyncio.run(_scale_down_async())
    except typer.Exit:
        raise
    except ScaleSimError as e:
        logger.error("Scale-down recommendation failed: %s", e)
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error("An unexpected error occurred: %s", e)
        logger.error(traceback.format_exc())
        raise typer.Exit(code=1)

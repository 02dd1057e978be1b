# src/scalesim/cli/main.py
"""
Typer application behind the `scalesim` console script.

Scale-up and scale-down recommendations live in `recommend`, the HTTP API
launcher in `serve`; this module wires them up next to `version`.
"""

import logging

import typer

from ..core.config import config
from . import recommend, serve

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="scalesim",
    help="Recommend how to scale a Kubernetes cluster by running trials against a virtual cluster.",
    add_completion=False,
)


def version_callback(value: bool):
    if value:
        from .. import __version__

        typer.echo(f"scalesim version: {__version__}")
        raise typer.Exit()


@app.command()
def version():
    """Print the installed scalesim version."""
    from .. import __version__

    typer.echo(f"scalesim version: {__version__}")


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """
    Recommend node additions or removals for a cluster by trying them out
    against the kube-scheduler of a virtual cluster.
    """


# Register commands
app.command(name="scale-up")(recommend.scale_up)
app.command(name="scale-down")(recommend.scale_down)
app.command(name="serve")(serve.serve)


if __name__ == "__main__":
    app()

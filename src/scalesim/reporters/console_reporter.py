# src/scalesim/reporters/console_reporter.py
"""
A reporter that displays recommendation results in formatted tables in the console.
"""

import logging

from rich.console import Console
from rich.table import Table

from ..models.recommendation import ScaleDownReport, ScaleUpReport, Termination
from .base_reporter import BaseReporter

logger = logging.getLogger(__name__)


class ConsoleReporter(BaseReporter):
    """
    Renders scale-up and scale-down results to the console using the 'rich' library.
    """

    def __init__(self):
        self.console = Console()

    def report_scale_up(self, report: ScaleUpReport):
        """
        Displays every trial of every round, then the accumulated recommendation.
        """
        if report.termination == Termination.NOTHING_TO_DO:
            self.console.print("No unscheduled workload. Nothing to scale up.", style="green")
            return

        if report.rounds:
            table = Table(
                title="scalesim Scale-Up Trials",
                header_style="bold magenta",
                show_lines=True,
            )
            table.add_column("Round", style="bold", justify="right")
            table.add_column("Pool", style="cyan")
            table.add_column("Zone", style="cyan")
            table.add_column("Instance Type", style="dim")
            table.add_column("Waste", style="yellow", justify="right")
            table.add_column("Unscheduled", style="red", justify="right")
            table.add_column("Cost", style="green", justify="right")
            table.add_column("Score", style="bold", justify="right")
            table.add_column("Assigned", style="blue", justify="right")

            for result in report.rounds:
                for outcome in result.outcomes:
                    is_winner = result.winner is not None and outcome.unit_name == result.winner.unit_name
                    table.add_row(
                        str(result.round_number),
                        outcome.pool_name,
                        outcome.zone or "",
                        outcome.instance_type or "",
                        f"{outcome.waste_ratio:.4f}",
                        f"{outcome.unscheduled_ratio:.4f}",
                        f"{outcome.cost_ratio:.4f}",
                        f"{outcome.cumulative_score:.4f}",
                        f"{outcome.num_assigned_to_unit}/{outcome.num_assigned_total}",
                        style="bold green" if is_winner else None,
                    )

            self.console.print(table)

        self.report_recommendation(report)

    def report_recommendation(self, report: ScaleUpReport):
        if report.recommendation.is_empty:
            self.console.print(f"\nNo units to add ({report.termination.value}).", style="yellow")
            return

        table = Table(
            title="scalesim Scale-Up Recommendation",
            header_style="bold magenta",
            show_lines=True,
        )
        table.add_column("Pool/Zone", style="cyan")
        table.add_column("Units to add", style="green", justify="right")
        for key, count in report.recommendation.increments.items():
            table.add_row(key, str(count))
        self.console.print(table)

        style = "green" if report.termination == Termination.ALL_SCHEDULED else "yellow"
        self.console.print(
            f"Finished with {report.termination.value}: {report.remaining_unscheduled} workload units unscheduled, "
            f"estimated cost {report.estimated_hourly_cost:.4f} $/h.",
            style=style,
        )

    def report_scale_down(self, report: ScaleDownReport):
        if not (report.removable or report.essential or report.skipped):
            self.console.print("No capacity units to consider.", style="yellow")
            return

        table = Table(
            title="scalesim Scale-Down Recommendation",
            header_style="bold magenta",
            show_lines=True,
        )
        table.add_column("Unit", style="cyan")
        table.add_column("Decision", style="bold")

        for name in report.removable:
            table.add_row(name, "[green]remove[/green]")
        for name in report.essential:
            table.add_row(name, "[red]keep (essential)[/red]")
        for name in report.skipped:
            table.add_row(name, "[dim]keep (pre-existing)[/dim]")

        self.console.print(table)

"""VtSwap CLI - Command Line Interface.

This module provides the command-line interface for the VtSwap framework,
allowing users to inspect a design, rank swap candidates and run the full
multi-Vt leakage optimization on designs described as JSON files.

The CLI is built using Typer and uses Rich for formatted output.

Typical usage example:

  $ vtswap summary design.json
  $ vtswap run design.json --output report.json --save-design optimized.json
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .log_utils import setup_logging

app = typer.Typer(
    name="vtswap",
    help="VtSwap: Multi-Vt Leakage Power Optimization",
    no_args_is_help=True,
)
console = Console()


@app.callback(invoke_without_command=False)
def main(
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress debug logs (show warnings/errors only)"
    ),
):
    """VtSwap: Multi-Vt Leakage Power Optimization."""
    setup_logging(quiet=quiet)


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def load_technology(tech: Optional[Path]):
    """Loads a technology file, or the built-in STcmos65 ladder if none is given."""
    from .exceptions import ConfigurationError
    from .models.technology import VariantModel

    if tech is None:
        return VariantModel.stcmos65()
    if not tech.exists():
        _fail(f"Technology file not found: {tech}")
    try:
        return VariantModel.from_file(tech)
    except ConfigurationError as e:
        _fail(str(e))


def load_design(design: Path):
    """Loads a synthetic design, exiting with an error message on failure."""
    from .database.synthetic import SyntheticDesign
    from .exceptions import ConfigurationError

    if not design.exists():
        _fail(f"File not found: {design}")
    try:
        return SyntheticDesign.from_file(design)
    except ConfigurationError as e:
        _fail(str(e))


@app.command()
def summary(
    design: Path = typer.Argument(..., help="Path to design JSON file"),
    tech: Optional[Path] = typer.Option(None, "--tech", "-t", help="Technology JSON file"),
):
    """Displays a summary of a design: size, timing, leakage and Vt usage.

    Args:
        design: The path to the design JSON file.
        tech: Optional. Technology description; defaults to STcmos65.

    Raises:
        typer.Exit: If a file is not found or invalid.
    """
    model = load_technology(tech)
    db = load_design(design)

    console.print(
        Panel.fit(
            f"[bold green]Design:[/] {db.name}\n"
            f"[bold]Cells:[/] {db.cell_count()}\n"
            f"[bold]Worst Slack:[/] {db.worst_slack():.4f}\n"
            f"[bold]Total Leakage:[/] {db.total_leakage():.4e}",
            title="Design Summary",
        )
    )

    distribution = db.vt_distribution()
    table = Table(title="Vt Groups")
    table.add_column("Group")
    table.add_column("Level", justify="right")
    table.add_column("Cells", justify="right")
    for level, group in enumerate(model.ladder):
        table.add_row(group, str(level), str(distribution.get(group, 0)))
    unknown = sum(n for g, n in distribution.items() if g not in model.ladder)
    if unknown:
        table.add_row("(not in ladder)", "-", str(unknown))
    console.print(table)


@app.command()
def tech(
    tech: Optional[Path] = typer.Option(None, "--tech", "-t", help="Technology JSON file"),
):
    """Displays the Vt ladder and the transition table of a technology.

    Args:
        tech: Optional. Technology description; defaults to STcmos65.
    """
    model = load_technology(tech)

    console.print(
        Panel.fit(
            f"[bold green]Technology:[/] {model.name or 'N/A'}\n"
            f"[bold]Ladder:[/] {' < '.join(model.ladder)}",
            title="Vt Ladder",
        )
    )

    table = Table(title="Transitions")
    table.add_column("Library")
    table.add_column("Step", justify="right")
    table.add_column("Target")
    table.add_column("Prefix Rule")
    for library, steps in model.transitions.items():
        for step, rule in sorted(steps.items()):
            table.add_row(
                library, f"{step:+d}", rule.library_to, f"{rule.prefix_from} -> {rule.prefix_to}"
            )
    console.print(table)


@app.command()
def rank(
    design: Path = typer.Argument(..., help="Path to design JSON file"),
    tech: Optional[Path] = typer.Option(None, "--tech", "-t", help="Technology JSON file"),
    strategy: str = typer.Option(
        "slack-leakage", "--strategy", "-s", help="slack-leakage, slack-only or global"
    ),
    top: int = typer.Option(20, "--top", "-n", help="Number of candidates to show"),
):
    """Ranks swap candidates without modifying the design.

    The ``slack-leakage`` and ``global`` strategies first estimate the leakage
    saving of every candidate (the design is restored afterwards).

    Args:
        design: The path to the design JSON file.
        tech: Optional. Technology description; defaults to STcmos65.
        strategy: Ranking cost function.
        top: Number of candidates to display.

    Raises:
        typer.Exit: If a file is invalid or the strategy is unknown.
    """
    from .exceptions import VtSwapError
    from .models.common import SavingMode
    from .optimizers.leakage import LeakageSavingEstimator
    from .optimizers.ranking import GlobalRanker, LocalRanker, RankingStrategy

    if strategy not in ("global", *(s.value for s in RankingStrategy)):
        _fail(f"Unknown strategy: {strategy}")

    model = load_technology(tech)
    db = load_design(design)

    try:
        table = None
        if strategy != RankingStrategy.SLACK_ONLY.value:
            table = LeakageSavingEstimator(model, db, db, db).build_saving_table(SavingMode.FULL)

        if strategy == "global":
            ranking = GlobalRanker(model, db, db, db, table).rank_by_global_slack_reduction()
        else:
            ranking = LocalRanker(model, db, db, table).ranker(RankingStrategy(strategy))()
    except VtSwapError as e:
        _fail(str(e))

    out = Table(title=f"Candidates ({strategy})")
    out.add_column("#", justify="right")
    out.add_column("Cell")
    out.add_column("Variant")
    out.add_column("Target")
    out.add_column("Cost", justify="right")
    for i, entry in enumerate(ranking[:top], start=1):
        target = model.resolve_alternative(entry.library, entry.ref_name)
        out.add_row(
            str(i), str(entry.cell), entry.variant.full_name, target.full_name, f"{entry.cost:.4g}"
        )
    console.print(out)
    console.print(f"{len(ranking)} candidate(s)")


@app.command()
def run(
    design: Path = typer.Argument(..., help="Path to design JSON file"),
    tech: Optional[Path] = typer.Option(None, "--tech", "-t", help="Technology JSON file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Optimizer config JSON"),
    max_duration: Optional[float] = typer.Option(
        None, "--max-duration", help="Time budget in seconds"
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", help="Initial global batch size"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output report JSON"),
    save_design: Optional[Path] = typer.Option(
        None, "--save-design", help="Write the optimized design JSON"
    ),
):
    """Runs the multi-Vt leakage optimization recipe on a design.

    Cells are swapped to higher-Vt variants as long as the worst slack stays
    non-negative, within the configured time budget.

    Args:
        design: The path to the design JSON file.
        tech: Optional. Technology description; defaults to STcmos65.
        config: Optional. Optimizer configuration file.
        max_duration: Optional. Overrides the configured time budget.
        batch_size: Optional. Overrides the configured global batch size.
        output: Optional. Path to save the report as JSON.
        save_design: Optional. Path to save the optimized design.

    Raises:
        typer.Exit: If a file is invalid or the optimization fails.
    """
    from .config import OptimizerConfig
    from .exceptions import VtSwapError
    from .optimizers.recipe import MultiVtRecipe

    logger = logging.getLogger("vtswap.cli")

    model = load_technology(tech)
    db = load_design(design)

    try:
        cfg = OptimizerConfig.from_file(config) if config else OptimizerConfig()
        overrides = {}
        if max_duration is not None:
            overrides["max_duration"] = max_duration
        if batch_size is not None:
            overrides["global_batch_size"] = batch_size
        if overrides:
            cfg = OptimizerConfig.model_validate({**cfg.model_dump(), **overrides})

        initial_leakage = db.total_leakage()
        logger.info(f"Starting optimization of {db.name}")
        report = MultiVtRecipe(db, model, cfg).run()
        report.initial_leakage = initial_leakage
        report.final_leakage = db.total_leakage()
    except VtSwapError as e:
        _fail(str(e))
    except ValueError as e:
        _fail(f"invalid option: {e}")

    reduction = report.leakage_reduction
    console.print(
        Panel.fit(
            f"[bold green]Design:[/] {db.name}\n"
            f"[bold]Strategy:[/] {report.strategy.value}\n"
            f"[bold]Exit:[/] {report.global_.exit_reason.value}\n"
            f"[bold]Worst Slack:[/] {report.initial_slack:.4f} -> {report.final_slack:.4f}\n"
            f"[bold]Leakage:[/] {report.initial_leakage:.4e} -> {report.final_leakage:.4e}"
            + (f" ({reduction:.1%} saved)" if reduction is not None else "")
            + f"\n[bold]Swap Operations:[/] {report.swap_operations}"
            + f"\n[bold]Elapsed:[/] {report.elapsed:.2f} s",
            title="Optimization Summary",
        )
    )

    table = Table(title="Swaps")
    table.add_column("Phase")
    table.add_column("Accepted Batches", justify="right")
    table.add_column("Rejected Batches", justify="right")
    table.add_column("Cells Swapped", justify="right")
    table.add_row(
        "local",
        str(report.local.accepted_batches),
        str(report.local.rejected_batches),
        str(report.local.cells_swapped),
    )
    table.add_row(
        "global",
        str(report.global_.accepted_batches),
        str(report.global_.rejected_batches),
        str(report.global_.cells_swapped),
    )
    console.print(table)

    if output:
        output.write_text(json.dumps(report.model_dump(mode="json", by_alias=True), indent=2))
        console.print(f"[green]Saved report to:[/green] {output}")

    if save_design:
        save_design.write_text(db.to_spec().model_dump_json(indent=2))
        console.print(f"[green]Saved design to:[/green] {save_design}")


if __name__ == "__main__":
    app()

"""Console script for metaopt."""

from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from metaopt.analysis import COMPARISON_TESTS, NORMALITY_TESTS, ExperimentAnalysis, analyse_experiment
from metaopt.exceptions import OptimisationError
from metaopt.logging import setup_logger
from metaopt.optimisation.algorithms import ALGORITHMS
from metaopt.optimisation.config import ExperimentConfigManager
from metaopt.optimisation.core import PROBES, STOP_CONDITIONS
from metaopt.optimisation.problems import PROBLEMS
from metaopt.optimisation.runners import ExperimentRunner

app = typer.Typer(help="Run and compare metaheuristic optimisation experiments.")
console = Console()


def _rows_table(title: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, show_header=False, title_justify="left")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for label, value in rows:
        table.add_row(label, value)
    return table


def _render_analysis(analysis: ExperimentAnalysis) -> None:
    summary = Table(title=f"Summary of '{analysis.statistic}'", title_justify="left")
    for column in ("Run", "N", "Min", "Max", "Mean", "Std Dev", "Normal"):
        summary.add_column(column)
    for run_id, stats in analysis.summaries.items():
        test = analysis.normality.get(run_id)
        row = {label: value for label, value in stats.report()}
        summary.add_row(
            run_id, row["Total Records"], row["Min"], row["Max"], row["Mean"], row["Standard Deviation"],
            "-" if test is None else ("yes" if test.is_normal() else "no"),
        )
    console.print(summary)

    for run_id, test in analysis.normality.items():
        console.print(_rows_table(f"Normality of '{run_id}'", test.report()))

    if analysis.comparison is not None:
        console.print(_rows_table("Comparison", analysis.comparison.report()))
    if analysis.error is not None:
        console.print(f"[yellow]⚠️ Statistical analysis incomplete: {analysis.error}[/yellow]")


@app.command()
def run(
    config: Path = typer.Argument(..., exists=True, dir_okay=False, help="Experiment YAML file"),
    log_dir: Path | None = typer.Option(None, help="Directory for the run log file"),
    output: Path | None = typer.Option(None, help="CSV file for per-repeat observations"),
):
    """Run every experimental run in CONFIG and compare the results."""
    try:
        manager = ExperimentConfigManager(str(config))
        monitoring = manager.get_monitoring_config()
        setup_logger(
            "metaopt",
            log_dir=str(log_dir) if log_dir is not None else monitoring.log_dir,
            log_file=monitoring.log_file,
            console_level=monitoring.log_level,
        )
        manager.print_summary()

        experiment = manager.get_experiment_config()
        runner = ExperimentRunner(
            stop_conditions=manager.create_stop_conditions(),
            probes=manager.create_probes(),
            parallel=experiment.parallel,
            max_workers=experiment.max_workers,
        )
        results = runner.run_experiment(manager.create_runs())
    except (OptimisationError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    analysis = analyse_experiment(results, experiment.statistic, experiment.normality_test)
    _render_analysis(analysis)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        pd.concat([result.to_frame() for result in results.values()], ignore_index=True).to_csv(output, index=False)
        console.print(f"💾 Observations written to {output}")


@app.command(name="list")
def list_components():
    """List the registered problems, algorithms, stop conditions, probes and tests."""
    table = Table(title="Registered components", title_justify="left")
    table.add_column("Kind", style="bold")
    table.add_column("Key")
    table.add_column("Name")
    for kind, registry in (
        ("problem", PROBLEMS),
        ("algorithm", ALGORITHMS),
        ("stop condition", STOP_CONDITIONS),
        ("probe", PROBES),
    ):
        for key, cls in registry.items():
            table.add_row(kind, key, cls().get_name())
    for kind, registry in (("normality test", NORMALITY_TESTS), ("comparison test", COMPARISON_TESTS)):
        for key, cls in registry.items():
            table.add_row(kind, key, cls.name)
    console.print(table)


if __name__ == "__main__":
    app()

"""Command-line interface for wdsched."""

from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import Annotated, Any

import typer

from .exceptions import CircularDependencyError, WdschedError
from .logger import setup_logger
from .models import TaskRecord
from .parser import DeadlineUnit, TaskFile, load_tasks
from .scheduler import (
    AlgorithmType,
    CyclePolicy,
    SchedulingConfig,
    SchedulingResult,
    SchedulingService,
    load_scheduling_config,
)

app = typer.Typer(
    name="wdsched",
    help="Weighted deadline scheduling of dependent tasks on a single resource",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
) -> None:
    """Global options for wdsched commands."""
    setup_logger(verbose)


def _parse_date_option(date_str: str | None, option_name: str) -> date | None:
    """Parse an ISO date option, exiting with an error message if invalid."""
    if date_str is None:
        return None
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        typer.echo(f"Error: Invalid {option_name} format. Use YYYY-MM-DD", err=True)
        raise typer.Exit(1) from None


def _load(file: Path, current_date: str | None, unit: DeadlineUnit) -> TaskFile:
    try:
        return load_tasks(
            file, current_date=_parse_date_option(current_date, "current-date"), unit=unit
        )
    except WdschedError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _resolve_config(  # noqa: PLR0913 - CLI overrides are all optional
    task_file: TaskFile,
    config_file: Path | None,
    *,
    algorithm: str | None = None,
    flexibility: float | None = None,
    break_cycles: bool = False,
    max_nodes: int | None = None,
) -> SchedulingConfig:
    """Merge the task file's config, an optional config file, and CLI overrides."""
    config = task_file.config
    if config_file is not None:
        try:
            config = load_scheduling_config(config_file)
        except WdschedError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None

    data: dict[str, Any] = config.model_dump()
    if algorithm:
        try:
            data["algorithm"] = {"type": AlgorithmType(algorithm)}
        except ValueError:
            typer.echo(
                f"Error: Invalid algorithm '{algorithm}'. "
                f"Available: {', '.join(a.value for a in AlgorithmType)}",
                err=True,
            )
            raise typer.Exit(1) from None
    if flexibility is not None:
        data["deadline_flexibility"] = flexibility
    if break_cycles:
        data["cycle_policy"] = CyclePolicy.BREAK_CYCLES
    if max_nodes is not None:
        data["search"] = {**data["search"], "max_nodes": max_nodes}

    return SchedulingConfig.model_validate(data)


def _display_schedule_results(tasks: dict[int, TaskRecord], result: SchedulingResult) -> None:
    """Display schedule results to stdout."""
    typer.echo("Schedule Results")
    typer.echo("=" * 80)

    if result.is_empty:
        typer.echo("No tasks meet constraints")
        return

    typer.echo(f"{'ID':>6}  {'Name':<30} {'Weight':>6} {'Start':>6} {'End':>6} {'Deadline':>9}")
    for st in result.scheduled_tasks:
        name = tasks[st.task_id].name
        deadline = "-" if st.deadline is None else str(st.deadline)
        marker = "  DEADLINE VIOLATED" if st.deadline_violated else ""
        typer.echo(
            f"{st.task_id:>6}  {name:<30} {st.weight:>6} {st.start:>6} {st.end:>6} "
            f"{deadline:>9}{marker}"
        )
    typer.echo("")
    typer.echo(f"Total weight: {result.total_weight}")


def _export_schedule_csv(
    tasks: dict[int, TaskRecord], result: SchedulingResult, output_path: Path
) -> None:
    """Export schedule results to CSV."""
    with output_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["task_id", "task_name", "weight", "start", "end", "deadline"])
        for st in result.scheduled_tasks:
            writer.writerow(
                [
                    st.task_id,
                    tasks[st.task_id].name,
                    st.weight,
                    st.start,
                    st.end,
                    "" if st.deadline is None else st.deadline,
                ]
            )


@app.command()
def schedule(  # noqa: PLR0913 - CLI command needs multiple options
    file: Annotated[Path, typer.Argument(help="Path to the task YAML file")] = Path("tasks.yaml"),
    *,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Scheduling config YAML (overrides the task file's config)"),
    ] = None,
    algorithm: Annotated[
        str | None,
        typer.Option(
            "--algorithm",
            "-a",
            help="Optimizer to use: branch_and_bound, cpsat, dependency_order",
        ),
    ] = None,
    flexibility: Annotated[
        float | None,
        typer.Option("--flexibility", help="Deadline flexibility fraction (0-1)"),
    ] = None,
    break_cycles: Annotated[
        bool,
        typer.Option("--break-cycles", help="Drop cycle-closing dependencies instead of failing"),
    ] = False,
    max_nodes: Annotated[
        int | None,
        typer.Option("--max-nodes", help="Stop branch and bound after this many nodes", min=1),
    ] = None,
    current_date: Annotated[
        str | None,
        typer.Option(
            "--current-date",
            help="Reference date for due dates (YYYY-MM-DD). Defaults to today",
        ),
    ] = None,
    unit: Annotated[
        DeadlineUnit,
        typer.Option("--unit", help="Unit that due dates are converted into"),
    ] = DeadlineUnit.HOURS,
    output_csv: Annotated[
        Path | None,
        typer.Option("--output-csv", help="Export schedule results to a CSV file"),
    ] = None,
) -> None:
    """Select and order tasks to maximize total weight."""
    task_file = _load(file, current_date, unit)
    config = _resolve_config(
        task_file,
        config_file,
        algorithm=algorithm,
        flexibility=flexibility,
        break_cycles=break_cycles,
        max_nodes=max_nodes,
    )

    try:
        result = SchedulingService(task_file.tasks, config).schedule()
    except CircularDependencyError as e:
        typer.echo(f"Cannot schedule: circular dependencies ({e})", err=True)
        raise typer.Exit(1) from None
    except WdschedError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    tasks = {task.id: task for task in task_file.tasks}
    if output_csv:
        _export_schedule_csv(tasks, result, output_csv)
        typer.echo(f"Schedule exported to {output_csv}")
    else:
        _display_schedule_results(tasks, result)

    if result.warnings:
        typer.echo("\nWarnings:", err=True)
        for warning in result.warnings:
            typer.echo(f"  - {warning}", err=True)


@app.command()
def check(
    file: Annotated[Path, typer.Argument(help="Path to the task YAML file")] = Path("tasks.yaml"),
    *,
    current_date: Annotated[
        str | None,
        typer.Option("--current-date", help="Reference date for due dates (YYYY-MM-DD)"),
    ] = None,
    unit: Annotated[
        DeadlineUnit,
        typer.Option("--unit", help="Unit that due dates are converted into"),
    ] = DeadlineUnit.HOURS,
) -> None:
    """Report cycles and per-task feasibility without optimizing."""
    task_file = _load(file, current_date, unit)
    # Always break cycles here so the rest of the report can still be produced
    config = task_file.config.model_copy(update={"cycle_policy": CyclePolicy.BREAK_CYCLES})

    try:
        _, cycle_report, feasibility = SchedulingService(task_file.tasks, config).analyze()
    except WdschedError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if cycle_report.has_cycles:
        typer.echo("Cycles:")
        for cycle in cycle_report.cycles:
            typer.echo(f"  {cycle_report.format_cycle(cycle)}")
        typer.echo("")

    typer.echo(f"{'ID':>6}  {'EST':>6} {'Deadline':>9}  Status")
    for task in sorted(task_file.tasks, key=lambda t: t.id):
        est = feasibility.earliest_start.get(task.id)
        deadline = feasibility.effective_deadlines.get(task.id)
        status = feasibility.exclusion_reasons.get(task.id, "feasible")
        typer.echo(
            f"{task.id:>6}  {'-' if est is None else est:>6} "
            f"{'-' if deadline is None else deadline:>9}  {status}"
        )

    if cycle_report.has_cycles:
        raise typer.Exit(1)


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()

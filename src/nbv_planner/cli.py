"""CLI entry point for the next-best-view planner."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from nbv_planner.core.control import CommandChannel, PlannerCommand
from nbv_planner.core.orchestrator import ViewPlanner
from nbv_planner.modules.command_stream import CommandStreamReader, send_all
from nbv_planner.modules.stubs import SimulatedReconstruction, SimulatedRobot, SimulatedScene
from nbv_planner.planning.termination import IterationLimit, NeverTerminate
from nbv_planner.schemas import IterationResult
from nbv_planner.utils.logging import (
    LogLevel,
    StructuredLogger,
    create_session_logger,
    set_logger,
)
from nbv_planner.utils.settings import PlannerSettings

app = typer.Typer(
    name="nbv-planner",
    help="Next-best-view planning loop for 3D reconstruction",
    add_completion=False,
)

# Weights used by the demo run when neither a config file nor explicit
# weights are given; with small weights the planner never leaves the
# start view.
DEMO_METRIC_WEIGHTS: dict[str, float] = {"NrOfUnknownVoxels": 0.2}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_metric_weights(values: List[str]) -> dict[str, float]:
    """Parse ``NAME=WEIGHT`` pairs.

    Raises:
        typer.BadParameter: On a malformed pair.
    """
    weights: dict[str, float] = {}
    for item in values:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected NAME=WEIGHT, got {item!r}")
        try:
            weights[name.strip()] = float(raw)
        except ValueError:
            raise typer.BadParameter(f"weight for {name!r} is not a number: {raw!r}")
    return weights


def format_iteration_summary(result: IterationResult) -> str:
    """Format a single-line iteration summary for console output."""
    if result.terminated:
        marker = " [DONE]"
    elif result.move_completed is False:
        marker = " [MOVE ABORTED]"
    else:
        marker = ""
    return (
        f"[{result.iteration:04d}] "
        f"nbv={result.view.view_id} "
        f"return={result.summary.best_return:.3f} "
        f"margin={result.summary.winning_margin:.3f} "
        f"cost={result.cost:.3f} "
        f"viable={result.candidates_viable}/{result.candidates_considered}"
        f"{marker}"
    )


@app.command()
def run(
    views: int = typer.Option(16, "--views", help="Number of simulated candidate views"),
    seed: int = typer.Option(42, "--seed", "-s", help="Random seed for the simulated scene"),
    max_iterations: int = typer.Option(
        10,
        "--max-iterations",
        "-n",
        help="Stop after this many iterations (0 = until STOP_AND_PRINT)",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON file with planner parameters",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for the planning data file",
    ),
    cost_weight: Optional[float] = typer.Option(
        None,
        "--cost-weight",
        help="Weight of the movement cost term",
    ),
    metric_weight: List[str] = typer.Option(
        [],
        "--metric-weight",
        "-w",
        help="Metric weight as NAME=WEIGHT (repeatable)",
    ),
    commands: List[str] = typer.Option(
        [],
        "--command",
        help="Command token queued before the run starts (repeatable)",
    ),
    auto_start: bool = typer.Option(
        True,
        "--auto-start/--no-auto-start",
        help="Queue START before running",
    ),
    stdin_commands: bool = typer.Option(
        False,
        "--stdin-commands",
        help="Read command tokens from stdin while running",
    ),
    cost_failure_rate: float = typer.Option(
        0.0,
        "--cost-failure-rate",
        help="Fraction of simulated views reported unreachable",
    ),
    data_failures: int = typer.Option(
        0,
        "--data-failures",
        help="Simulated failed attempts before each data retrieval succeeds",
    ),
    session_log: Optional[Path] = typer.Option(
        None,
        "--session-log",
        help="Directory for session log files (main.log, main.jsonl)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress per-iteration output",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Run the planning loop against a simulated robot and scene.

    Examples:

        # Ten iterations, data written to ./runs
        nbv-planner run --output runs --max-iterations 10

        # Drive the loop interactively (type START, PAUSE, STOP_AND_PRINT, ...)
        nbv-planner run --no-auto-start --stdin-commands --max-iterations 0
    """
    setup_logging(verbose)
    level = LogLevel.DEBUG if verbose else LogLevel.INFO

    if session_log is not None:
        log = create_session_logger(runs_dir=session_log, console_output=verbose, level=level)
    else:
        log = StructuredLogger(console_output=verbose, level=level)
        set_logger(log)

    overrides = {"output_dir": output_dir, "cost_weight": cost_weight}
    weights = parse_metric_weights(metric_weight)
    try:
        if config is not None:
            settings = PlannerSettings.from_json(config, **overrides)
        else:
            settings = PlannerSettings.from_mapping({}, **overrides)
        if weights or config is None:
            merged = {**settings.metric_weights, **(weights or DEMO_METRIC_WEIGHTS)}
            settings = PlannerSettings.model_validate(
                {**settings.model_dump(), "metric_weights": merged}
            )
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    scene = SimulatedScene(n_views=views, seed=seed)
    robot = SimulatedRobot(
        scene,
        data_failures=data_failures,
        cost_failure_rate=cost_failure_rate,
        seed=seed,
    )
    estimator = SimulatedReconstruction(scene)
    termination = IterationLimit(max_iterations) if max_iterations > 0 else NeverTerminate()

    channel = CommandChannel()
    if auto_start:
        channel.send(PlannerCommand.START)
    send_all(channel, commands)

    planner = ViewPlanner(
        robot=robot,
        estimator=estimator,
        settings=settings,
        termination=termination,
        channel=channel,
        log=log,
    )

    reader = None
    if stdin_commands:
        reader = CommandStreamReader(sys.stdin, channel)
        reader.start()

    if not quiet:
        typer.echo("Next-Best-View Planner")
        typer.echo(f"Views: {views}, Seed: {seed}, Cost weight: {settings.cost_weight:g}")
        active = {k: v for k, v in settings.metric_weights.items() if v}
        typer.echo(f"Metric weights: {active or 'none'}")
        typer.echo(f"Iterations: {max_iterations if max_iterations > 0 else 'until stopped'}")
        typer.echo(f"Output: {settings.output_dir}")
        typer.echo("-" * 60)

    def on_iteration(result: IterationResult) -> None:
        if not quiet:
            typer.echo(format_iteration_summary(result))

    try:
        table = planner.run(on_iteration=on_iteration)
    except KeyboardInterrupt:
        if not quiet:
            typer.echo("\n" + "-" * 60)
            typer.echo("Interrupted by user")
        planner.save_data()
        table = planner.recorder.flush()
    finally:
        if reader is not None:
            reader.stop(timeout=0.1)
        close = getattr(log, "close", None)
        if close is not None:
            close()

    if not quiet:
        typer.echo("-" * 60)
        typer.echo(f"Completed {len(table)} iterations")
        typer.echo(f"Scene observed: {scene.observed_fraction:.1%}")
        typer.echo(f"Views marked bad: {planner.view_space.bad_count}")
        if planner.saved_paths:
            typer.echo(f"Planning data written to: {planner.saved_paths[-1]}")


@app.command()
def metrics(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON file with planner parameters",
    ),
) -> None:
    """List the information metrics and their configured weights."""
    try:
        settings = PlannerSettings.from_json(config) if config else PlannerSettings()
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"cost weight: {settings.cost_weight:g}\n")
    for name in settings.metric_names:
        weight = settings.metric_weights.get(name)
        shown = f"{weight:g}" if weight is not None else "unset (0)"
        typer.echo(f"  {name:30s} {shown}")


@app.command()
def version() -> None:
    """Show version information."""
    from nbv_planner import __version__
    typer.echo(f"nbv-planner v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()

"""CLI for ScenarioTrace."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from scenariotrace.config import load_config
from scenariotrace.errors import AnalysisCancelled, InconsistentInputError
from scenariotrace.io.report import write_summary_json
from scenariotrace.server.wire import build_request, build_services, resolve_input_paths

app = typer.Typer(help="ScenarioTrace CLI")

logger = logging.getLogger(__name__)

EXIT_GATE_FAILED = 1
EXIT_RUN_FAILED = 2


@app.command()
def analyze(
    config: str = typer.Option(..., "--config", help="Path to config YAML"),
    out: Optional[str] = typer.Option(None, "--out", help="Override the report path"),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Reconcile scenarios with unit tests and write the coverage report."""
    analyze_command(config, out=out, log_level=log_level)


@app.command()
def validate(config: str = typer.Option(..., "--config", help="Path to config YAML")) -> None:
    """Check the config and inputs without running the matcher."""
    try:
        cfg = load_config(config)
        request = build_request(resolve_input_paths(Path(config), cfg))
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"Invalid: {exc}", err=True)
        raise typer.Exit(code=EXIT_RUN_FAILED) from exc
    typer.echo(
        f"OK: {request.service} with {len(request.apis)} API(s), "
        f"{len(request.scenarios)} scenario(s), {len(request.tests)} test(s)"
    )


def analyze_command(config: str, *, out: Optional[str] = None, log_level: str = "INFO") -> Path:
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config_path = Path(config)
    try:
        cfg = load_config(config)
        paths = resolve_input_paths(config_path, cfg)
        request = build_request(paths)
        services = build_services(cfg)
        summary = services.analyze(request)
    except (InconsistentInputError, AnalysisCancelled) as exc:
        logger.error("Analysis failed: %s", exc)
        typer.echo(f"Analysis failed: {exc}", err=True)
        raise typer.Exit(code=EXIT_RUN_FAILED) from exc
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Invalid input: %s", exc)
        typer.echo(f"Invalid input: {exc}", err=True)
        raise typer.Exit(code=EXIT_RUN_FAILED) from exc

    report_path = Path(out) if out else paths.report
    write_summary_json(report_path, summary)
    gate = services.evaluate_gate(summary)
    typer.echo(
        f"{summary.service}: coverage {summary.coverage_percent:.1f}%, "
        f"{len(summary.gaps)} gap(s), {summary.blocking_gap_count} blocking. "
        f"Wrote {report_path}"
    )
    if not gate.passed:
        typer.echo("Gate failed: " + "; ".join(gate.reasons), err=True)
        raise typer.Exit(code=EXIT_GATE_FAILED)
    return report_path


if __name__ == "__main__":
    app()

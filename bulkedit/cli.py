"""Command line interface for running bulk edits."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer

from bulkedit import get_store
from bulkedit.config import load_config, load_run_request
from bulkedit.errors import ConfigurationError, EnumerationError
from bulkedit.operations import validate_operation
from bulkedit.progress import ProgressTracker
from bulkedit.runner import BulkEditRunner

app = typer.Typer(help="CLI for bulk editing content entries")

TONE_COLORS = {
    "positive": typer.colors.GREEN,
    "negative": typer.colors.RED,
    "neutral": None,
}


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Python logging level"),
) -> None:
    """bulkedit CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _print_summary(tracker: ProgressTracker, show_logs: bool) -> None:
    state = tracker.state
    typer.echo(f"Status: {state.phase}")
    typer.echo(f"Entries processed: {state.records_processed}/{state.records_total}")
    typer.echo(f"Operations processed: {state.steps_processed}/{state.steps_total}")
    typer.echo(f"  succeeded: {state.steps_succeeded}")
    typer.echo(f"  skipped:   {state.steps_skipped}")
    typer.echo(f"  errored:   {state.steps_errored}")
    if not show_logs:
        return
    for record_id, lines in tracker.logs.items():
        typer.echo(f"{record_id}:")
        for line in lines:
            typer.secho(f"  {line.message}", fg=TONE_COLORS[line.tone])


@app.command("run")
def run(
    request_path: Path,
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate without persisting"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
    show_logs: bool = typer.Option(False, help="Print the log of every entry"),
) -> None:
    """
    Apply the operations of a run request to every matching entry.

    The request file holds the entry filter, the ordered operations and an
    optional dry_run flag. Passing --dry-run forces a dry run regardless of
    the file.

    Example:
        bulkedit run ./publish-articles.yaml --dry-run
        bulkedit --log-level INFO run ./publish-articles.yaml --show-logs
    """
    try:
        config = load_config(str(config_path) if config_path else None)
        request = load_run_request(str(request_path))
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if dry_run:
        request = request.model_copy(update={"dry_run": True})

    store = get_store(config=config)
    runner = BulkEditRunner(store, config=config)
    typer.echo(
        f"Running {len(request.operations)} operations"
        + (" as a dry run" if request.dry_run else "")
    )

    async def _run() -> ProgressTracker:
        try:
            return await runner.run(request)
        finally:
            await store.disconnect()

    try:
        tracker = asyncio.run(_run())
    except EnumerationError as exc:
        typer.secho(f"Could not list entries: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    _print_summary(tracker, show_logs)


@app.command("validate")
def validate(request_path: Path) -> None:
    """
    Parse a run request and list its operations without contacting the store.

    Example:
        bulkedit validate ./publish-articles.yaml
    """
    try:
        request = load_run_request(str(request_path))
    except ConfigurationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"Filter: {request.filter}")
    invalid = 0
    for index, operation in enumerate(request.operations, start=1):
        target = f" {operation.field}" if operation.type == "field" else ""
        gated = " (conditional)" if operation.conditions else ""
        typer.echo(f"{index}. {operation.label}{target}{gated}")
        problem = validate_operation(operation)
        if problem:
            invalid += 1
            typer.secho(f"   {problem}", fg=typer.colors.RED)

    if invalid:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()

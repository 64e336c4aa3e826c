"""Typer CLI entrypoint for news-harvester."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, HarvestConfig
from .engine import FeedItem, Manifest, default_years
from .exceptions import ExtractionError, InvalidQueryError, PersistError
from .logging_conf import available_run_logs, configure_logging, run_log_path, tail_log
from .orchestrator import Harvester
from .ui import ProgressActivity, ProgressReporter

app = typer.Typer(
    help="Aggregate news coverage of a topic and extract full article text.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Inspect or initialise the configuration.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files.", no_args_is_help=True)
app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: HarvestConfig
    harvester: Harvester


def build_state(verbose: bool, config_path: Optional[Path] = None) -> AppState:
    repository = ConfigRepository()
    config = repository.load(config_path)
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    harvester = Harvester(config, log_dir=repository.locator.logs_dir)
    return AppState(repository=repository, config=config, harvester=harvester)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _resolve_years(years_back: Optional[int], year: Optional[Sequence[int]]) -> list[int] | None:
    if year:
        return sorted(set(year), reverse=True)
    if years_back is not None:
        if years_back < 1:
            raise typer.BadParameter("--years must be >= 1")
        return default_years(years_back)
    return None


def _render_manifest(manifest: Manifest, output_dir: Path) -> Table:
    table = Table(title=f"Run summary · {manifest.query}", box=box.SIMPLE_HEAD, show_header=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")
    table.add_row("Requested", str(manifest.requested))
    table.add_row("Saved", f"[green]{manifest.saved}[/green]")
    table.add_row("Failed", f"[red]{manifest.failed}[/red]" if manifest.failed else "0")
    table.add_row("Words", str(sum(entry.get("words") or 0 for entry in manifest.files)))
    table.add_row("Output", str(output_dir))
    table.add_row("Generated", manifest.generated_at.isoformat(timespec="seconds"))
    return table


def _render_errors(manifest: Manifest) -> Table:
    table = Table(title="Failures", box=box.SIMPLE_HEAD)
    table.add_column("Title", style="yellow", overflow="fold")
    table.add_column("Message", style="red", overflow="fold")
    for error in manifest.errors:
        table.add_row(str(error.get("title") or "-"), str(error.get("message") or "-"))
    return table


def _render_items(items: Sequence[FeedItem], limit: int) -> Table:
    table = Table(title=f"Unique articles · {len(items)}", box=box.SIMPLE_HEAD)
    table.add_column("Date", style="green", no_wrap=True)
    table.add_column("Source", style="magenta")
    table.add_column("Title", style="white", overflow="fold")
    for item in items[:limit]:
        table.add_row(item.published_at.date().isoformat(), item.source or "-", item.title)
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
    config: Optional[Path] = typer.Option(None, "--config", help="Read configuration from this file."),
) -> None:
    ctx.obj = build_state(verbose, config)


@app.command("run", help="Fan out the feed search, extract every article and write a manifest.")
def run_command(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Topic to search for."),
    years_back: Optional[int] = typer.Option(None, "--years", help="Number of most recent years to search."),
    year: Optional[List[int]] = typer.Option(None, "--year", help="Search only these years (repeatable)."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Extract at most this many unique articles."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Parallel extraction workers."),
    output: Optional[Path] = typer.Option(None, "--output", help="Output directory for this run."),
    progress: Optional[bool] = typer.Option(None, "--progress/--no-progress", help="Show a progress bar."),
) -> None:
    state = _get_state(ctx)
    years = _resolve_years(years_back, year)
    output_dir = output or state.config.output.output_dir
    progress_enabled = _progress_default_enabled() if progress is None else progress
    activity = ProgressActivity(enabled=progress_enabled, console=console)
    reporter = ProgressReporter(enabled=progress_enabled, console=console)

    def _collected(total: int) -> None:
        activity.close()
        reporter.start(total)

    activity.start(f"Searching feeds for '{query}'…")
    try:
        manifest = state.harvester.run(
            query,
            years=years,
            limit=limit,
            concurrency=concurrency,
            output_dir=output_dir,
            on_outcome=reporter.on_outcome,
            on_collected=_collected,
        )
    except InvalidQueryError as exc:
        console.print(f"Invalid input: {exc}", style="red")
        raise typer.Exit(code=2)
    except PersistError as exc:
        console.print(f"Could not write the manifest: {exc}", style="red")
        raise typer.Exit(code=1)
    finally:
        activity.close()
        reporter.close()
    console.print(_render_manifest(manifest, output_dir))
    if manifest.errors:
        console.print(_render_errors(manifest))


@app.command("feed", help="List the deduplicated feed items without extracting them.")
def feed_command(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Topic to search for."),
    years_back: Optional[int] = typer.Option(None, "--years", help="Number of most recent years to search."),
    year: Optional[List[int]] = typer.Option(None, "--year", help="Search only these years (repeatable)."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    show: int = typer.Option(50, "--show", help="Rows to display in table mode."),
) -> None:
    state = _get_state(ctx)
    years = _resolve_years(years_back, year)
    try:
        items = state.harvester.collect(query, years)
    except InvalidQueryError as exc:
        console.print(f"Invalid input: {exc}", style="red")
        raise typer.Exit(code=2)
    if as_json:
        payload = {"query": query, "count": len(items), "items": [item.to_dict() for item in items]}
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    console.print(_render_items(items, show))


@app.command("extract", help="Extract a single article URL.")
def extract_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Article or tracking URL."),
    output: Optional[Path] = typer.Option(None, "--output", help="Output directory."),
) -> None:
    state = _get_state(ctx)
    try:
        article, path = state.harvester.extract_one(url, output_dir=output)
    except InvalidQueryError as exc:
        console.print(f"Invalid input: {exc}", style="red")
        raise typer.Exit(code=2)
    except (ExtractionError, PersistError) as exc:
        console.print(f"Extraction failed: {exc}", style="red")
        raise typer.Exit(code=1)
    console.print(f"Saved {path}", style="green")
    console.print(f"paragraphs: {len(article.paragraphs)} | words: {article.word_count}", style="dim")


@config_app.command("show", help="Print the active configuration as YAML.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    typer.echo(yaml.safe_dump(state.config.model_dump(mode="json"), allow_unicode=True, sort_keys=False))


@config_app.command("init", help="Write a default configuration file.")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    state = _get_state(ctx)
    path = state.repository.locator.config_path()
    if path.exists() and not force:
        console.print(f"Configuration already exists at {path} (use --force to overwrite).", style="yellow")
        raise typer.Exit(code=1)
    state.repository.save(HarvestConfig())
    console.print(f"Wrote default configuration to {path}", style="green")


@log_app.command("list", help="List the per-query run logs.")
def log_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    logs = available_run_logs(state.repository.locator.logs_dir)
    if not logs:
        console.print("No run logs yet.", style="dim")
        return
    table = Table(title="Run logs", box=box.SIMPLE_HEAD)
    table.add_column("Run", style="green")
    table.add_column("Size", style="white", justify="right")
    for path in logs:
        table.add_row(path.stem, f"{path.stat().st_size} B")
    console.print(table)


@log_app.command("show", help="Show the most recent log lines.")
def log_show(
    ctx: typer.Context,
    run: Optional[str] = typer.Option(None, "--run", help="Show the log of one run (see `log list`)."),
    errors: bool = typer.Option(False, "--errors", help="Show error.log instead of harvest.log."),
    lines: int = typer.Option(50, "--lines", help="Number of lines to display."),
) -> None:
    state = _get_state(ctx)
    logs_dir = state.repository.locator.logs_dir
    if run:
        path = run_log_path(logs_dir, run)
    else:
        path = logs_dir / ("error.log" if errors else "harvest.log")
    content = tail_log(path, lines)
    if not content:
        console.print(f"{path.name} is empty.", style="dim")
        return
    for line in content:
        typer.echo(line.rstrip("\n"))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()

"""Typer CLI entrypoint for the prompt aggregator."""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_SOURCES, ConfigRepository, GlobalConfig, SourceConfig, SourceRegistry
from .engine import ExternalPromptRecord, SyncResult
from .errors import StoreError
from .logging_conf import available_source_logs, configure_logging, log_path, tail_log
from .orchestrator import SyncOrchestrator
from .scheduler import APSchedulerAdapter
from .store import CorpusStore, build_store

app = typer.Typer(help="Prompt aggregator command line tools", no_args_is_help=True)
source_app = typer.Typer(name="source", help="Manage prompt sources", no_args_is_help=True)
sync_app = typer.Typer(name="sync", help="Run or schedule syncs", no_args_is_help=True)
corpus_app = typer.Typer(name="corpus", help="Inspect the stored corpus", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect log files", no_args_is_help=True)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    global_config: GlobalConfig
    registry: SourceRegistry
    store: CorpusStore
    orchestrator: SyncOrchestrator


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    # First run: the built-in sources are written out so they can be edited.
    repository.seed_sources(DEFAULT_SOURCES)
    registry = SourceRegistry.from_repository(repository)
    store = build_store(global_config, repository.locator.project_root)
    orchestrator = SyncOrchestrator.from_config(global_config)
    return AppState(
        repository=repository,
        global_config=global_config,
        registry=registry,
        store=store,
        orchestrator=orchestrator,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _render_sources_table(sources: Sequence[SourceConfig], orchestrator: SyncOrchestrator) -> Table:
    table = Table(title=f"Sources ({len(sources)})", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Active")
    table.add_column("Budget", style="yellow")
    table.add_column("Interval", style="yellow")
    table.add_column("Last sync", style="green")
    for source in sources:
        status = orchestrator.get_sync_status(source.id)
        last_sync = status["last_sync"]
        table.add_row(
            source.id,
            source.kind.value,
            "yes" if source.active else "no",
            f"{source.rate_limit.requests_per_window}/{source.rate_limit.window_minutes:g}m",
            f"{source.sync_interval_minutes}m",
            last_sync.isoformat(timespec="seconds") if last_sync else "-",
        )
    return table


def _render_results_table(results: Iterable[SyncResult]) -> Table:
    table = Table(title="Sync results", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Found", justify="right")
    table.add_column("Imported", justify="right", style="green")
    table.add_column("Duration", justify="right")
    table.add_column("Details", overflow="fold")
    for result in results:
        if not result.success:
            status = "[red]failed[/red]"
        elif result.skipped:
            status = "[yellow]skipped[/yellow]"
        else:
            status = "[green]ok[/green]"
        details = "; ".join(result.errors) or result.note or ""
        table.add_row(
            result.source_id,
            status,
            str(result.records_found),
            str(result.records_imported),
            f"{result.duration_ms} ms",
            details,
        )
    return table


def _render_jobs_table(jobs: Iterable[dict]) -> Table:
    table = Table(title="Scheduled jobs", box=box.SIMPLE_HEAD)
    table.add_column("Job ID", style="cyan", no_wrap=True)
    table.add_column("Next run", style="green")
    table.add_column("Trigger", style="magenta", overflow="fold")
    for job in jobs:
        table.add_row(
            str(job.get("id", "-")),
            str(job.get("next_run_time", "-")),
            str(job.get("trigger", "-")),
        )
    return table


def _render_counter(title: str, label: str, counts: Counter) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column(label, style="cyan")
    table.add_column("Records", justify="right")
    for key, count in counts.most_common():
        table.add_row(str(key), str(count))
    return table


def _load_corpus(state: AppState) -> list[ExternalPromptRecord]:
    try:
        return state.store.load()
    except StoreError as exc:
        console.print(f"Could not read the corpus: {exc}", style="red")
        raise typer.Exit(code=1)


app.add_typer(source_app, name="source")
app.add_typer(sync_app, name="sync")
app.add_typer(corpus_app, name="corpus")
app.add_typer(log_app, name="log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    ctx.obj = build_state(verbose)


# ----------------------------------------------------------------------
# source
# ----------------------------------------------------------------------
@source_app.command("list", help="Show configured sources.")
def source_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    sources = state.registry.list()
    if not sources:
        console.print("No sources configured.", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_sources_table(sources, state.orchestrator))


def _toggle_source(ctx: typer.Context, source_id: str, enabled: bool) -> None:
    state = _get_state(ctx)
    if not state.registry.set_active(source_id, enabled):
        console.print(f"Unknown source `{source_id}`.", style="red")
        raise typer.Exit(code=1)
    source = state.registry.get(source_id)
    state.repository.save_source(source)
    console.print(f"Source `{source_id}` {'enabled' if enabled else 'disabled'}.", style="green")


@source_app.command("enable", help="Enable a source.")
def source_enable(ctx: typer.Context, source_id: str = typer.Argument(..., help="Source id.")) -> None:
    _toggle_source(ctx, source_id, True)


@source_app.command("disable", help="Disable a source.")
def source_disable(
    ctx: typer.Context, source_id: str = typer.Argument(..., help="Source id.")
) -> None:
    _toggle_source(ctx, source_id, False)


# ----------------------------------------------------------------------
# sync
# ----------------------------------------------------------------------
@sync_app.command("run", help="Sync every active source, or just one.")
def sync_run(
    ctx: typer.Context,
    source_id: Optional[str] = typer.Option(None, "--source", help="Only sync this source."),
) -> None:
    state = _get_state(ctx)
    try:
        if source_id:
            if source_id not in state.registry:
                console.print(f"Unknown source `{source_id}`.", style="red")
                raise typer.Exit(code=1)
            results = [
                asyncio.run(state.orchestrator.sync_source(source_id, state.registry, state.store))
            ]
        else:
            results = asyncio.run(state.orchestrator.sync_all(state.registry, state.store))
    except StoreError as exc:
        console.print(f"Corpus store unavailable: {exc}", style="red")
        raise typer.Exit(code=1)
    finally:
        state.store.close()

    if not results:
        console.print("No active sources to sync.", style="yellow")
        return
    console.print(_render_results_table(results))
    if any(not result.success for result in results):
        raise typer.Exit(code=1)


@sync_app.command("schedule", help="Run the interval scheduler until interrupted.")
def sync_schedule(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    scheduler = APSchedulerAdapter()

    async def run_source(source_id: str) -> SyncResult:
        return await state.orchestrator.sync_source(source_id, state.registry, state.store)

    scheduled = scheduler.schedule_sources(state.registry.list(), run_source)
    if not scheduled:
        console.print("No active sources to schedule.", style="yellow")
        raise typer.Exit(code=0)
    scheduler.start()
    console.print(_render_jobs_table(scheduler.list_jobs()))
    console.print("Scheduler running; press Ctrl+C to stop.", style="dim")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping scheduler.", style="yellow")
    finally:
        scheduler.shutdown()
        state.store.close()


# ----------------------------------------------------------------------
# corpus
# ----------------------------------------------------------------------
@corpus_app.command("stats", help="Summarise the stored corpus.")
def corpus_stats(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    records = _load_corpus(state)
    console.print(f"{len(records)} records in the corpus.", style="cyan")
    if not records:
        return
    console.print(
        _render_counter("By source", "Source", Counter(record.source_id for record in records))
    )
    console.print(
        _render_counter(
            "By category",
            "Category",
            Counter(category for record in records for category in record.categories),
        )
    )
    console.print(
        _render_counter(
            "By difficulty", "Difficulty", Counter(record.difficulty.value for record in records)
        )
    )


# ----------------------------------------------------------------------
# log
# ----------------------------------------------------------------------
@log_app.command("list", help="List per-source log files.")
def log_list() -> None:
    logs = list(available_source_logs())
    if not logs:
        console.print("No source logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the latest lines of a log.")
def log_show(
    source_id: Optional[str] = typer.Option(
        None, "--source", help="Source id (omit for the aggregator log)."
    ),
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
) -> None:
    lines = tail_log(log_path(source_id), tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{source_id or 'aggregator'} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()

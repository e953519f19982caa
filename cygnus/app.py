"""Typer CLI entrypoint for cygnus."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog
import typer
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .config import ConfigRepository, GlobalConfig, OutputFormat, ReportOptions
from .engine import ReportSink, TaskCache, ThreadPoolManager
from .engine.cache import CACHE_TABLES
from .engine.exporter import BaseExporter, TabExporter, TableExporter
from .engine.report import header_names
from .infra import CachePolicy, CacheStoreError, SQLiteManager
from .logging_conf import configure_logging
from .orchestrator import CollectionSummary, Collector
from .upstream import SchedulerClient, SingularityClient, UpstreamError

app = typer.Typer(
    help="Scan a Singularity scheduler and report its tasks and deploys.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
cache_app = typer.Typer(
    name="cache",
    help="Inspect or discard the local cache file.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
app.add_typer(cache_app, name="cache")

console = Console()
err_console = Console(stderr=True)


@dataclass
class AppState:
    repository: ConfigRepository
    config: GlobalConfig
    storage: SQLiteManager
    logger: structlog.BoundLogger


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load_global_config()
    logger = configure_logging(verbose=verbose, log_file=config.log_file)
    storage = SQLiteManager(logger=logger.bind(component="storage"))
    return AppState(repository=repository, config=config, storage=storage, logger=logger)


def build_client(url: str, config: GlobalConfig, logger: structlog.BoundLogger) -> SchedulerClient:
    return SingularityClient(
        url,
        timeout=config.upstream.timeout,
        headers=config.upstream.headers or None,
        logger=logger.bind(component="upstream"),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _resolve_env(state: AppState, env: Optional[list[str]], preset: Optional[int]) -> list[str]:
    names = list(env or [])
    if preset is None:
        return names
    try:
        names = state.config.preset(preset)
    except ValueError as exc:
        raise BadParameter(str(exc), param_hint="-x") from exc
    err_console.print(f"Using {' and '.join(names)}", style="dim")
    return names


def _build_exporter(options: ReportOptions) -> BaseExporter:
    if options.output_format is OutputFormat.TABLE:
        return TableExporter(console)
    return TabExporter()


def _close_client(client: SchedulerClient) -> None:
    close = getattr(client, "close", None)
    if callable(close):
        close()


def _run(
    state: AppState,
    url: str,
    options: ReportOptions,
    workers: Optional[int],
    deploys: bool,
    cache: TaskCache | None = None,
) -> CollectionSummary:
    collector_cfg = state.config.collector
    if workers:
        collector_cfg = collector_cfg.model_copy(update={"max_workers": workers})
    exporter = _build_exporter(options)
    client = build_client(url, state.config, state.logger)
    sink = ReportSink(
        exporter,
        options,
        cache=cache,
        host=client.base_url,
        capacity=collector_cfg.queue_capacity,
        logger=state.logger.bind(component="sink"),
        header=header_names(options, deploys=deploys) if options.print_headers else None,
    )
    thread_pool = ThreadPoolManager(collector_cfg.max_workers)
    collector = Collector(
        client,
        sink,
        options,
        config=collector_cfg,
        thread_pool=thread_pool,
        logger=state.logger.bind(component="collector", url=client.base_url),
    )
    try:
        if deploys:
            return collector.collect_deploys()
        return collector.collect_tasks()
    except UpstreamError as exc:
        err_console.print(f"Cannot list requests from {url}: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    finally:
        sink.close()
        exporter.close()
        thread_pool.shutdown()
        _close_client(client)
        if cache is not None:
            cache.close()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Print debugging information"),
) -> None:
    ctx.obj = build_state(debug)


@app.command("scan", help="Report the tasks of every request, caching what was seen.")
def scan(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Scheduler base URL"),
    env: Optional[list[str]] = typer.Option(None, "--env", help="Environment variable to query (repeatable)"),
    preset: Optional[int] = typer.Option(None, "-x", help="Use environment default <num>"),
    no_print_headers: bool = typer.Option(False, "-H", "--no-print-headers", help="Don't print the header prologue"),
    no_print_active: bool = typer.Option(False, "-A", "--no-print-active", help="Do not print the active deploys"),
    print_pending: bool = typer.Option(False, "-p", "--print-pending", help="Also include pending deploys"),
    include_inactive: bool = typer.Option(False, "-i", "--include-inactive", help="Include recent inactive tasks"),
    status: bool = typer.Option(False, "-s", "--status", help="Add the latest task status column"),
    docker_image: bool = typer.Option(False, "-d", "--docker-image", help="Add the docker image column"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Concurrent task fetches"),
    output_format: OutputFormat = typer.Option(OutputFormat.TSV, "--format", help="Report format"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not record results in the cache file"),
    cache_path: Optional[Path] = typer.Option(None, "--cache-path", help="Cache file location"),
    cache_policy: Optional[CachePolicy] = typer.Option(None, "--cache-policy", help="How to treat an existing cache file"),
) -> None:
    state = _get_state(ctx)
    options = ReportOptions(
        print_headers=not no_print_headers,
        print_active=not no_print_active,
        print_pending=print_pending,
        include_inactive=include_inactive,
        include_status=status,
        include_docker_image=docker_image,
        env=_resolve_env(state, env, preset),
        output_format=output_format,
    )
    cache_cfg = state.config.cache
    cache: TaskCache | None = None
    if cache_cfg.enabled and not no_cache:
        path = cache_path or cache_cfg.path
        try:
            cache = TaskCache(
                state.storage,
                path,
                policy=cache_policy or cache_cfg.policy,
                freshness=cache_cfg.freshness,
                logger=state.logger.bind(component="cache"),
            )
        except CacheStoreError as exc:
            err_console.print(f"Cannot open cache {path}: {exc}", style="red")
            raise typer.Exit(code=1) from exc
    _run(state, url, options, workers, deploys=False, cache=cache)


@app.command("deploys", help="Report the active and pending deploys of every request.")
def deploys(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Scheduler base URL"),
    env: Optional[list[str]] = typer.Option(None, "--env", help="Environment variable to query (repeatable)"),
    preset: Optional[int] = typer.Option(None, "-x", help="Use environment default <num>"),
    no_print_headers: bool = typer.Option(False, "-H", "--no-print-headers", help="Don't print the header prologue"),
    no_print_active: bool = typer.Option(False, "-A", "--no-print-active", help="Do not print the active deploys"),
    print_pending: bool = typer.Option(False, "-p", "--print-pending", help="Also include pending deploys"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Concurrent request lookups"),
    output_format: OutputFormat = typer.Option(OutputFormat.TSV, "--format", help="Report format"),
) -> None:
    state = _get_state(ctx)
    options = ReportOptions(
        print_headers=not no_print_headers,
        print_active=not no_print_active,
        print_pending=print_pending,
        env=_resolve_env(state, env, preset),
        output_format=output_format,
    )
    _run(state, url, options, workers, deploys=True)


def _render_cache_table(path: Path, cache: TaskCache) -> Table:
    table = Table(title=f"Cache · {path}", box=box.SIMPLE_HEAD, show_lines=False)
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", overflow="fold")
    metadata = cache.metadata()
    table.add_row("fingerprint", metadata.get("fingerprint", "-"))
    table.add_row("created", metadata.get("created", "-"))
    migrations = cache.migrations()
    table.add_row(
        "migrations",
        ", ".join(f"{version} ({description})" for version, description in migrations) or "-",
    )
    counts = cache.counts()
    for name in CACHE_TABLES:
        table.add_row(f"{name} rows", str(counts[name]) if name in counts else "-")
    return table


@cache_app.command("info", help="Show the cache file's schema fingerprint and row counts.")
def cache_info(
    ctx: typer.Context,
    cache_path: Optional[Path] = typer.Option(None, "--cache-path", help="Cache file location"),
) -> None:
    state = _get_state(ctx)
    path = cache_path or state.config.cache.path
    if not path.exists():
        console.print(f"No cache file at {path}.", style="yellow")
        raise typer.Exit(code=0)
    try:
        cache = TaskCache(
            state.storage, path, read_only=True, logger=state.logger.bind(component="cache")
        )
    except CacheStoreError as exc:
        err_console.print(f"Cannot open cache {path}: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    try:
        console.print(_render_cache_table(path, cache))
    finally:
        cache.close()


@cache_app.command("reset", help="Delete the cache file; the next scan starts from scratch.")
def cache_reset(
    ctx: typer.Context,
    cache_path: Optional[Path] = typer.Option(None, "--cache-path", help="Cache file location"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    state = _get_state(ctx)
    path = cache_path or state.config.cache.path
    if not path.exists():
        console.print(f"No cache file at {path}.", style="yellow")
        return
    if not yes and not typer.confirm(f"Delete {path}?", default=False):
        console.print("Cancelled.", style="yellow")
        raise typer.Exit(code=1)
    state.storage.reset(path)
    console.print(f"Removed {path}.", style="green")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()

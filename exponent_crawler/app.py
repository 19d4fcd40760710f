"""Typer CLI entrypoint for the Exponent questions crawler."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, FetcherKind, OutputFormat
from .engine import CrawlSummary, FailureNotice, InvalidRange
from .infra import ProxyPool, SQLiteManager, UserAgentPool
from .logging_conf import configure_logging
from .orchestrator import Orchestrator

app = typer.Typer(
    help="Crawl the Exponent interview question listing into structured records.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
history_app = typer.Typer(
    name="history",
    help="Inspect or clear the incremental crawl history.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

EXIT_ALL_FAILED = 1
EXIT_BAD_CONFIG = 2


@dataclass
class AppState:
    repository: ConfigRepository
    storage: SQLiteManager
    config_path: Optional[Path] = None
    verbose: bool = False


def build_state(verbose: bool, config_path: Optional[Path] = None) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(
        repository=repository,
        storage=SQLiteManager(),
        config_path=config_path,
        verbose=verbose,
    )


def build_orchestrator(state: AppState, overrides: dict[str, Any] | None = None) -> Orchestrator:
    """Load configuration (file + CLI overrides) and assemble the pipeline owner."""

    config = state.repository.load(state.config_path, overrides)
    proxy_file = state.repository.resolve(config.proxy_file) if config.proxy_file else None
    proxy_pool = ProxyPool(config.proxies, file_path=proxy_file)
    ua_pool = UserAgentPool(config.user_agent_list)
    return Orchestrator(
        config=config,
        repository=state.repository,
        storage=state.storage,
        proxy_pool=proxy_pool,
        ua_pool=ua_pool,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


# Progress bars only make sense on an interactive terminal.
def _progress_default_enabled() -> bool:
    return console.is_terminal


def _config_error(message: str) -> typer.Exit:
    console.print(f"Invalid configuration: {message}", style="red")
    return typer.Exit(code=EXIT_BAD_CONFIG)


def _render_summary(summary: CrawlSummary) -> Table:
    table = Table(title="Crawl summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")
    table.add_row("Pages done", str(summary.pages_done))
    table.add_row("Pages empty", str(summary.pages_empty))
    table.add_row("Pages failed", f"[red]{summary.pages_failed}[/red]" if summary.pages_failed else "0")
    table.add_row("Records written", f"[green]{summary.records_written}[/green]")
    table.add_row("Records skipped", str(summary.records_skipped))
    table.add_row("Retries", str(summary.retries))
    if summary.cancelled:
        table.add_row("Cancelled", "[yellow]yes[/yellow]")
    return table


def _print_failure(notice: FailureNotice) -> None:
    console.print(
        f"FAILED page {notice.page_number} after {notice.attempts} attempt(s): "
        f"{notice.url} ({notice.reason})",
        style="red",
    )


app.add_typer(history_app, name="history")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.", is_flag=True),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML/JSON configuration file (defaults to data/crawl_config.yaml when present).",
    ),
) -> None:
    ctx.obj = build_state(verbose=verbose, config_path=config)


@app.command("crawl", help="Crawl the configured listing page range.")
def crawl(
    ctx: typer.Context,
    start_page: Optional[int] = typer.Option(None, "--start-page", "-s", help="First page to crawl."),
    end_page: Optional[int] = typer.Option(None, "--end-page", "-e", help="Last page to crawl (inclusive)."),
    use_proxy: Optional[bool] = typer.Option(
        None, "--use-proxy/--no-proxy", help="Route requests through the proxy pool."
    ),
    max_concurrency: Optional[int] = typer.Option(
        None, "--max-concurrency", "-j", help="Number of pages fetched at the same time."
    ),
    scroll_delay_ms: Optional[int] = typer.Option(
        None, "--scroll-delay-ms", help="Pause between scroll steps while rendering."
    ),
    retry_ceiling: Optional[int] = typer.Option(
        None, "--retry-ceiling", help="Extra attempts for a page before it is reported failed."
    ),
    fetcher: Optional[FetcherKind] = typer.Option(None, "--fetcher", help="Fetch strategy."),
    output_format: Optional[OutputFormat] = typer.Option(
        None, "--output-format", "-f", help="Sink format."
    ),
    full: bool = typer.Option(
        False, "--full", help="Ignore the crawl history and emit every record.", is_flag=True
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide the progress bar.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    overrides: dict[str, Any] = {
        "start_page": start_page,
        "end_page": end_page,
        "use_proxy": use_proxy,
        "max_concurrency": max_concurrency,
        "scroll_delay_ms": scroll_delay_ms,
        "retry_ceiling": retry_ceiling,
        "fetcher": fetcher.value if fetcher else None,
        "output_format": output_format.value if output_format else None,
        "enable_incremental": False if full else None,
    }
    try:
        orchestrator = build_orchestrator(state, overrides)
    except (FileNotFoundError, ValueError) as exc:
        # pydantic.ValidationError is a ValueError subclass.
        message = exc.errors()[0]["msg"] if isinstance(exc, ValidationError) else str(exc)
        raise _config_error(message) from exc

    config = orchestrator.config
    if config.use_proxy and (orchestrator.proxy_pool is None or orchestrator.proxy_pool.empty):
        console.print("use_proxy is set but no proxies are configured; connecting directly.", style="yellow")

    try:
        summary = orchestrator.run(
            progress_enabled=not quiet and _progress_default_enabled(),
            on_failure=_print_failure,
        )
    except InvalidRange as exc:
        raise _config_error(str(exc)) from exc

    console.print(_render_summary(summary))
    attempted = summary.pages_done + summary.pages_failed
    if attempted and summary.pages_done == 0:
        console.print("Every page failed.", style="red")
        raise typer.Exit(code=EXIT_ALL_FAILED)


@history_app.command("show", help="List the most recently recorded question links.")
def history_show(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of rows to display."),
) -> None:
    state = _get_state(ctx)
    try:
        orchestrator = build_orchestrator(state)
    except (FileNotFoundError, ValueError) as exc:
        raise _config_error(str(exc)) from exc
    rows = orchestrator.view_history(limit)
    if not rows:
        console.print("No crawl history yet.", style="yellow")
        return
    table = Table(title=f"Crawl history · latest {len(rows)}", box=box.SIMPLE_HEAD)
    table.add_column("First seen", style="green", no_wrap=True)
    table.add_column("Page", justify="right")
    table.add_column("Link", style="cyan", overflow="fold")
    for link, page_number, first_seen in rows:
        table.add_row(str(first_seen), str(page_number), link)
    console.print(table)


@history_app.command("reset", help="Forget every recorded link so the next crawl emits everything.")
def history_reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt.", is_flag=True),
) -> None:
    state = _get_state(ctx)
    try:
        orchestrator = build_orchestrator(state)
    except (FileNotFoundError, ValueError) as exc:
        raise _config_error(str(exc)) from exc
    if not yes and not typer.confirm("Delete the crawl history?", default=False):
        console.print("Cancelled.", style="dim")
        raise typer.Exit(code=0)
    orchestrator.reset_history()
    console.print("Crawl history cleared.", style="green")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()

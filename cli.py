from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import typer
from aiohttp import web
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import SETTINGS, AppSettings
from errors import RelayError
from server import create_app
from service import RelayService
from upstream.refresher import RefreshSummary
from utils.logging_config import configure_logging

app = typer.Typer(add_completion=False)
console = Console()


def _build_settings(
    upstreams: Path | None,
    verify: bool | None = None,
    max_attempts: int | None = None,
) -> AppSettings:
    settings = SETTINGS
    if upstreams is not None:
        settings = replace(settings, upstreams_path=upstreams)
    if verify is not None or max_attempts is not None:
        dispatch = replace(
            settings.dispatch,
            verify_completeness=settings.dispatch.verify_completeness if verify is None else verify,
            max_attempts=max_attempts if max_attempts is not None else settings.dispatch.max_attempts,
        )
        settings = replace(settings, dispatch=dispatch)
    return settings


@app.command(help="Run the relay server in front of the configured upstreams")
def serve(
    upstreams: Path | None = typer.Option(None, "--upstreams", "-u", help="Upstream list, one key or URL per line"),
    host: str = typer.Option(SETTINGS.host, "--host"),
    port: int = typer.Option(SETTINGS.port, "--port", "-p"),
    json_output: bool = typer.Option(SETTINGS.json_logs, "--json", "-j", help="Output logs as JSON"),
    debug: bool = typer.Option(SETTINGS.debug, "--debug", "-d", help="Output debugging messages"),
    verify: bool = typer.Option(
        SETTINGS.dispatch.verify_completeness,
        "--check-translation",
        "-c",
        help="Detect missing translations; only meaningful for targets with a distinct script (e.g. Chinese)",
    ),
    max_attempts: int | None = typer.Option(None, "--max-attempts", help="Give up after this many failed upstream calls"),
    log_file: Path | None = typer.Option(SETTINGS.log_file, "--log-file"),
) -> None:
    configure_logging(json_output=json_output, debug=debug, log_file=log_file)
    settings = replace(_build_settings(upstreams, verify=verify, max_attempts=max_attempts), host=host, port=port)
    service = RelayService(settings)

    try:
        web.run_app(create_app(service), host=host, port=port, print=None, access_log=None)
    except RelayError as exc:
        logger.error(exc.message)
        raise typer.Exit(code=1) from exc


def _render_summary(summary: RefreshSummary) -> Table:
    table = Table(title="Upstream availability")
    table.add_column("Family")
    table.add_column("Configured", justify="right")
    table.add_column("Available", justify="right")
    table.add_row("keys", str(summary.total_accounts), str(summary.alive_accounts))
    table.add_row("urls", str(summary.total_relays), str(summary.alive_relays))
    return table


@app.command(help="Probe every configured upstream once and print the result")
def check(
    upstreams: Path | None = typer.Option(None, "--upstreams", "-u"),
    debug: bool = typer.Option(False, "--debug", "-d"),
) -> None:
    configure_logging(debug=debug)
    service = RelayService(_build_settings(upstreams))

    async def runner() -> RefreshSummary:
        try:
            return await service.refresh()
        finally:
            await service.close()

    try:
        summary = asyncio.run(runner())
    except RelayError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(code=1) from exc
    console.print(_render_summary(summary))


if __name__ == "__main__":
    app()

"""CLI entry point and orchestration for iptvperf."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from datetime import datetime, timezone

import click

from iptvperf import __version__
from iptvperf.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_STREAM_WINDOW,
    DEFAULT_TIMEOUT,
)
from iptvperf.models import MeasurementConfig, RunResult


@click.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("-t", "--timeout", default=DEFAULT_TIMEOUT, help="Overall timeout per target in seconds", show_default=True)
@click.option("-c", "--concurrent", default=DEFAULT_CONCURRENCY, help="Targets measured at once", show_default=True)
@click.option("--probe-timeout", default=DEFAULT_PROBE_TIMEOUT, help="HEAD probe timeout in seconds", show_default=True)
@click.option("--window", default=DEFAULT_STREAM_WINDOW, help="Seconds of body sampled per stream", show_default=True)
@click.option("--connect-timeout", default=DEFAULT_CONNECT_TIMEOUT, help="Connect timeout in seconds", show_default=True)
@click.option("--read-timeout", default=DEFAULT_READ_TIMEOUT, help="Read timeout in seconds", show_default=True)
@click.option("--verify/--no-verify", default=False, help="Verify TLS certificates", show_default=True)
@click.option("--json", "json_output", is_flag=True, help="Output JSON to stdout")
@click.option("--csv", "csv_output", is_flag=True, help="Output CSV to stdout")
@click.option("-o", "--output", default=None, help="Write results to file")
@click.option("-q", "--quiet", is_flag=True, help="Suppress progress, show only results")
@click.option("-v", "--verbose", is_flag=True, help="Show diagnostic details")
@click.version_option(version=__version__)
def main(
    urls: tuple[str, ...],
    timeout: float,
    concurrent: int,
    probe_timeout: float,
    window: float,
    connect_timeout: float,
    read_timeout: float,
    verify: bool,
    json_output: bool,
    csv_output: bool,
    output: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """iptvperf - IPTV stream speed test.

    Measures latency and throughput of direct HTTP media, HLS (M3U8)
    playlists and udpxy multicast proxy URLs.
    """
    _configure_logging(verbose)

    if not quiet and not json_output and not csv_output:
        for var in ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy"):
            if os.environ.get(var):
                from iptvperf.display import render_warning
                render_warning(f"Proxy detected ({var}={os.environ[var]}); results may not reflect direct routing")
                break

    config = MeasurementConfig(
        timeout=timeout,
        probe_timeout=probe_timeout,
        stream_window=window,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        concurrency=concurrent,
        verify_tls=verify,
        verbose=verbose,
        quiet=quiet,
        json_output=json_output,
        csv_output=csv_output,
        output_file=output,
    )

    try:
        run = asyncio.run(_run(list(urls), config))
    except KeyboardInterrupt:
        if not quiet and not json_output and not csv_output:
            from iptvperf.display import console
            console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)

    _handle_output(run, config)

    if not run.all_succeeded:
        sys.exit(1)


def _configure_logging(verbose: bool) -> None:
    """Route log records through Rich on stderr."""
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )
    # httpx/httpcore debug output drowns the pipeline narration.
    for noisy in ("httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def _run(urls: list[str], config: MeasurementConfig) -> RunResult:
    """Main async orchestration."""
    from iptvperf.display import ProgressTracker, console
    from iptvperf.pipeline import measure_all

    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")

    progress = None
    if not config.quiet and not config.json_output and not config.csv_output and not config.verbose:
        progress = ProgressTracker(urls)

    def on_progress(url: str, index: int, total: int, result):
        if progress:
            if result is None:
                progress.update(index, "measuring")
            else:
                progress.update(index, "done" if result.succeeded else "failed")

    if progress:
        noun = "target" if len(urls) == 1 else "targets"
        console.print(f"[bold]Measuring {len(urls)} {noun}...[/bold]\n")
        progress.start()

    try:
        results = await measure_all(urls, config, progress_callback=on_progress)
    finally:
        if progress:
            progress.finish()

    return RunResult(results=results, config=config, timestamp=timestamp)


def _handle_output(run: RunResult, config: MeasurementConfig) -> None:
    """Print or save the run in the requested format."""
    from iptvperf.display import console, render_results
    from iptvperf.export import export_csv, export_json, write_to_file

    exporter = None
    if config.json_output:
        exporter = export_json
    elif config.csv_output:
        exporter = export_csv

    if exporter is None:
        render_results(run, verbose=config.verbose)
        if config.output_file:
            # Table mode saves JSON alongside the rendered table.
            write_to_file(export_json(run), config.output_file)
            console.print(f"\n[dim]Results written to {config.output_file}[/dim]")
        return

    content = exporter(run)
    if not config.output_file:
        click.echo(content)
        return

    write_to_file(content, config.output_file)
    if not config.quiet:
        console.print(f"[dim]Results written to {config.output_file}[/dim]")


if __name__ == "__main__":
    main()

"""Rich terminal output for iptvperf."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from iptvperf.config import (
    FAST_THRESHOLD_MS,
    MEDIUM_THRESHOLD_KBPS,
    MEDIUM_THRESHOLD_MS,
    SLOW_THRESHOLD_KBPS,
)
from iptvperf.models import MeasurementResult, RunResult

console = Console()


def _color_for_kbps(value: float) -> str:
    """Return a Rich color name based on throughput thresholds."""
    if value < SLOW_THRESHOLD_KBPS:
        return "red"
    elif value < MEDIUM_THRESHOLD_KBPS:
        return "yellow"
    return "green"


def _color_for_ms(value: float) -> str:
    if value <= FAST_THRESHOLD_MS:
        return "green"
    elif value <= MEDIUM_THRESHOLD_MS:
        return "yellow"
    return "red"


def format_latency(result: MeasurementResult, colorize: bool = True) -> Text:
    """Format latency; the not-measured sentinel renders as a dash."""
    if not result.latency_measured:
        return Text("\u2014", style="dim")
    text = f"{result.latency_ms:.1f}ms"
    return Text(text, style=_color_for_ms(result.latency_ms) if colorize else "")


def format_throughput(result: MeasurementResult, colorize: bool = True) -> Text:
    if not result.succeeded:
        return Text("\u2014", style="dim")
    kbps = result.throughput_kbps
    text = f"{kbps / 1024:.2f} Mbps" if kbps >= 1024 else f"{kbps:.1f} kbps"
    return Text(text, style=_color_for_kbps(kbps) if colorize else "")


# ── Progress tracking ─────────────────────────────────────────────────


class ProgressTracker:
    """Live progress display while targets are being measured."""

    def __init__(self, urls: list[str]):
        self.urls = urls
        self.status: dict[int, str] = {i: "waiting" for i in range(len(urls))}
        self.live: Optional[Live] = None

    def _build_table(self) -> Table:
        table = Table(show_header=True, expand=False, border_style="dim")
        table.add_column("#", justify="right", width=3, style="dim")
        table.add_column("Target", style="bold", max_width=60, overflow="ellipsis")
        table.add_column("Status")

        for index, url in enumerate(self.urls):
            status = self.status[index]
            style = "green" if status == "done" else ("red" if status == "failed" else "yellow")
            table.add_row(str(index + 1), url, f"[{style}]{status}[/{style}]")

        return table

    def start(self) -> None:
        self.live = Live(self._build_table(), console=console, refresh_per_second=4)
        self.live.start()

    def update(self, index: int, status: str) -> None:
        self.status[index] = status
        if self.live:
            self.live.update(self._build_table())

    def finish(self) -> None:
        if self.live:
            self.live.stop()


# ── Result rendering ──────────────────────────────────────────────────


def build_results_table(results: list[MeasurementResult], verbose: bool = False) -> Table:
    """Build the per-target summary table."""
    table = Table(
        show_header=True,
        border_style="bright_black",
        expand=False,
        pad_edge=True,
        header_style="bold",
        title="[bold]Stream Speed Test[/bold]",
        title_style="",
    )
    table.add_column("Target", style="bold", max_width=48, overflow="ellipsis")
    table.add_column("Protocol", min_width=8)
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Throughput", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Duration", justify="right")
    if verbose:
        table.add_column("Detail", overflow="fold")

    for r in results:
        status = Text("ok", style="green") if r.succeeded else Text(
            r.failure_kind.value if r.failure_kind else "failed", style="red"
        )
        size = f"{r.bytes_mb:.2f} MB" if r.succeeded else "\u2014"
        row = [
            r.target,
            r.protocol_label or "\u2014",
            status,
            format_latency(r),
            format_throughput(r),
            size,
            f"{r.wall_seconds:.2f}s",
        ]
        if verbose:
            row.append(Text(r.detail_message, style="dim" if r.succeeded else "red"))
        table.add_row(*row)

    return table


def render_results(run: RunResult, verbose: bool = False) -> None:
    """Render the complete measurement results."""
    if not run.results:
        console.print("[dim]No results.[/dim]")
        return

    console.print()
    console.print(build_results_table(run.results, verbose=verbose))

    if not verbose:
        for r in run.results:
            if not r.succeeded:
                console.print(f"  [red]{r.target}[/red]: {r.detail_message}")
            elif r.segments_total:
                console.print(f"  [dim]{r.target}: {r.detail_message}[/dim]")
    console.print()


def render_warning(message: str) -> None:
    """Display a warning message."""
    console.print(f"[yellow]Warning:[/yellow] {message}")

"""Core measurement engine for iptvperf.

Every strategy boils down to a timed streaming GET:

  request -> response headers (latency) -> body (bytes over time)

Two independent time bounds apply.  The overall timeout covers a whole
strategy and turns into a ``TIMEOUT`` failure when exceeded; the
streaming window only limits how long a single body is sampled, so
live streams that never end still finish cleanly.

Public API:
    stream_download   -- one streaming GET, sampled for the stream window
    run_with_deadline -- await a coroutine under the overall timeout
    measure           -- run the strategy for a classified target
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

import httpx

from iptvperf.config import LATENCY_NOT_MEASURED, PROTOCOL_LABELS
from iptvperf.errors import (
    AllSegmentsFailedError,
    EmptyPlaylistError,
    FetchError,
    HttpStatusError,
    MeasurementError,
    MeasurementTimeoutError,
    ProbeFailedError,
)
from iptvperf.models import (
    ClassificationOutcome,
    MeasurementConfig,
    MeasurementResult,
    StreamSample,
)
from iptvperf.stats import bytes_to_mb, fastest_latency, throughput_kbps, total_bytes

logger = logging.getLogger(__name__)

T = TypeVar("T")


def protocol_label(classification: ClassificationOutcome) -> str:
    """Human-readable protocol name for a classification outcome."""
    if classification in (
        ClassificationOutcome.HLS_PLAYLIST,
        ClassificationOutcome.PROBE_FAILED_LIKELY_HLS,
    ):
        return PROTOCOL_LABELS["hls"]
    if classification is ClassificationOutcome.UDP_PROXY:
        return PROTOCOL_LABELS["udpxy"]
    return PROTOCOL_LABELS["direct"]


def request_timeout(config: MeasurementConfig) -> httpx.Timeout:
    """Per-request httpx timeout: short connect, bounded reads."""
    return httpx.Timeout(
        config.timeout,
        connect=config.connect_timeout,
        read=config.read_timeout,
    )


async def run_with_deadline(awaitable: Awaitable[T], timeout: float) -> T:
    """Await *awaitable*, cancelling it once *timeout* seconds have passed.

    Raises
    ------
    MeasurementTimeoutError
        When the deadline expires.  Everything in flight is cancelled.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise MeasurementTimeoutError(f"Timed out after {timeout:.1f}s") from exc


# ---------------------------------------------------------------------------
# Streaming download
# ---------------------------------------------------------------------------

@dataclass
class _ByteCounter:
    """Running byte total that survives cancellation of the reader."""

    total: int = 0


async def _drain(response: httpx.Response, counter: _ByteCounter) -> None:
    async for chunk in response.aiter_bytes():
        counter.total += len(chunk)


async def stream_download(
    client: httpx.AsyncClient,
    url: str,
    config: MeasurementConfig,
    measure_latency: bool = True,
) -> StreamSample:
    """Issue one GET for *url* and sample its body.

    The body is read until it ends or ``config.stream_window`` seconds
    have passed since the headers arrived, whichever comes first.  The
    window expiring is a normal stop (``sample.truncated``), not an error.

    Raises
    ------
    HttpStatusError
        On a non-2xx response.
    FetchError
        On any transport failure.
    """
    sample = StreamSample(url=url)
    counter = _ByteCounter()

    t_start = time.perf_counter()
    try:
        async with client.stream("GET", url, timeout=request_timeout(config)) as response:
            t_headers = time.perf_counter()
            sample.status_code = response.status_code
            if not response.is_success:
                raise HttpStatusError(response.status_code, url, response.reason_phrase)

            if measure_latency:
                sample.latency_ms = round((t_headers - t_start) * 1000.0, 3)

            try:
                await asyncio.wait_for(_drain(response, counter), timeout=config.stream_window)
            except asyncio.TimeoutError:
                sample.truncated = True
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(f"Download failed for {url}: {exc}") from exc

    sample.bytes_read = counter.total
    sample.elapsed_seconds = time.perf_counter() - t_start

    logger.debug(
        "Read %d bytes from %s in %.2fs%s",
        sample.bytes_read,
        url,
        sample.elapsed_seconds,
        " (stream window reached)" if sample.truncated else "",
    )
    return sample


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

async def _measure_single(
    url: str,
    classification: ClassificationOutcome,
    config: MeasurementConfig,
    client: httpx.AsyncClient,
) -> MeasurementResult:
    """Direct media, probe-failed fallback and Udpxy: one stream, one sample."""
    is_proxy = classification is ClassificationOutcome.UDP_PROXY
    sample = await stream_download(client, url, config, measure_latency=not is_proxy)

    if is_proxy:
        detail = "Udpxy multicast proxy stream sampled"
    elif classification is ClassificationOutcome.PROBE_FAILED_NOT_HLS:
        detail = "HEAD probe failed; measured with a direct GET"
    else:
        detail = "Direct download complete"
    if sample.truncated:
        detail += f" (sampled for {config.stream_window:g}s)"

    return MeasurementResult(
        target=url,
        succeeded=True,
        latency_ms=LATENCY_NOT_MEASURED if is_proxy else sample.latency_ms,
        throughput_kbps=throughput_kbps(sample.bytes_read, sample.elapsed_seconds),
        bytes_mb=bytes_to_mb(sample.bytes_read),
        wall_seconds=sample.elapsed_seconds,
        protocol_label=protocol_label(classification),
        detail_message=detail,
        classification=classification,
    )


async def _download_segment(
    client: httpx.AsyncClient,
    url: str,
    config: MeasurementConfig,
) -> StreamSample:
    """Download one segment; failures are recorded, never raised."""
    try:
        return await stream_download(client, url, config)
    except MeasurementError as exc:
        logger.debug("Segment failed: %s", exc)
        return StreamSample(url=url, error=str(exc))


async def _measure_segments(
    target: str,
    urls: list[str],
    config: MeasurementConfig,
    client: httpx.AsyncClient,
) -> MeasurementResult:
    """Download the first segments concurrently and aggregate them.

    Throughput is total bytes over the wall time of the whole fan-out,
    not the sum of per-segment times.
    """
    selected = urls[: config.max_segments]
    if not selected:
        raise EmptyPlaylistError(f"No media segments to download for {target}")

    logger.debug("Downloading %d of %d segments concurrently", len(selected), len(urls))

    t_start = time.perf_counter()
    samples = await asyncio.gather(
        *(_download_segment(client, url, config) for url in selected)
    )
    wall_seconds = time.perf_counter() - t_start

    succeeded = [s for s in samples if s.ok]
    if not succeeded:
        raise AllSegmentsFailedError(f"All {len(selected)} segments failed")

    num_bytes = total_bytes(samples)
    kbps = throughput_kbps(num_bytes, wall_seconds)

    return MeasurementResult(
        target=target,
        succeeded=True,
        latency_ms=fastest_latency(succeeded),
        throughput_kbps=kbps,
        bytes_mb=bytes_to_mb(num_bytes),
        wall_seconds=wall_seconds,
        protocol_label=protocol_label(ClassificationOutcome.HLS_PLAYLIST),
        detail_message=(
            f"{len(succeeded)} of {len(selected)} segments succeeded, "
            f"average {kbps:.2f} kbps"
        ),
        classification=ClassificationOutcome.HLS_PLAYLIST,
        segments_total=len(selected),
        segments_ok=len(succeeded),
    )


async def _run_strategy(
    target: str,
    classification: ClassificationOutcome,
    urls: list[str],
    config: MeasurementConfig,
    client: httpx.AsyncClient,
) -> MeasurementResult:
    if classification is ClassificationOutcome.PROBE_FAILED_LIKELY_HLS:
        raise ProbeFailedError(
            "Metadata probe failed for a playlist URL; playlist treated as untestable"
        )

    if classification is ClassificationOutcome.HLS_PLAYLIST:
        return await _measure_segments(target, urls, config, client)

    if not urls:
        raise FetchError(f"No URL to download for {target}")
    result = await _measure_single(urls[0], classification, config, client)
    result.target = target
    return result


async def measure(
    classification: ClassificationOutcome,
    urls: list[str],
    config: MeasurementConfig,
    client: httpx.AsyncClient,
    target: Optional[str] = None,
) -> MeasurementResult:
    """Measure a classified target and return its verdict.

    Parameters
    ----------
    classification:
        Strategy selector from :func:`iptvperf.classifier.classify`.
    urls:
        Concrete URLs to download: the target itself for direct/proxy
        targets, the resolved segment URLs for HLS.
    config:
        ``timeout`` bounds the whole call; ``stream_window`` bounds each
        body read.
    client:
        Shared HTTP client.
    target:
        Identifier reported in the result (defaults to ``urls[0]``).

    Never raises for measurement failures: those come back as a failed
    :class:`MeasurementResult` carrying a :class:`FailureKind`.
    """
    target = target or (urls[0] if urls else "")
    label = protocol_label(classification)

    t_start = time.perf_counter()
    try:
        result = await run_with_deadline(
            _run_strategy(target, classification, urls, config, client),
            config.timeout,
        )
    except MeasurementError as exc:
        logger.debug("Measurement failed for %s: %s", target, exc)
        return MeasurementResult.failure(
            target,
            exc.kind,
            str(exc),
            protocol_label=label,
            classification=classification,
            wall_seconds=time.perf_counter() - t_start,
        )

    result.wall_seconds = time.perf_counter() - t_start
    return result

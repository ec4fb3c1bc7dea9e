"""Per-target orchestration: classify, resolve, measure.

Public API:
    build_client   -- the shared httpx client used for a run
    measure_target -- evaluate one target, always returning a verdict
    measure_all    -- evaluate several targets concurrently
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Optional

import httpx

from iptvperf.classifier import classify
from iptvperf.config import USER_AGENT
from iptvperf.engine import measure, protocol_label, request_timeout, run_with_deadline
from iptvperf.errors import MeasurementError, MeasurementTimeoutError, ProbeFailedError
from iptvperf.models import (
    ClassificationOutcome,
    FailureKind,
    MeasurementConfig,
    MeasurementResult,
)
from iptvperf.playlist import resolve_playlist
from iptvperf.urls import require_absolute_url

logger = logging.getLogger(__name__)

# Signature: (url, index, total, result_or_none)
ProgressCallback = Callable[[str, int, int, Optional[MeasurementResult]], None]


def build_client(config: MeasurementConfig) -> httpx.AsyncClient:
    """Create the HTTP client shared by every target of a run.

    The client holds no per-target state; it only pools connections.
    """
    return httpx.AsyncClient(
        http2=True,
        verify=config.verify_tls,
        follow_redirects=True,
        timeout=request_timeout(config),
        headers={"User-Agent": USER_AGENT},
    )


def _timed_out(
    url: str,
    config: MeasurementConfig,
    classification: ClassificationOutcome | None = None,
) -> MeasurementResult:
    exc = MeasurementTimeoutError(f"Timed out after {config.timeout:.1f}s")
    return MeasurementResult.failure(
        url,
        exc.kind,
        str(exc),
        protocol_label=protocol_label(classification) if classification else "",
        classification=classification,
    )


async def _measure_hls(
    url: str,
    config: MeasurementConfig,
    client: httpx.AsyncClient,
    deadline: float,
) -> MeasurementResult:
    """Resolve the playlist tree, then measure its segments.

    Resolution and download share the target's deadline: the engine only
    gets whatever budget resolution left over.
    """
    classification = ClassificationOutcome.HLS_PLAYLIST
    loop = asyncio.get_running_loop()

    remaining = deadline - loop.time()
    if remaining <= 0:
        return _timed_out(url, config, classification)

    try:
        segments = await run_with_deadline(resolve_playlist(url, client), remaining)
    except MeasurementTimeoutError:
        return _timed_out(url, config, classification)
    except MeasurementError as exc:
        logger.debug("Playlist resolution failed for %s: %s", url, exc)
        return MeasurementResult.failure(
            url,
            exc.kind,
            f"Playlist resolution failed: {exc}",
            protocol_label=protocol_label(classification),
            classification=classification,
        )

    remaining = deadline - loop.time()
    if remaining <= 0:
        return _timed_out(url, config, classification)

    logger.debug("Found %d segments in %s", len(segments), url)
    return await measure(
        classification,
        segments,
        replace(config, timeout=remaining),
        client,
        target=url,
    )


async def _evaluate(
    url: str,
    config: MeasurementConfig,
    client: httpx.AsyncClient,
) -> MeasurementResult:
    """Classify and measure *url*; ``config.timeout`` bounds probe and download together."""
    try:
        require_absolute_url(url)
    except MeasurementError as exc:
        return MeasurementResult.failure(url, exc.kind, str(exc))

    loop = asyncio.get_running_loop()
    deadline = loop.time() + config.timeout

    try:
        classification = await run_with_deadline(
            classify(url, client, config.probe_timeout),
            config.timeout,
        )
    except MeasurementTimeoutError:
        return _timed_out(url, config)
    logger.debug("Classified %s as %s", url, classification.name)

    if classification is ClassificationOutcome.PROBE_FAILED_LIKELY_HLS:
        exc = ProbeFailedError(
            "Metadata probe failed for a playlist URL; playlist treated as untestable"
        )
        return MeasurementResult.failure(
            url,
            exc.kind,
            str(exc),
            protocol_label=protocol_label(classification),
            classification=classification,
        )

    if classification is ClassificationOutcome.HLS_PLAYLIST:
        return await _measure_hls(url, config, client, deadline)

    remaining = deadline - loop.time()
    if remaining <= 0:
        return _timed_out(url, config, classification)
    return await measure(
        classification,
        [url],
        replace(config, timeout=remaining),
        client,
        target=url,
    )


async def measure_target(
    url: str,
    config: MeasurementConfig,
    client: httpx.AsyncClient | None = None,
) -> MeasurementResult:
    """Evaluate a single target and return its verdict.

    Never raises for measurement problems; a failure is reported as a
    :class:`MeasurementResult` with ``succeeded=False``.  When *client*
    is None a client is created for this call and closed afterwards.
    """
    if client is None:
        async with build_client(config) as owned_client:
            return await measure_target(url, config, owned_client)

    t_start = time.perf_counter()
    try:
        result = await _evaluate(url, config, client)
    except Exception as exc:
        logger.exception("Fatal error measuring %s", url)
        result = MeasurementResult.failure(
            url,
            FailureKind.FETCH_ERROR,
            f"Fatal measurement error: {exc}",
        )

    result.wall_seconds = round(time.perf_counter() - t_start, 3)
    return result


async def measure_all(
    urls: list[str],
    config: MeasurementConfig,
    progress_callback: ProgressCallback | None = None,
) -> list[MeasurementResult]:
    """Measure every URL in *urls* concurrently.

    At most ``config.concurrency`` targets are in flight at once.  Each
    target runs its own classify/resolve/measure pipeline; only the HTTP
    client is shared.

    Returns
    -------
    list[MeasurementResult]
        One result per URL, in the same order as *urls*.
    """
    total = len(urls)
    semaphore = asyncio.Semaphore(max(1, config.concurrency))

    async with build_client(config) as client:

        async def _bounded(index: int, url: str) -> MeasurementResult:
            async with semaphore:
                if progress_callback:
                    progress_callback(url, index, total, None)
                result = await measure_target(url, config, client)
                if progress_callback:
                    progress_callback(url, index, total, result)
                return result

        results = await asyncio.gather(*(_bounded(i, url) for i, url in enumerate(urls)))

    return list(results)

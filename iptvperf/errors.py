"""Exceptions raised inside the measurement pipeline.

Each exception carries the :class:`FailureKind` it maps to; the engine and
the orchestrator turn them into failed :class:`MeasurementResult` records.
"""

from __future__ import annotations

from typing import Optional

from iptvperf.models import FailureKind


class MeasurementError(Exception):
    """Base measurement exception."""

    kind: FailureKind = FailureKind.FETCH_ERROR


class MalformedUrlError(MeasurementError):
    """Raised when a target is not an absolute URL."""

    kind = FailureKind.MALFORMED_URL


class FetchError(MeasurementError):
    """Raised on transport-level failures (connect, read, protocol)."""

    kind = FailureKind.FETCH_ERROR


class HttpStatusError(MeasurementError):
    """Raised when a server answers with a non-success status."""

    kind = FailureKind.HTTP_STATUS

    def __init__(self, status_code: int, url: str, reason: Optional[str] = None) -> None:
        self.status_code = status_code
        self.url = url
        message = f"HTTP {status_code}"
        if reason:
            message += f" {reason}"
        super().__init__(f"{message} for {url}")


class EmptyPlaylistError(MeasurementError):
    """Raised when a playlist tree yields no media segments."""

    kind = FailureKind.EMPTY_PLAYLIST


class AllSegmentsFailedError(MeasurementError):
    """Raised when every selected HLS segment failed to download."""

    kind = FailureKind.ALL_SEGMENTS_FAILED


class ProbeFailedError(MeasurementError):
    """Raised for a declared playlist whose metadata probe failed."""

    kind = FailureKind.PROBE_FAILED


class MeasurementTimeoutError(MeasurementError):
    """Raised when the overall per-target bound is exceeded."""

    kind = FailureKind.TIMEOUT

"""Data models for iptvperf."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from iptvperf.config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_STREAM_WINDOW,
    DEFAULT_TIMEOUT,
    LATENCY_NOT_MEASURED,
    MAX_SEGMENTS,
)


class ClassificationOutcome(enum.Enum):
    """Which measurement strategy applies to a target."""

    DIRECT_MEDIA = "direct_media"
    HLS_PLAYLIST = "hls_playlist"
    UDP_PROXY = "udp_proxy"
    PROBE_FAILED_LIKELY_HLS = "probe_failed_likely_hls"
    PROBE_FAILED_NOT_HLS = "probe_failed_not_hls"


class FailureKind(enum.Enum):
    """Why a target produced a failed verdict."""

    MALFORMED_URL = "malformed_url"
    FETCH_ERROR = "fetch_error"
    HTTP_STATUS = "http_status"
    EMPTY_PLAYLIST = "empty_playlist"
    ALL_SEGMENTS_FAILED = "all_segments_failed"
    TIMEOUT = "timeout"
    PROBE_FAILED = "probe_failed"


@dataclass
class PlaylistNode:
    """One parsed M3U8 document.

    Master playlists carry only the best variant; media playlists carry
    their segment references in file order.
    """

    is_master: bool = False
    segments: list[str] = field(default_factory=list)
    best_variant_url: Optional[str] = None
    best_bandwidth: Optional[int] = None
    variant_count: int = 0


@dataclass
class StreamSample:
    """Outcome of a single streaming GET (direct, segment or proxy)."""

    url: str
    bytes_read: int = 0
    latency_ms: float = LATENCY_NOT_MEASURED
    elapsed_seconds: float = 0.0
    truncated: bool = False  # stopped by the streaming window, not by EOF
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MeasurementConfig:
    """Configuration for a measurement run."""

    timeout: float = DEFAULT_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    stream_window: float = DEFAULT_STREAM_WINDOW
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    concurrency: int = DEFAULT_CONCURRENCY  # advisory
    max_segments: int = MAX_SEGMENTS
    verify_tls: bool = False
    verbose: bool = False
    quiet: bool = False
    json_output: bool = False
    csv_output: bool = False
    output_file: Optional[str] = None


@dataclass
class MeasurementResult:
    """Throughput/latency verdict for one target."""

    target: str
    succeeded: bool
    latency_ms: float = LATENCY_NOT_MEASURED
    throughput_kbps: float = 0.0
    bytes_mb: float = 0.0
    wall_seconds: float = 0.0
    protocol_label: str = ""
    detail_message: str = ""
    classification: Optional[ClassificationOutcome] = None
    failure_kind: Optional[FailureKind] = None
    segments_total: int = 0
    segments_ok: int = 0

    @property
    def latency_measured(self) -> bool:
        return self.latency_ms >= 0

    @classmethod
    def failure(
        cls,
        target: str,
        kind: FailureKind,
        detail: str,
        protocol_label: str = "",
        classification: Optional[ClassificationOutcome] = None,
        wall_seconds: float = 0.0,
    ) -> MeasurementResult:
        """Build a failed verdict: no latency, no throughput, no bytes."""
        return cls(
            target=target,
            succeeded=False,
            latency_ms=LATENCY_NOT_MEASURED,
            throughput_kbps=0.0,
            bytes_mb=0.0,
            wall_seconds=wall_seconds,
            protocol_label=protocol_label,
            detail_message=detail,
            classification=classification,
            failure_kind=kind,
        )


@dataclass
class RunResult:
    """Complete measurement run results."""

    results: list[MeasurementResult] = field(default_factory=list)
    config: Optional[MeasurementConfig] = None
    timestamp: Optional[str] = None

    @property
    def all_succeeded(self) -> bool:
        return bool(self.results) and all(r.succeeded for r in self.results)

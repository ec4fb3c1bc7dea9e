"""Throughput arithmetic shared by every measurement strategy."""

from __future__ import annotations

from typing import Sequence

from iptvperf.config import LATENCY_NOT_MEASURED
from iptvperf.models import StreamSample

_BYTES_PER_KILOBIT = 1024 / 8
_BYTES_PER_MB = 1024 * 1024


def throughput_kbps(num_bytes: int, seconds: float) -> float:
    """Kilobits per second (bytes * 8 / 1024 / seconds); 0 for non-positive durations."""
    if seconds <= 0:
        return 0.0
    return num_bytes / _BYTES_PER_KILOBIT / seconds


def bytes_to_mb(num_bytes: int) -> float:
    return num_bytes / _BYTES_PER_MB


def fastest_latency(samples: Sequence[StreamSample]) -> float:
    """Smallest measured time-to-headers among *samples*, or the sentinel."""
    measured = [s.latency_ms for s in samples if s.latency_ms >= 0]
    if not measured:
        return LATENCY_NOT_MEASURED
    return min(measured)


def total_bytes(samples: Sequence[StreamSample]) -> int:
    """Bytes read by the successful samples only."""
    return sum(s.bytes_read for s in samples if s.ok)

"""JSON and CSV export for measurement results."""

from __future__ import annotations

import csv
import io
import json

from iptvperf.models import MeasurementResult, RunResult

CSV_COLUMNS = [
    "timestamp",
    "target",
    "succeeded",
    "protocol",
    "classification",
    "failure_kind",
    "latency_ms",
    "throughput_kbps",
    "size_mb",
    "duration_s",
    "segments_ok",
    "segments_total",
    "detail",
]


def export_json(run: RunResult, indent: int = 2) -> str:
    """Export full results as JSON string."""
    data = _build_export_dict(run)
    return json.dumps(data, indent=indent, default=str)


def export_csv(run: RunResult) -> str:
    """Export results as CSV string (one row per target)."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_COLUMNS)

    for r in run.results:
        writer.writerow([
            run.timestamp or "",
            r.target,
            r.succeeded,
            r.protocol_label,
            r.classification.value if r.classification else "",
            r.failure_kind.value if r.failure_kind else "",
            round(r.latency_ms, 3),
            round(r.throughput_kbps, 3),
            round(r.bytes_mb, 4),
            round(r.wall_seconds, 3),
            r.segments_ok if r.segments_total else "",
            r.segments_total or "",
            r.detail_message,
        ])

    return output.getvalue()


def write_to_file(content: str, filepath: str) -> None:
    """Write export content to a file."""
    with open(filepath, "w") as f:
        f.write(content)


def _build_export_dict(run: RunResult) -> dict:
    """Build a serializable dictionary from RunResult."""
    data: dict = {}

    if run.timestamp:
        data["timestamp"] = run.timestamp

    if run.config:
        data["config"] = {
            "timeout": run.config.timeout,
            "probe_timeout": run.config.probe_timeout,
            "stream_window": run.config.stream_window,
            "connect_timeout": run.config.connect_timeout,
            "read_timeout": run.config.read_timeout,
            "concurrency": run.config.concurrency,
            "max_segments": run.config.max_segments,
            "verify_tls": run.config.verify_tls,
        }

    data["results"] = [_result_to_dict(r) for r in run.results]
    return data


def _result_to_dict(r: MeasurementResult) -> dict:
    """Convert a MeasurementResult to a serializable dict."""
    rdata: dict = {
        "target": r.target,
        "succeeded": r.succeeded,
        "protocol": r.protocol_label,
        "classification": r.classification.value if r.classification else None,
        "failure_kind": r.failure_kind.value if r.failure_kind else None,
        "latency_ms": r.latency_ms,
        "throughput_kbps": round(r.throughput_kbps, 3),
        "size_mb": round(r.bytes_mb, 4),
        "duration_s": round(r.wall_seconds, 3),
        "detail": r.detail_message,
    }
    if r.segments_total:
        rdata["segments"] = {"ok": r.segments_ok, "total": r.segments_total}
    return rdata

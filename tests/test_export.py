"""
Tests for JSON/CSV export and throughput arithmetic.
"""

import csv
import io
import json

import pytest

from iptvperf.export import CSV_COLUMNS, export_csv, export_json, write_to_file
from iptvperf.models import (
    ClassificationOutcome,
    FailureKind,
    MeasurementConfig,
    MeasurementResult,
    RunResult,
    StreamSample,
)
from iptvperf.stats import bytes_to_mb, fastest_latency, throughput_kbps, total_bytes


@pytest.fixture
def sample_run():
    ok = MeasurementResult(
        target="https://tv.example.com/ch1/master.m3u8",
        succeeded=True,
        latency_ms=42.5,
        throughput_kbps=8192.0,
        bytes_mb=3.0,
        wall_seconds=2.9,
        protocol_label="HLS/M3U8",
        detail_message="2 of 5 segments succeeded",
        classification=ClassificationOutcome.HLS_PLAYLIST,
        segments_total=5,
        segments_ok=2,
    )
    failed = MeasurementResult.failure(
        "http://example.com/live.ts",
        FailureKind.TIMEOUT,
        "Timed out after 10.0s",
        protocol_label="HTTP",
        classification=ClassificationOutcome.DIRECT_MEDIA,
        wall_seconds=10.0,
    )
    return RunResult(
        results=[ok, failed],
        config=MeasurementConfig(),
        timestamp="2026-01-01T00:00:00+00:00",
    )


class TestThroughputMath:
    """Tests for the unit conversions in stats."""

    def test_kilobits_per_second(self):
        assert throughput_kbps(128 * 1024, 1.0) == pytest.approx(1024.0)
        assert throughput_kbps(128 * 1024, 2.0) == pytest.approx(512.0)

    @pytest.mark.parametrize("seconds", [0.0, -0.5])
    def test_non_positive_duration_is_zero(self, seconds):
        assert throughput_kbps(1_000_000, seconds) == 0.0

    def test_megabytes(self):
        assert bytes_to_mb(3 * 1024 * 1024) == pytest.approx(3.0)

    def test_segment_helpers(self):
        samples = [
            StreamSample(url="a", bytes_read=100, latency_ms=30.0),
            StreamSample(url="b", bytes_read=50, latency_ms=12.0),
            StreamSample(url="c", bytes_read=999, error="boom"),
        ]
        assert total_bytes(samples) == 150
        assert fastest_latency(samples[:2]) == 12.0
        assert fastest_latency([StreamSample(url="x")]) == -1


class TestFailureResult:
    def test_failure_defaults(self):
        result = MeasurementResult.failure("u", FailureKind.FETCH_ERROR, "nope")
        assert result.succeeded is False
        assert result.latency_ms == -1
        assert result.latency_measured is False
        assert result.throughput_kbps == 0.0
        assert result.bytes_mb == 0.0


class TestExportJson:
    def test_structure(self, sample_run):
        data = json.loads(export_json(sample_run))

        assert data["timestamp"] == "2026-01-01T00:00:00+00:00"
        assert data["config"]["max_segments"] == 5
        assert len(data["results"]) == 2

        first, second = data["results"]
        assert first["classification"] == "hls_playlist"
        assert first["segments"] == {"ok": 2, "total": 5}
        assert second["failure_kind"] == "timeout"
        assert second["latency_ms"] == -1
        assert "segments" not in second


class TestExportCsv:
    def test_rows(self, sample_run):
        rows = list(csv.reader(io.StringIO(export_csv(sample_run))))

        assert rows[0] == CSV_COLUMNS
        assert len(rows) == 3
        record = dict(zip(CSV_COLUMNS, rows[1]))
        assert record["target"] == "https://tv.example.com/ch1/master.m3u8"
        assert record["segments_ok"] == "2"
        failed = dict(zip(CSV_COLUMNS, rows[2]))
        assert failed["succeeded"] == "False"
        assert failed["failure_kind"] == "timeout"


def test_write_to_file(tmp_path, sample_run):
    target = tmp_path / "out.json"
    write_to_file(export_json(sample_run), str(target))
    assert json.loads(target.read_text())["results"][0]["succeeded"] is True

"""
Tests for target classification.
"""

import asyncio

import httpx
import pytest

from iptvperf.classifier import classify, is_udpxy_url
from iptvperf.models import ClassificationOutcome


class TestIsUdpxyUrl:
    """Tests for the static Udpxy signature check."""

    @pytest.mark.parametrize(
        "url",
        [
            "http://192.168.1.1:4022/rtp/239.3.1.241:8000",
            "http://router.lan/rtp/239.1.1.1:5000",
            "http://router.lan/udpxy/rtp/239.1.1.1",
            "http://ROUTER.LAN/RTP/239.1.1.1:1234",
        ],
    )
    def test_matches(self, url):
        assert is_udpxy_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "http://example.com/live/stream.ts",
            "http://example.com/rtp/224.0.0.1:5000",
            "http://example.com/udp/239.1.1.1:5000",
            "http://239.1.1.1/live.m3u8",
            "http://router.lan/rtp/239.1.1.1",
        ],
    )
    def test_does_not_match(self, url):
        assert not is_udpxy_url(url)


class TestClassify:
    """Tests for classify with a fake server."""

    def _classify(self, server, run, url):
        async def scenario():
            async with server.client() as client:
                return await classify(url, client, probe_timeout=1.0)

        return run(scenario())

    def test_udpxy_short_circuits_without_probe(self, server, run):
        """Udpxy URLs are classified with no network request."""
        url = "http://192.168.1.1:4022/rtp/239.3.1.241:8000"
        assert self._classify(server, run, url) is ClassificationOutcome.UDP_PROXY
        assert server.requests == []

    def test_playlist_content_type(self, server, run):
        url = "http://example.com/channel/1"
        server.add(url, headers={"content-type": "application/vnd.apple.mpegurl"})

        assert self._classify(server, run, url) is ClassificationOutcome.HLS_PLAYLIST
        assert server.urls_requested("HEAD") == [url]
        assert server.urls_requested("GET") == []

    def test_legacy_playlist_content_type(self, server, run):
        url = "http://example.com/channel/2"
        server.add(url, headers={"content-type": "audio/x-mpegURL"})
        assert self._classify(server, run, url) is ClassificationOutcome.HLS_PLAYLIST

    def test_playlist_extension_with_generic_content_type(self, server, run):
        url = "http://example.com/live/index.m3u8?token=abc"
        server.add(url, headers={"content-type": "application/octet-stream"})
        assert self._classify(server, run, url) is ClassificationOutcome.HLS_PLAYLIST

    def test_direct_media(self, server, run):
        url = "http://example.com/movie.mp4"
        server.add(url, headers={"content-type": "video/mp4"})
        assert self._classify(server, run, url) is ClassificationOutcome.DIRECT_MEDIA

    def test_probe_status_failure_on_playlist(self, server, run):
        url = "http://example.com/live/index.m3u8"
        server.add(url, status=403)
        assert self._classify(server, run, url) is ClassificationOutcome.PROBE_FAILED_LIKELY_HLS

    def test_probe_status_failure_on_media(self, server, run):
        url = "http://example.com/live/stream.ts"
        server.add(url, status=405)
        assert self._classify(server, run, url) is ClassificationOutcome.PROBE_FAILED_NOT_HLS

    def test_probe_transport_failure_uses_path_only(self, server, run):
        """After a failed probe only the final path segment is inspected."""
        url = "http://example.com/live/index.m3u8?session=1"
        server.add(url, error=httpx.ConnectError)
        assert self._classify(server, run, url) is ClassificationOutcome.PROBE_FAILED_LIKELY_HLS

    def test_probe_failure_extension_in_query_ignored(self, server, run):
        url = "http://example.com/play?file=index.m3u8"
        server.add(url, error=httpx.ReadTimeout)
        assert self._classify(server, run, url) is ClassificationOutcome.PROBE_FAILED_NOT_HLS

    def test_redirect_is_followed(self, server, run):
        url = "http://example.com/short"
        target = "http://cdn.example.com/real.m3u8"
        server.add(url, status=302, headers={"location": target})
        server.add(target, headers={"content-type": "application/x-mpegurl"})
        assert self._classify(server, run, url) is ClassificationOutcome.HLS_PLAYLIST

    def test_stalled_probe_is_cut_off(self, server, run):
        """A HEAD request that never answers ends at the probe timeout."""
        url = "http://example.com/live/index.m3u8"
        server.add(url, head_delay=5.0)

        async def scenario():
            loop = asyncio.get_running_loop()
            started = loop.time()
            async with server.client() as client:
                outcome = await classify(url, client, probe_timeout=0.2)
            return outcome, loop.time() - started

        outcome, elapsed = run(scenario())

        assert outcome is ClassificationOutcome.PROBE_FAILED_LIKELY_HLS
        assert elapsed < 2.0

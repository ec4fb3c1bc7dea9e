"""Decide which measurement strategy applies to a target URL.

The decision uses, in order:

1. a cheap, authoritative Udpxy signature check on the URL itself,
2. a HEAD probe bounded by the probe timeout,
3. the URL's final path segment when the probe cannot be trusted.

Public API:
    is_udpxy_url -- static Udpxy signature check
    classify     -- full classification, at most one bounded network probe
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlparse

import httpx

from iptvperf.config import (
    MULTICAST_MARKER,
    PLAYLIST_CONTENT_MARKERS,
    UDPXY_MIN_PATH_DEPTH,
    UDPXY_PATH_MARKER,
)
from iptvperf.models import ClassificationOutcome
from iptvperf.urls import has_playlist_extension

logger = logging.getLogger(__name__)


def is_udpxy_url(url: str) -> bool:
    """Return True if *url* looks like a udpxy ``/rtp/239.x.x.x:port`` endpoint."""
    parsed = urlparse(url)
    path_query = parsed.path
    if parsed.query:
        path_query = f"{path_query}?{parsed.query}"
    path_query = path_query.lower()

    if UDPXY_PATH_MARKER not in path_query or MULTICAST_MARKER not in path_query:
        return False

    try:
        authority_port = parsed.port
    except ValueError:
        authority_port = None

    explicit_port = authority_port is not None or ":" in path_query
    deep_path = parsed.path.count("/") >= UDPXY_MIN_PATH_DEPTH
    return explicit_port or deep_path


def _is_playlist_content_type(content_type: str) -> bool:
    content_type = content_type.lower()
    return any(marker in content_type for marker in PLAYLIST_CONTENT_MARKERS)


def _classify_without_probe(url: str) -> ClassificationOutcome:
    if has_playlist_extension(url):
        return ClassificationOutcome.PROBE_FAILED_LIKELY_HLS
    return ClassificationOutcome.PROBE_FAILED_NOT_HLS


async def classify(
    url: str,
    client: httpx.AsyncClient,
    probe_timeout: float,
) -> ClassificationOutcome:
    """Classify *url* into one of the :class:`ClassificationOutcome` members.

    Udpxy URLs are recognised without touching the network, since such
    endpoints rarely answer a HEAD request usefully.  Everything else gets
    a metadata-only probe; if that probe fails (transport error, timeout
    or non-2xx status) the outcome is one of the ``PROBE_FAILED_*``
    members so the caller can apply its own risk policy.
    """
    if is_udpxy_url(url):
        logger.debug("Udpxy signature matched for %s", url)
        return ClassificationOutcome.UDP_PROXY

    try:
        response = await asyncio.wait_for(
            client.head(url, timeout=probe_timeout, follow_redirects=True),
            timeout=probe_timeout,
        )
    except asyncio.TimeoutError:
        logger.debug("HEAD probe timed out after %.1fs for %s", probe_timeout, url)
        return _classify_without_probe(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("HEAD probe failed for %s: %s", url, exc)
        return _classify_without_probe(url)

    if not response.is_success:
        logger.debug("HEAD probe for %s returned %d", url, response.status_code)
        return _classify_without_probe(url)

    content_type = response.headers.get("content-type", "")
    logger.debug("Content-Type for %s: %r", url, content_type)

    if _is_playlist_content_type(content_type) or has_playlist_extension(url):
        return ClassificationOutcome.HLS_PLAYLIST
    return ClassificationOutcome.DIRECT_MEDIA

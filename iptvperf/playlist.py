"""M3U8 playlist resolution.

A playlist tree is walked breadth-first from its root until media
segments are found.  Master playlists contribute only their
highest-bandwidth variant; media playlists contribute their segment
URLs in file order.

Public API:
    extract_bandwidth -- BANDWIDTH attribute of a stream-info directive
    parse_playlist    -- parse one M3U8 document into a PlaylistNode
    resolve_playlist  -- fetch and walk a playlist tree into segment URLs
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Optional

import httpx

from iptvperf.config import STREAM_INF_TAG
from iptvperf.errors import EmptyPlaylistError, FetchError, HttpStatusError
from iptvperf.models import PlaylistNode
from iptvperf.urls import require_absolute_url, resolve_url

logger = logging.getLogger(__name__)

# AVERAGE-BANDWIDTH must not be mistaken for BANDWIDTH.
_BANDWIDTH_RE = re.compile(r"(?<![A-Z\-])BANDWIDTH=(\d+)")

_PREVIEW_CHARS = 500


def extract_bandwidth(line: str) -> Optional[int]:
    """Return the BANDWIDTH attribute of *line*, or None if it has none."""
    match = _BANDWIDTH_RE.search(line)
    if match is None:
        return None
    return int(match.group(1))


def parse_playlist(text: str, base_url: str) -> PlaylistNode:
    """Parse an M3U8 document fetched from *base_url*.

    The first ``EXT-X-STREAM-INF`` directive turns the document into a
    master playlist; from then on data lines are variant references, and
    any segment lines collected earlier are dropped.  Each directive is
    paired with the next data line.  The variant with the highest
    bandwidth wins and ties keep the first one seen.
    """
    node = PlaylistNode()
    pending_bandwidth: Optional[int] = None
    awaiting_variant = False

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("#"):
            if STREAM_INF_TAG in line:
                if not node.is_master:
                    node.is_master = True
                    node.segments.clear()
                node.variant_count += 1
                pending_bandwidth = extract_bandwidth(line)
                awaiting_variant = True
            continue

        if awaiting_variant:
            awaiting_variant = False
            if pending_bandwidth is None:
                logger.debug("Variant %s has no BANDWIDTH, ignored", line)
                continue
            logger.debug("Found variant with bandwidth %d: %s", pending_bandwidth, line)
            if node.best_bandwidth is None or pending_bandwidth > node.best_bandwidth:
                node.best_bandwidth = pending_bandwidth
                node.best_variant_url = resolve_url(line, base_url)
            continue

        if not node.is_master:
            node.segments.append(resolve_url(line, base_url))

    return node


async def _fetch_text(client: httpx.AsyncClient, url: str) -> str:
    try:
        response = await client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(f"Failed to fetch playlist {url}: {exc}") from exc

    if not response.is_success:
        raise HttpStatusError(response.status_code, url, response.reason_phrase)
    return response.text


async def resolve_playlist(root_url: str, client: httpx.AsyncClient) -> list[str]:
    """Walk the playlist tree rooted at *root_url* and return its segment URLs.

    Raises
    ------
    MalformedUrlError
        If *root_url* is not an absolute http(s) URL.
    FetchError, HttpStatusError
        If the root playlist itself cannot be retrieved.  Failures on
        nested playlists are logged and skipped.
    EmptyPlaylistError
        If no segments were found anywhere in the reachable tree.
    """
    require_absolute_url(root_url)

    queue: deque[str] = deque([root_url])
    visited: set[str] = set()
    segments: list[str] = []

    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        logger.debug("Resolving playlist %s", current)
        try:
            text = await _fetch_text(client, current)
        except (FetchError, HttpStatusError) as exc:
            if current == root_url:
                raise
            logger.info("Skipping playlist %s: %s", current, exc)
            continue

        if current == root_url:
            logger.debug("Playlist preview:\n%s", text[:_PREVIEW_CHARS])

        node = parse_playlist(text, current)
        if node.is_master:
            if node.best_variant_url is None:
                logger.debug("Master playlist %s has no usable variant", current)
                continue
            logger.debug(
                "Master playlist %s: following %s (bandwidth %d of %d variants)",
                current,
                node.best_variant_url,
                node.best_bandwidth,
                node.variant_count,
            )
            queue.append(node.best_variant_url)
        else:
            logger.debug("Media playlist %s: %d segments", current, len(node.segments))
            segments.extend(node.segments)

    if not segments:
        raise EmptyPlaylistError(f"No media segments found in {root_url}")

    logger.debug("Resolved %d segments from %s", len(segments), root_url)
    return segments

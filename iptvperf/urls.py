"""URL helpers shared by the classifier and the playlist resolver."""

from __future__ import annotations

import re
from urllib.parse import urlparse

import httpx

from iptvperf.config import PLAYLIST_EXTENSION
from iptvperf.errors import MalformedUrlError

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")

_SUPPORTED_SCHEMES = ("http", "https")


def require_absolute_url(url: str) -> None:
    """Raise :class:`MalformedUrlError` unless *url* is an absolute http(s) URL."""
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise MalformedUrlError(f"Cannot parse URL {url!r}: {exc}") from exc

    if parsed.scheme.lower() not in _SUPPORTED_SCHEMES or not parsed.netloc:
        raise MalformedUrlError(f"Not an absolute http(s) URL: {url!r}")

    try:
        httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise MalformedUrlError(f"Invalid URL {url!r}: {exc}") from exc


def final_path_segment(url: str) -> str:
    """Return the last path segment of *url*, ignoring query and fragment."""
    path = urlparse(url).path
    return path.rsplit("/", 1)[-1]


def has_playlist_extension(url: str) -> bool:
    return final_path_segment(url).lower().endswith(PLAYLIST_EXTENSION)


def resolve_url(reference: str, base_url: str) -> str:
    """Resolve a playlist *reference* against the playlist's own URL.

    - ``scheme://...`` references are returned unchanged.
    - ``//host/x`` borrows the base scheme.
    - ``/x`` is rooted at the base scheme and authority.
    - anything else is appended to the base directory (the base path
      without its final segment), joined by exactly one ``/``.

    The base URL's query and fragment never carry over.  ``.``/``..``
    segments are left as they are.
    """
    if _SCHEME_RE.match(reference):
        return reference

    base = urlparse(base_url)
    if not base.scheme or not base.netloc:
        return reference

    if reference.startswith("//"):
        return f"{base.scheme}:{reference}"

    origin = f"{base.scheme}://{base.netloc}"
    if reference.startswith("/"):
        return f"{origin}{reference}"

    directory = base.path.rsplit("/", 1)[0].strip("/") if "/" in base.path else ""
    prefix = f"{origin}/{directory}" if directory else origin
    return f"{prefix}/{reference.lstrip('/')}"

"""Constants and configuration for iptvperf."""

# Throughput color thresholds (kilobits/second)
SLOW_THRESHOLD_KBPS = 2048.0   # Red: < 2 Mbit/s
MEDIUM_THRESHOLD_KBPS = 8192.0  # Yellow: < 8 Mbit/s
# Green: >= 8 Mbit/s

# Latency color thresholds (milliseconds)
FAST_THRESHOLD_MS = 200.0
MEDIUM_THRESHOLD_MS = 800.0

# Default measurement settings
DEFAULT_TIMEOUT = 10.0
DEFAULT_PROBE_TIMEOUT = 3.0
DEFAULT_STREAM_WINDOW = 3.0
DEFAULT_CONNECT_TIMEOUT = 1.0
DEFAULT_READ_TIMEOUT = 3.0
DEFAULT_CONCURRENCY = 5

# Only the first few segments of a playlist are downloaded
MAX_SEGMENTS = 5

# HLS detection
PLAYLIST_EXTENSION = ".m3u8"
PLAYLIST_CONTENT_MARKERS = ("mpegurl", "m3u8")
STREAM_INF_TAG = "EXT-X-STREAM-INF"

# Udpxy detection
UDPXY_PATH_MARKER = "/rtp/"
MULTICAST_MARKER = "239."
UDPXY_MIN_PATH_DEPTH = 3

# Sentinel for "latency not measured"
LATENCY_NOT_MEASURED = -1.0

# User agent for HTTP requests
USER_AGENT = "iptvperf/0.1.0"

# Protocol display names
PROTOCOL_LABELS = {
    "direct": "HTTP",
    "hls": "HLS/M3U8",
    "udpxy": "Udpxy",
}

"""iptvperf - IPTV stream speed test."""

__version__ = "0.1.0"

"""Prometheus metric definitions for the /play command."""
from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

play_requests_total = Counter(
    "playbot_play_requests_total",
    "Play requests forwarded to the queue service",
)
autocomplete_requests_total = Counter(
    "playbot_autocomplete_requests_total",
    "Autocomplete requests by outcome",
    ["outcome"],
)
autocomplete_failures_total = Counter(
    "playbot_autocomplete_failures_total",
    "Autocomplete requests that failed and were answered with no choices",
)
cache_lookups_total = Counter(
    "playbot_cache_lookups_total",
    "Key-value cache lookups",
    ["result"],
)
suggestion_fetch_seconds = Histogram(
    "playbot_suggestion_fetch_seconds",
    "Time to fetch suggestions from YouTube and Spotify",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


def start_metrics_server(port: int = 9090) -> None:
    start_http_server(port)

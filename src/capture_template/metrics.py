"""Prometheus metrics definitions for the capture pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

ASSET_REQUEST_COUNT = Counter(
    "capture_template_asset_requests_total",
    "Total number of HTTP requests processed by the asset server",
    ["method", "status"],
)

ASSET_REQUEST_LATENCY = Histogram(
    "capture_template_asset_request_duration_seconds",
    "Latency of HTTP requests processed by the asset server",
    ["method"],
)

RENDER_COUNT = Counter(
    "capture_template_renders_total",
    "Number of renders executed by output format and status",
    ["format", "status"],
)

RENDER_LATENCY = Histogram(
    "capture_template_render_duration_seconds",
    "Duration of successful renders by output format",
    ["format"],
)

__all__ = [
    "ASSET_REQUEST_COUNT",
    "ASSET_REQUEST_LATENCY",
    "RENDER_COUNT",
    "RENDER_LATENCY",
]

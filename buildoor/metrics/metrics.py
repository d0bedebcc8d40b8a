"""Prometheus metrics for buildoor."""

import logging
import threading
from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    start_http_server,
)

logger = logging.getLogger(__name__)

DEFAULT_METRICS_PORT = 8008

client_info = Info(
    "buildoor_client",
    "Builder client information",
)

# Builder API metrics
builder_api_requests = Counter(
    "buildoor_builder_api_requests_total",
    "Total builder API requests",
    ["operation"],
)

builder_api_errors = Counter(
    "buildoor_builder_api_errors_total",
    "Total builder API errors",
    ["operation", "error_type"],
)

builder_api_latency = Histogram(
    "buildoor_builder_api_latency_seconds",
    "Builder API request latency",
    ["operation"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

validator_registrations = Counter(
    "buildoor_validator_registrations_total",
    "Total validator registrations accepted by the builder",
)

blocks_fetched = Counter(
    "buildoor_blocks_fetched_total",
    "Total blocks fetched from the builder and decoded",
)


_server_started = False
_server_lock = threading.Lock()


def start_metrics_server(port: int = DEFAULT_METRICS_PORT) -> bool:
    """Start the Prometheus metrics HTTP server.

    Args:
        port: Port to listen on (default 8008)

    Returns:
        True if server started successfully, False if already running
    """
    global _server_started

    with _server_lock:
        if _server_started:
            logger.warning("Metrics server already running")
            return False

        start_http_server(port)
        _server_started = True
        logger.info(f"Prometheus metrics server started on port {port}")
        return True


def set_client_info(version: str, builder: str) -> None:
    client_info.info({"version": version, "builder": builder})


def record_builder_api_call(operation: str, latency: float, error: Optional[str] = None) -> None:
    """Record a builder API call.

    Args:
        operation: Builder operation (e.g., 'register_validator', 'get_block')
        latency: Request latency in seconds
        error: Error type if the call failed, None if successful
    """
    builder_api_requests.labels(operation=operation).inc()
    builder_api_latency.labels(operation=operation).observe(latency)
    if error:
        builder_api_errors.labels(operation=operation, error_type=error).inc()


def record_validator_registration() -> None:
    validator_registrations.inc()


def record_block_fetched() -> None:
    blocks_fetched.inc()


def record_builder_api_error(operation: str, error: str) -> None:
    """Record a protocol level failure on a call that already completed."""
    builder_api_errors.labels(operation=operation, error_type=error).inc()

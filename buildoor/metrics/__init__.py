"""Prometheus metrics."""

from .metrics import (
    DEFAULT_METRICS_PORT,
    start_metrics_server,
    set_client_info,
    record_builder_api_call,
    record_builder_api_error,
    record_validator_registration,
    record_block_fetched,
)

__all__ = [
    "DEFAULT_METRICS_PORT",
    "start_metrics_server",
    "set_client_info",
    "record_builder_api_call",
    "record_builder_api_error",
    "record_validator_registration",
    "record_block_fetched",
]

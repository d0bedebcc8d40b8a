"""Buildoor - block builder API client for proof-of-stake validators."""

from .endpoint import Endpoint, resolve_endpoint
from .exceptions import (
    BuilderError,
    InvalidEndpoint,
    TransportError,
    MalformedResponse,
    BuilderRejected,
    PayloadConversionFailed,
)
from .validator import SigningIdentity
from .builder import BuilderClient

__all__ = [
    "Endpoint",
    "resolve_endpoint",
    "BuilderError",
    "InvalidEndpoint",
    "TransportError",
    "MalformedResponse",
    "BuilderRejected",
    "PayloadConversionFailed",
    "SigningIdentity",
    "BuilderClient",
]

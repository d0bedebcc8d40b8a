"""Exceptions raised by the builder client."""

from typing import Optional


class BuilderError(Exception):
    """Base class for all builder client errors."""


class InvalidEndpoint(BuilderError, ValueError):
    """Builder host string could not be resolved into an endpoint."""

    def __init__(self, host: str, reason: str):
        self.host = host
        self.reason = reason
        super().__init__(f"invalid builder endpoint {host!r}: {reason}")


class TransportError(BuilderError):
    """Network level failure: connection refused, reset, timed out."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: transport error: {message}")


class MalformedResponse(BuilderError):
    """Response body did not parse as the expected envelope."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: malformed response: {message}")


class BuilderRejected(BuilderError):
    """Builder explicitly answered with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        self.message = message
        if status is None:
            super().__init__(f"builder rejected request: {message}")
        else:
            super().__init__(f"builder rejected request ({status}): {message}")


class PayloadConversionFailed(BuilderError):
    """Executable data returned by the builder could not be turned into a block."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"payload conversion failed: {message}")


__all__ = [
    "BuilderError",
    "InvalidEndpoint",
    "TransportError",
    "MalformedResponse",
    "BuilderRejected",
    "PayloadConversionFailed",
]

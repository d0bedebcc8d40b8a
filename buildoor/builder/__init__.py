"""Block builder API client."""

from .types import (
    ValidatorRegistration,
    SignedValidatorRegistration,
    GetHeaderResponse,
    ExecutionPayloadResponse,
    Accepted,
    Rejected,
    Payload,
    BuilderResponse,
)
from .client import (
    BuilderClient,
    DEFAULT_TIMEOUT,
    builder_path,
    parse_registration_response,
    parse_header_response,
    parse_block_response,
)

__all__ = [
    "BuilderClient",
    "DEFAULT_TIMEOUT",
    "ValidatorRegistration",
    "SignedValidatorRegistration",
    "GetHeaderResponse",
    "ExecutionPayloadResponse",
    "Accepted",
    "Rejected",
    "Payload",
    "BuilderResponse",
    "builder_path",
    "parse_registration_response",
    "parse_header_response",
    "parse_block_response",
]

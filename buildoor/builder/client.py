"""Builder API client for registering validators and fetching blocks."""

import asyncio
import json
import logging
import time
from typing import Any, Optional, Union

import aiohttp

from .. import metrics
from ..crypto import BLS_PUBKEY_LENGTH
from ..endpoint import escape_segment, resolve_endpoint
from ..engine import Block, PayloadDecodeError, executable_data_to_block
from ..exceptions import (
    BuilderRejected,
    MalformedResponse,
    PayloadConversionFailed,
    TransportError,
)
from ..validator import SigningIdentity
from ..version import user_agent
from .types import (
    HASH32_LENGTH,
    STATUS_OK,
    Accepted,
    BuilderResponse,
    ExecutionPayloadResponse,
    GetHeaderResponse,
    Payload,
    Rejected,
    SignedValidatorRegistration,
    ValidatorRegistration,
    from_hex,
    parse_uint64,
    to_hex,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2.0

VALIDATORS_PATH = "/eth/v1/builder/validators"
HEADER_PATH = "/eth/v1/builder/header/{slot}/{parent_hash}/{pubkey}"
BLOCK_PATH = "/eth/v1/builder/block/{slot}/{parent_hash}/{pubkey}"

HexOrBytes = Union[str, bytes]


def _hex_segment(value: HexOrBytes, name: str, size: int) -> str:
    """Render a path segment; hex strings keep the caller's casing."""
    raw = from_hex(value, name, size)
    if isinstance(value, str):
        text = value if value.startswith(("0x", "0X")) else "0x" + value
    else:
        text = to_hex(raw)
    return escape_segment(text)


def builder_path(template: str, slot: int, parent_hash: HexOrBytes, pubkey: HexOrBytes) -> str:
    """Build a header or block request path.

    The slot is rendered as a plain decimal; the parent hash and pubkey are
    ``0x`` hex strings.
    """
    if isinstance(slot, bool) or not isinstance(slot, int):
        raise TypeError(f"slot must be an integer, got {type(slot).__name__}")
    return template.format(
        slot=parse_uint64(slot, "slot"),
        parent_hash=_hex_segment(parent_hash, "parent_hash", HASH32_LENGTH),
        pubkey=_hex_segment(pubkey, "pubkey", BLS_PUBKEY_LENGTH),
    )


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def decode_json(operation: str, body: bytes) -> Any:
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedResponse(operation, f"invalid JSON: {e}") from e


def rejection_message(body: bytes, default: str) -> str:
    """Best effort human readable reason from an error response body."""
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        text = body.decode("utf-8", errors="replace").strip()
        return text or default
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return default


def parse_registration_response(status: int, body: bytes) -> BuilderResponse:
    if _is_success(status):
        return Accepted(status=status)
    return Rejected(message=rejection_message(body, f"HTTP {status}"), status=status)


def parse_header_response(status: int, body: bytes) -> BuilderResponse:
    """Interpret the status envelope of the header endpoint.

    Raises:
        MalformedResponse: If a successful HTTP response is not a
            ``{code, message}`` envelope
    """
    try:
        envelope = GetHeaderResponse.from_dict(decode_json("get_header", body))
    except (MalformedResponse, ValueError) as e:
        if not _is_success(status):
            return Rejected(message=rejection_message(body, f"HTTP {status}"), status=status)
        if isinstance(e, MalformedResponse):
            raise
        raise MalformedResponse("get_header", str(e)) from e

    if not _is_success(status):
        return Rejected(message=envelope.message or f"HTTP {status}", status=status)
    if envelope.code != STATUS_OK:
        return Rejected(message=envelope.message, status=envelope.code)
    return Accepted(status=envelope.code)


def parse_block_response(status: int, body: bytes) -> BuilderResponse:
    """Interpret the payload envelope of the block endpoint.

    Raises:
        MalformedResponse: If a successful HTTP response is not a
            ``{version, data}`` envelope
    """
    if not _is_success(status):
        return Rejected(message=rejection_message(body, f"HTTP {status}"), status=status)
    try:
        envelope = ExecutionPayloadResponse.from_dict(decode_json("get_block", body))
    except ValueError as e:
        raise MalformedResponse("get_block", str(e)) from e
    return Payload(version=envelope.version, data=envelope.data)


class BuilderClient:
    """Client for a single external block builder.

    The client owns the resolved endpoint and holds the validator's signing
    identity for its whole lifetime. The HTTP timeout is fixed at
    construction and applies to every call.
    """

    def __init__(
        self,
        host: str,
        identity: SigningIdentity,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.endpoint = resolve_endpoint(host)
        self.identity = identity
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def __repr__(self) -> str:
        return f"BuilderClient(endpoint={self.endpoint}, pubkey={self.identity.pubkey_hex[:18]}...)"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        body: Optional[bytes] = None,
    ) -> tuple[int, bytes]:
        """Issue one HTTP round trip and return the status and raw body."""
        session = await self._ensure_session()
        url = self.endpoint.url(path)

        headers = {
            "Accept": "application/json",
            "User-Agent": user_agent(),
        }
        if body is not None:
            headers["Content-Type"] = "application/json"

        logger.debug(f"Builder API call: {method} {url}")

        start_time = time.time()
        error_type = None

        try:
            async with session.request(
                method, url, data=body, headers=headers, timeout=self.timeout
            ) as response:
                payload = await response.read()
                logger.debug(f"Builder API response for {operation}: status={response.status}, bytes={len(payload)}")
                return response.status, payload
        except asyncio.TimeoutError as e:
            error_type = "timeout"
            logger.error(f"Builder API timeout on {operation} after {self.timeout.total}s")
            raise TransportError(operation, f"timed out after {self.timeout.total}s") from e
        except aiohttp.ClientError as e:
            error_type = "connection_error"
            logger.error(f"Builder API connection error on {operation}: {e}")
            raise TransportError(operation, str(e) or type(e).__name__) from e
        finally:
            latency = time.time() - start_time
            metrics.record_builder_api_call(operation, latency, error_type)

    def _raise_if_rejected(self, operation: str, response: BuilderResponse) -> None:
        if isinstance(response, Rejected):
            metrics.record_builder_api_error(operation, "rejected")
            logger.warning(f"Builder rejected {operation}: status={response.status}, message={response.message}")
            raise BuilderRejected(response.message, response.status)

    async def register_validator(
        self,
        fee_recipient: HexOrBytes,
        gas_limit: int,
        timestamp: Optional[int] = None,
    ) -> Accepted:
        """Register the validator's fee recipient and gas limit with the builder.

        The registration is serialized once; those exact bytes are signed
        and spliced into the request body.

        Args:
            fee_recipient: 20-byte execution address (bytes or 0x hex)
            gas_limit: Preferred block gas limit
            timestamp: Registration time in seconds; defaults to now

        Returns:
            Accepted with the HTTP status of the builder's answer

        Raises:
            TransportError: On connection failure or timeout
            BuilderRejected: If the builder answers with a non-2xx status
        """
        if timestamp is None:
            timestamp = int(time.time())

        message = ValidatorRegistration(
            fee_recipient=fee_recipient,
            gas_limit=gas_limit,
            timestamp=timestamp,
            pubkey=self.identity.pubkey,
        )
        signed = SignedValidatorRegistration.create(message, self.identity)

        status, body = await self._request(
            "register_validator", "POST", VALIDATORS_PATH, body=signed.encode()
        )
        response = parse_registration_response(status, body)
        self._raise_if_rejected("register_validator", response)

        metrics.record_validator_registration()
        logger.info(
            f"Registered validator {self.identity.pubkey.hex()[:16]}... with builder {self.endpoint}: "
            f"fee_recipient={to_hex(message.fee_recipient)}, gas_limit={message.gas_limit}"
        )
        return response

    async def get_header(self, slot: int, parent_hash: HexOrBytes) -> Accepted:
        """Ask the builder for a header on top of ``parent_hash`` at ``slot``.

        Raises:
            TransportError: On connection failure or timeout
            MalformedResponse: If the body is not a status envelope
            BuilderRejected: If the envelope code is not 200
        """
        path = builder_path(HEADER_PATH, slot, parent_hash, self.identity.pubkey)
        status, body = await self._request("get_header", "GET", path)

        try:
            response = parse_header_response(status, body)
        except MalformedResponse:
            metrics.record_builder_api_error("get_header", "malformed_response")
            raise
        self._raise_if_rejected("get_header", response)

        logger.debug(f"Builder accepted header request for slot {slot}")
        return response

    async def get_block(
        self,
        slot: int,
        parent_hash: HexOrBytes,
        pubkey: Optional[HexOrBytes] = None,
    ) -> Block:
        """Fetch the full execution payload for ``slot`` and materialise it.

        Args:
            slot: Slot the block is for
            parent_hash: Execution block hash the block builds on
            pubkey: Proposer pubkey for the path; defaults to the identity's

        Returns:
            The decoded execution block

        Raises:
            TransportError: On connection failure or timeout
            BuilderRejected: If the builder answers with a non-2xx status
            MalformedResponse: If the body is not a ``{version, data}`` envelope
            PayloadConversionFailed: If the executable data does not form a block
        """
        if pubkey is None:
            pubkey = self.identity.pubkey
        path = builder_path(BLOCK_PATH, slot, parent_hash, pubkey)
        status, body = await self._request("get_block", "GET", path)

        try:
            response = parse_block_response(status, body)
        except MalformedResponse:
            metrics.record_builder_api_error("get_block", "malformed_response")
            raise
        self._raise_if_rejected("get_block", response)

        try:
            block = executable_data_to_block(response.data)
        except PayloadDecodeError as e:
            metrics.record_builder_api_error("get_block", "payload_conversion")
            logger.error(f"Failed to convert builder payload for slot {slot}: {e}")
            raise PayloadConversionFailed(str(e)) from e

        metrics.record_block_fetched()
        logger.info(
            f"Fetched block from builder: slot={slot}, version={response.version}, "
            f"number={block.number}, hash=0x{block.hash.hex()[:16]}, txs={len(block.transactions)}"
        )
        return block

    async def close(self) -> None:
        """Close the client session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

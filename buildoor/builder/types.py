"""Builder API wire types."""

import json
from dataclasses import dataclass
from typing import Optional, Union

from ..crypto import BLS_PUBKEY_LENGTH, BLS_SIGNATURE_LENGTH, verify

MAX_UINT64 = 2**64 - 1
EXECUTION_ADDRESS_LENGTH = 20
HASH32_LENGTH = 32

STATUS_OK = 200


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def from_hex(value, name: str, size: Optional[int] = None) -> bytes:
    """Decode a ``0x`` prefixed hex string, optionally checking its byte length."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            raw = bytes.fromhex(text)
        except ValueError as e:
            raise ValueError(f"{name} is not valid hex: {value!r}") from e
    else:
        raise TypeError(f"{name} must be hex string or bytes, got {type(value).__name__}")
    if size is not None and len(raw) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


def parse_uint64(value, name: str) -> int:
    """Parse a uint64 given as int or as a decimal string (the wire form)."""
    if isinstance(value, bool):
        raise TypeError(f"{name} must be an integer")
    if isinstance(value, str):
        if not (value.isascii() and value.isdigit()):
            raise ValueError(f"{name} must be a decimal string, got {value!r}")
        value = int(value)
    if not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= MAX_UINT64:
        raise ValueError(f"{name} out of uint64 range: {value}")
    return value


def canonical_json(obj) -> bytes:
    """Compact JSON with insertion ordered keys; the exact bytes that get signed."""
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class ValidatorRegistration:
    """Fee recipient and gas limit preference of one validator."""

    fee_recipient: bytes
    gas_limit: int
    timestamp: int
    pubkey: bytes

    def __post_init__(self):
        object.__setattr__(
            self, "fee_recipient",
            from_hex(self.fee_recipient, "fee_recipient", EXECUTION_ADDRESS_LENGTH),
        )
        object.__setattr__(self, "gas_limit", parse_uint64(self.gas_limit, "gas_limit"))
        object.__setattr__(self, "timestamp", parse_uint64(self.timestamp, "timestamp"))
        object.__setattr__(self, "pubkey", from_hex(self.pubkey, "pubkey", BLS_PUBKEY_LENGTH))

    def to_dict(self) -> dict:
        return {
            "fee_recipient": to_hex(self.fee_recipient),
            "gas_limit": str(self.gas_limit),
            "timestamp": str(self.timestamp),
            "pubkey": to_hex(self.pubkey),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ValidatorRegistration":
        return cls(
            fee_recipient=data["fee_recipient"],
            gas_limit=data["gas_limit"],
            timestamp=data["timestamp"],
            pubkey=data["pubkey"],
        )

    def encode(self) -> bytes:
        return canonical_json(self.to_dict())


@dataclass(frozen=True)
class SignedValidatorRegistration:
    """A registration and the signature over its canonical encoding."""

    message: ValidatorRegistration
    signature: bytes

    def __post_init__(self):
        object.__setattr__(
            self, "signature", from_hex(self.signature, "signature", BLS_SIGNATURE_LENGTH)
        )

    @classmethod
    def create(cls, message: ValidatorRegistration, identity) -> "SignedValidatorRegistration":
        """Sign ``message.encode()`` with the given signing identity."""
        return cls(message=message, signature=identity.sign(message.encode()))

    def to_dict(self) -> dict:
        return {
            "message": self.message.to_dict(),
            "signature": to_hex(self.signature),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SignedValidatorRegistration":
        return cls(
            message=ValidatorRegistration.from_dict(data["message"]),
            signature=data["signature"],
        )

    def encode(self) -> bytes:
        # The message is spliced in as the exact bytes that were signed.
        return (
            b'{"message":' + self.message.encode()
            + b',"signature":' + canonical_json(to_hex(self.signature)) + b"}"
        )

    def verify(self) -> bool:
        return verify(self.message.pubkey, self.message.encode(), self.signature)


@dataclass(frozen=True)
class GetHeaderResponse:
    """Status envelope returned by the header endpoint."""

    code: int
    message: str = ""

    @classmethod
    def from_dict(cls, data) -> "GetHeaderResponse":
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        code = data.get("code")
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValueError(f"code must be an integer, got {code!r}")
        message = data.get("message", "")
        if message is None:
            message = ""
        if not isinstance(message, str):
            raise ValueError(f"message must be a string, got {message!r}")
        return cls(code=code, message=message)


@dataclass(frozen=True)
class ExecutionPayloadResponse:
    """Versioned envelope around engine API executable data."""

    version: str
    data: dict

    @classmethod
    def from_dict(cls, data) -> "ExecutionPayloadResponse":
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        version = data.get("version")
        if not isinstance(version, str):
            raise ValueError(f"version must be a string, got {version!r}")
        payload = data.get("data")
        if not isinstance(payload, dict):
            raise ValueError("data must be a JSON object")
        return cls(version=version, data=payload)


@dataclass(frozen=True)
class Accepted:
    """Builder accepted the request; there is nothing more to read."""

    status: int = STATUS_OK


@dataclass(frozen=True)
class Rejected:
    """Builder refused the request."""

    message: str
    status: Optional[int] = None


@dataclass(frozen=True)
class Payload:
    """Builder returned executable data."""

    version: str
    data: dict


BuilderResponse = Union[Accepted, Rejected, Payload]


__all__ = [
    "ValidatorRegistration",
    "SignedValidatorRegistration",
    "GetHeaderResponse",
    "ExecutionPayloadResponse",
    "Accepted",
    "Rejected",
    "Payload",
    "BuilderResponse",
    "canonical_json",
    "to_hex",
    "from_hex",
    "parse_uint64",
]

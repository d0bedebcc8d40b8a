"""Validator signing identity."""

from dataclasses import dataclass, field
from typing import Union

from ..crypto import (
    BLS_SECRET_KEY_LENGTH,
    pubkey_from_privkey,
    sign,
    validate_privkey,
    verify,
)


@dataclass(frozen=True)
class SigningIdentity:
    """A validator's BLS key pair.

    The secret never appears in ``repr`` and is never logged. The public key
    is derived once at construction.
    """

    privkey: int = field(repr=False)
    pubkey: bytes = field(init=False)

    def __post_init__(self):
        validate_privkey(self.privkey)
        object.__setattr__(self, "pubkey", pubkey_from_privkey(self.privkey))

    @classmethod
    def from_privkey(cls, privkey: Union[int, bytes]) -> "SigningIdentity":
        if isinstance(privkey, bytes):
            if len(privkey) != BLS_SECRET_KEY_LENGTH:
                raise ValueError(
                    f"BLS secret key must be {BLS_SECRET_KEY_LENGTH} bytes, got {len(privkey)}"
                )
            privkey = int.from_bytes(privkey, "big")
        return cls(privkey=privkey)

    @classmethod
    def from_hex(cls, privkey_hex: str) -> "SigningIdentity":
        raw = privkey_hex.strip()
        if raw.startswith(("0x", "0X")):
            raw = raw[2:]
        return cls.from_privkey(bytes.fromhex(raw))

    @classmethod
    def from_keystore(cls, path, password: str) -> "SigningIdentity":
        """Decrypt an EIP-2335 keystore file."""
        from .keystore import load_keystore
        return load_keystore(path, password)

    @property
    def pubkey_hex(self) -> str:
        return "0x" + self.pubkey.hex()

    def public_key_bytes(self) -> bytes:
        return self.pubkey

    def sign(self, message: bytes) -> bytes:
        """Sign raw message bytes; deterministic for a given key and message."""
        return sign(self.privkey, message)

    def verify(self, message: bytes, signature: bytes) -> bool:
        return verify(self.pubkey, message, signature)

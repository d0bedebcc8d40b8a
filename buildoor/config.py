"""Configuration for buildoor."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .builder.client import DEFAULT_TIMEOUT
from .validator import SigningIdentity, load_keystore_with_password_file

DEFAULT_GAS_LIMIT = 30_000_000


@dataclass
class Config:
    """Builder client configuration."""

    builder_url: str = "http://localhost:18550"
    timeout: float = DEFAULT_TIMEOUT
    fee_recipient: str = "0x" + "00" * 20
    gas_limit: int = DEFAULT_GAS_LIMIT
    validator_key: str = field(default="", repr=False)
    keystore_path: str = ""
    keystore_password_path: str = ""
    log_level: str = "INFO"
    metrics_port: Optional[int] = None

    @property
    def fee_recipient_bytes(self) -> bytes:
        return bytes.fromhex(self.fee_recipient.replace("0x", ""))

    def load_identity(self) -> SigningIdentity:
        """Build the signing identity from a raw key or an EIP-2335 keystore."""
        if self.validator_key:
            key = self.validator_key
            if Path(key).is_file():
                key = Path(key).read_text().strip()
            return SigningIdentity.from_hex(key)
        if self.keystore_path:
            if not self.keystore_password_path:
                raise ValueError("keystore_password_path is required with keystore_path")
            return load_keystore_with_password_file(self.keystore_path, self.keystore_password_path)
        raise ValueError("no validator key configured: set validator_key or keystore_path")

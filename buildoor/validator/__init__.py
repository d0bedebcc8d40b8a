"""Validator key material."""

from .types import SigningIdentity
from .keystore import (
    KeystoreError,
    decrypt_keystore,
    load_keystore,
    load_keystore_with_password_file,
)

__all__ = [
    "SigningIdentity",
    "KeystoreError",
    "decrypt_keystore",
    "load_keystore",
    "load_keystore_with_password_file",
]

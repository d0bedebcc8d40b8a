"""EIP-2335 keystore decryption into a signing identity."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Union

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2, scrypt

from .types import SigningIdentity

logger = logging.getLogger(__name__)


class KeystoreError(ValueError):
    """Keystore could not be decrypted or does not match its declared pubkey."""


def _derive_key(kdf: dict, password: str) -> bytes:
    params = kdf["params"]
    salt = bytes.fromhex(params["salt"])
    function = kdf["function"]

    if function == "scrypt":
        return scrypt(
            normalize_password(password),
            salt,
            key_len=params.get("dklen", 32),
            N=params["n"],
            r=params["r"],
            p=params["p"],
        )
    if function == "pbkdf2":
        if params.get("prf", "hmac-sha256") != "hmac-sha256":
            raise KeystoreError(f"Unsupported PRF: {params['prf']}")
        return PBKDF2(
            normalize_password(password),
            salt,
            dkLen=params.get("dklen", 32),
            count=params["c"],
            hmac_hash_module=SHA256,
        )
    raise KeystoreError(f"Unsupported KDF: {function}")


def normalize_password(password: str) -> bytes:
    """Strip C0/C1 control characters, as EIP-2335 requires, and UTF-8 encode."""
    return "".join(
        c for c in password
        if not (ord(c) < 0x20 or 0x7F <= ord(c) <= 0x9F)
    ).encode("utf-8")


def decrypt_keystore(keystore: dict, password: str) -> int:
    """Decrypt an EIP-2335 keystore and return the secret key scalar."""
    crypto = keystore["crypto"]
    cipher = crypto["cipher"]
    checksum = crypto["checksum"]

    decryption_key = _derive_key(crypto["kdf"], password)
    cipher_message = bytes.fromhex(cipher["message"])

    pre_image = decryption_key[16:32] + cipher_message
    if hashlib.sha256(pre_image).digest() != bytes.fromhex(checksum["message"]):
        raise KeystoreError("Invalid password or corrupted keystore")

    if cipher["function"] != "aes-128-ctr":
        raise KeystoreError(f"Unsupported cipher: {cipher['function']}")

    iv = bytes.fromhex(cipher["params"]["iv"])
    aes = AES.new(decryption_key[:16], AES.MODE_CTR, nonce=b"", initial_value=iv)
    return int.from_bytes(aes.decrypt(cipher_message), "big")


def load_keystore(keystore_path: Union[str, Path], password: str) -> SigningIdentity:
    """Load a keystore file and check the derived pubkey against the declared one."""
    with open(keystore_path, "r") as f:
        keystore = json.load(f)

    identity = SigningIdentity(privkey=decrypt_keystore(keystore, password))

    declared = keystore.get("pubkey")
    if declared:
        expected = bytes.fromhex(declared.removeprefix("0x"))
        if identity.pubkey != expected:
            raise KeystoreError(
                f"Public key mismatch: derived {identity.pubkey.hex()}, expected {expected.hex()}"
            )

    logger.info(f"Loaded validator key: {identity.pubkey.hex()[:16]}...")
    return identity


def load_keystore_with_password_file(
    keystore_path: Union[str, Path],
    password_path: Union[str, Path],
) -> SigningIdentity:
    password = Path(password_path).read_text().strip()
    return load_keystore(keystore_path, password)

"""Tests for EIP-2335 keystore loading."""

import hashlib
import json

import pytest
from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2

from buildoor.validator import KeystoreError, SigningIdentity, decrypt_keystore, load_keystore
from buildoor.validator.keystore import load_keystore_with_password_file, normalize_password

from .conftest import TEST_PRIVKEY

PASSWORD = "testpassword"


def make_keystore(privkey: int, password: str, pubkey: str = "") -> dict:
    salt = bytes(range(32))
    iv = bytes(range(16))
    key = PBKDF2(normalize_password(password), salt, dkLen=32, count=16, hmac_hash_module=SHA256)
    aes = AES.new(key[:16], AES.MODE_CTR, nonce=b"", initial_value=iv)
    cipher_message = aes.encrypt(privkey.to_bytes(32, "big"))
    return {
        "crypto": {
            "kdf": {
                "function": "pbkdf2",
                "params": {"dklen": 32, "c": 16, "prf": "hmac-sha256", "salt": salt.hex()},
                "message": "",
            },
            "checksum": {
                "function": "sha256",
                "params": {},
                "message": hashlib.sha256(key[16:32] + cipher_message).hexdigest(),
            },
            "cipher": {
                "function": "aes-128-ctr",
                "params": {"iv": iv.hex()},
                "message": cipher_message.hex(),
            },
        },
        "pubkey": pubkey,
        "path": "m/12381/3600/0/0/0",
        "uuid": "1d85ae20-35c5-4611-98e8-aa14a633906f",
        "version": 4,
    }


def test_decrypt():
    assert decrypt_keystore(make_keystore(TEST_PRIVKEY, PASSWORD), PASSWORD) == TEST_PRIVKEY


def test_wrong_password():
    with pytest.raises(KeystoreError, match="Invalid password"):
        decrypt_keystore(make_keystore(TEST_PRIVKEY, PASSWORD), "wrong")


def test_control_characters_ignored():
    keystore = make_keystore(TEST_PRIVKEY, PASSWORD)
    assert decrypt_keystore(keystore, "test\x7fpass\x08word") == TEST_PRIVKEY


def test_unsupported_kdf():
    keystore = make_keystore(TEST_PRIVKEY, PASSWORD)
    keystore["crypto"]["kdf"]["function"] = "argon2"
    with pytest.raises(KeystoreError, match="Unsupported KDF"):
        decrypt_keystore(keystore, PASSWORD)


def test_load_checks_pubkey(tmp_path, identity, other_identity):
    path = tmp_path / "keystore.json"
    path.write_text(json.dumps(make_keystore(TEST_PRIVKEY, PASSWORD, identity.pubkey.hex())))
    assert load_keystore(path, PASSWORD).pubkey == identity.pubkey

    path.write_text(json.dumps(make_keystore(TEST_PRIVKEY, PASSWORD, other_identity.pubkey.hex())))
    with pytest.raises(KeystoreError, match="Public key mismatch"):
        load_keystore(path, PASSWORD)


def test_load_with_password_file(tmp_path, identity):
    keystore_path = tmp_path / "keystore.json"
    keystore_path.write_text(json.dumps(make_keystore(TEST_PRIVKEY, PASSWORD)))
    password_path = tmp_path / "password.txt"
    password_path.write_text(PASSWORD + "\n")

    loaded = load_keystore_with_password_file(keystore_path, password_path)
    assert loaded == identity


def test_identity_from_keystore(tmp_path, identity):
    path = tmp_path / "keystore.json"
    path.write_text(json.dumps(make_keystore(TEST_PRIVKEY, PASSWORD, identity.pubkey_hex)))
    assert SigningIdentity.from_keystore(path, PASSWORD) == identity

"""BLS signing primitives for validator registrations.

Uses blspy (fast C/assembly) when available, falls back to py_ecc (pure Python).
Both implement the proof-of-possession ciphersuite the builder API expects.
"""

import logging

logger = logging.getLogger(__name__)

# Try to use blspy (fast) first, fall back to py_ecc (slow)
_USE_BLSPY = False
try:
    from blspy import (
        PrivateKey as BlsPrivateKey,
        G1Element,
        G2Element,
        PopSchemeMPL,
    )
    _USE_BLSPY = True
    logger.debug("Using blspy for BLS signatures")
except ImportError:
    from py_ecc.bls import G2ProofOfPossession as _py_ecc_bls
    logger.debug("blspy not available, using py_ecc for BLS signatures")

BLS_PUBKEY_LENGTH = 48
BLS_SIGNATURE_LENGTH = 96
BLS_SECRET_KEY_LENGTH = 32

# Order of the BLS12-381 G1/G2 subgroups; valid secret keys are in [1, r).
BLS_CURVE_ORDER = 0x73EDA753299D7D483339D80809A1D80553BDA402FFFE5BFEFFFFFFFF00000001


def validate_privkey(privkey: int) -> int:
    """Check that a secret key scalar is usable for signing."""
    if not isinstance(privkey, int):
        raise TypeError(f"BLS secret key must be int, got {type(privkey).__name__}")
    if not 0 < privkey < BLS_CURVE_ORDER:
        raise ValueError("BLS secret key out of range")
    return privkey


def sign(privkey: int, message: bytes) -> bytes:
    """Sign a message with a BLS private key."""
    if _USE_BLSPY:
        sk = BlsPrivateKey.from_bytes(privkey.to_bytes(BLS_SECRET_KEY_LENGTH, "big"))
        return bytes(PopSchemeMPL.sign(sk, message))
    return _py_ecc_bls.Sign(privkey, message)


def verify(pubkey: bytes, message: bytes, signature: bytes) -> bool:
    """Verify a BLS signature. Malformed keys or signatures verify as False."""
    try:
        if _USE_BLSPY:
            pk = G1Element.from_bytes(pubkey)
            sig = G2Element.from_bytes(signature)
            return PopSchemeMPL.verify(pk, message, sig)
        return _py_ecc_bls.Verify(pubkey, message, signature)
    except Exception as e:
        logger.debug(f"BLS verification failed on malformed input: {e}")
        return False


def pubkey_from_privkey(privkey: int) -> bytes:
    """Derive the 48-byte compressed public key from a private key."""
    if _USE_BLSPY:
        sk = BlsPrivateKey.from_bytes(privkey.to_bytes(BLS_SECRET_KEY_LENGTH, "big"))
        return bytes(sk.get_g1())
    return _py_ecc_bls.SkToPk(privkey)


__all__ = [
    "BLS_PUBKEY_LENGTH",
    "BLS_SIGNATURE_LENGTH",
    "BLS_SECRET_KEY_LENGTH",
    "BLS_CURVE_ORDER",
    "validate_privkey",
    "sign",
    "verify",
    "pubkey_from_privkey",
]

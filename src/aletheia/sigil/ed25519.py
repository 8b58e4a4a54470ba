"""
Ed25519 Key Management.

Keys and signatures are the ``aptos_sdk.ed25519`` types.  The helpers here
parse hex input with length checks and raise :class:`CryptoError` instead
of the SDK's bare exceptions.
"""

from __future__ import annotations

from aptos_sdk.ed25519 import PrivateKey, PublicKey, Signature
from nacl.signing import SigningKey, VerifyKey

from ..utils import HexInput, hex_to_bytes

__all__ = [
    "CryptoError",
    "PrivateKey",
    "PublicKey",
    "Signature",
    "generate_private_key",
    "private_key_from_hex",
    "public_key_from_hex",
    "zero_signature",
]


class CryptoError(ValueError):
    pass


def _exact(value: HexInput, length: int, what: str) -> bytes:
    data = hex_to_bytes(value)
    if len(data) != length:
        raise CryptoError(f"{what} must be {length} bytes, got {len(data)}")
    return data


def generate_private_key() -> PrivateKey:
    return PrivateKey.random()


def private_key_from_hex(value: HexInput) -> PrivateKey:
    return PrivateKey(SigningKey(_exact(value, PrivateKey.LENGTH, "Private key")))


def public_key_from_hex(value: HexInput) -> PublicKey:
    return PublicKey(VerifyKey(_exact(value, PublicKey.LENGTH, "Public key")))


def zero_signature() -> Signature:
    """An all-zero signature, valid only for simulation."""
    return Signature(bytes(Signature.LENGTH))

"""
Ephemeral Key Pairs for keyless accounts.

An ephemeral key pair is a short-lived Ed25519 key that the OAuth provider's
JWT is bound to.  It carries an expiry date and a 31-byte blinder; both are
sent to the pepper and proving services together with the public key.

Key pairs can be persisted to ~/.aletheia/ephemeral.json so that the CLI can
generate one in a login step and reuse it when deriving the account.
"""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from aptos_sdk.bcs import Deserializer, Serializer, encoder

from ..utils import (
    HexInput,
    bytes_to_hex,
    current_time_in_seconds,
    floor_to_whole_hour,
    hex_to_bytes,
    write_private_json,
)
from .ed25519 import CryptoError, PrivateKey, PublicKey, Signature, generate_private_key, private_key_from_hex

BLINDER_LENGTH = 31
DEFAULT_LIFETIME_SECS = 14 * 24 * 60 * 60

# EphemeralPublicKey / EphemeralSignature enum variants
ED25519_VARIANT = 0


class EphemeralKeyPairExpiredError(CryptoError):
    pass


@dataclass(frozen=True)
class EphemeralPublicKey:
    public_key: PublicKey
    variant: int = ED25519_VARIANT

    def serialize(self, serializer: Serializer) -> None:
        serializer.uleb128(self.variant)
        serializer.struct(self.public_key)

    def to_bytes(self) -> bytes:
        return encoder(self, Serializer.struct)

    def to_hex(self, prefix: bool = True) -> str:
        return bytes_to_hex(self.to_bytes(), prefix=prefix)

    def verify(self, message: bytes, signature: "EphemeralSignature") -> bool:
        return self.public_key.verify(message, signature.signature)


@dataclass(frozen=True)
class EphemeralSignature:
    signature: Signature
    variant: int = ED25519_VARIANT

    def serialize(self, serializer: Serializer) -> None:
        serializer.uleb128(self.variant)
        serializer.struct(self.signature)

    @classmethod
    def deserialize(cls, deserializer: Deserializer) -> "EphemeralSignature":
        variant = deserializer.uleb128()
        if variant != ED25519_VARIANT:
            raise CryptoError(f"Unknown ephemeral signature variant: {variant}")
        data = deserializer.to_bytes()
        if len(data) != Signature.LENGTH:
            raise CryptoError(f"Signature must be {Signature.LENGTH} bytes, got {len(data)}")
        return cls(Signature(data))

    @classmethod
    def from_hex(cls, value: HexInput) -> "EphemeralSignature":
        data = hex_to_bytes(value)
        deserializer = Deserializer(data)
        try:
            signature = cls.deserialize(deserializer)
        except CryptoError:
            raise
        except Exception as exc:
            # aptos_sdk.bcs raises a bare Exception on truncated input
            raise CryptoError(f"Malformed ephemeral signature: {exc}") from exc
        if deserializer.remaining():
            raise CryptoError("Trailing bytes after ephemeral signature")
        return signature

    def to_bytes(self) -> bytes:
        return encoder(self, Serializer.struct)


class EphemeralKeyPair:
    """Short-lived Ed25519 key pair bound to a JWT."""

    BLINDER_LENGTH = BLINDER_LENGTH

    def __init__(
        self,
        private_key: PrivateKey,
        expiry_date_secs: Optional[int] = None,
        blinder: Optional[HexInput] = None,
    ) -> None:
        self.private_key = private_key
        self.public_key = EphemeralPublicKey(private_key.public_key())
        if expiry_date_secs is None:
            expiry_date_secs = floor_to_whole_hour(current_time_in_seconds() + DEFAULT_LIFETIME_SECS)
        self.expiry_date_secs = int(expiry_date_secs)
        self.blinder = hex_to_bytes(blinder) if blinder is not None else secrets.token_bytes(BLINDER_LENGTH)
        if len(self.blinder) != BLINDER_LENGTH:
            raise CryptoError(f"Blinder must be {BLINDER_LENGTH} bytes, got {len(self.blinder)}")

    @classmethod
    def generate(cls, expiry_date_secs: Optional[int] = None) -> "EphemeralKeyPair":
        return cls(generate_private_key(), expiry_date_secs=expiry_date_secs)

    def get_public_key(self) -> EphemeralPublicKey:
        return self.public_key

    def is_expired(self) -> bool:
        return current_time_in_seconds() > self.expiry_date_secs

    def sign(self, message: bytes) -> EphemeralSignature:
        if self.is_expired():
            raise EphemeralKeyPairExpiredError("EphemeralKeyPair has expired")
        return EphemeralSignature(self.private_key.sign(message))

    def to_dict(self) -> dict[str, Any]:
        return {
            "private_key": self.private_key.hex(),
            "expiry_date_secs": self.expiry_date_secs,
            "blinder": bytes_to_hex(self.blinder),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "EphemeralKeyPair":
        try:
            return cls(
                private_key_from_hex(payload["private_key"]),
                expiry_date_secs=int(payload["expiry_date_secs"]),
                blinder=payload["blinder"],
            )
        except (KeyError, TypeError) as exc:
            raise CryptoError(f"Malformed ephemeral key pair: {exc}") from exc


def save_ephemeral_key_pair(key_pair: EphemeralKeyPair, path: Path) -> Path:
    """Write the key pair to disk with owner-only permissions."""
    return write_private_json(path, key_pair.to_dict())


def load_ephemeral_key_pair(path: Path) -> EphemeralKeyPair:
    """
    Load a key pair saved by :func:`save_ephemeral_key_pair`.

    Raises:
        FileNotFoundError: If the file doesn't exist
        CryptoError: If the file content is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"No ephemeral key pair at {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CryptoError(f"Corrupted ephemeral key pair file: {path}") from exc
    return EphemeralKeyPair.from_dict(payload)

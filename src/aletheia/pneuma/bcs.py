"""
BCS (Binary Canonical Serialization) helpers on top of ``aptos_sdk.bcs``.

Entry function arguments travel as individually encoded byte strings, so
each ``encode_*`` helper returns the bytes of a single value.  The SDK's
serializer only checks the upper bound of an integer; the helpers here
reject negative values too and report both as :class:`BcsError`.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from aptos_sdk.bcs import (
    MAX_U8,
    MAX_U16,
    MAX_U32,
    MAX_U64,
    MAX_U128,
    MAX_U256,
    Deserializer,
    Serializer,
    encoder,
)

__all__ = [
    "BcsError",
    "Deserializer",
    "Serializer",
    "encode_bool",
    "encode_bytes",
    "encode_string",
    "encode_u8",
    "encode_u16",
    "encode_u32",
    "encode_u64",
    "encode_u128",
    "encode_u256",
    "serialize_option",
]

T = TypeVar("T")


class BcsError(ValueError):
    pass


def serialize_option(
    serializer: Serializer,
    value: Optional[T],
    value_encoder: Callable[[Serializer, T], Any],
) -> None:
    """Write an ``Option<T>``: a 0/1 tag, then the value when present."""
    if value is None:
        serializer.bool(False)
    else:
        serializer.bool(True)
        value_encoder(serializer, value)


# ============ Entry Function Argument Encoding ============


def _unsigned(value: int, limit: int, name: str) -> int:
    if not 0 <= value <= limit:
        raise BcsError(f"Value {value} does not fit in {name}")
    return value


def encode_u8(value: int) -> bytes:
    return encoder(_unsigned(value, MAX_U8, "u8"), Serializer.u8)


def encode_u16(value: int) -> bytes:
    return encoder(_unsigned(value, MAX_U16, "u16"), Serializer.u16)


def encode_u32(value: int) -> bytes:
    return encoder(_unsigned(value, MAX_U32, "u32"), Serializer.u32)


def encode_u64(value: int) -> bytes:
    return encoder(_unsigned(value, MAX_U64, "u64"), Serializer.u64)


def encode_u128(value: int) -> bytes:
    return encoder(_unsigned(value, MAX_U128, "u128"), Serializer.u128)


def encode_u256(value: int) -> bytes:
    return encoder(_unsigned(value, MAX_U256, "u256"), Serializer.u256)


def encode_bool(value: bool) -> bytes:
    return encoder(value, Serializer.bool)


def encode_string(value: str) -> bytes:
    return encoder(value, Serializer.str)


def encode_bytes(value: bytes) -> bytes:
    return encoder(value, Serializer.to_bytes)

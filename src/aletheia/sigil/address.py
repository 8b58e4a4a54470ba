"""
Account addresses.

Addresses are ``aptos_sdk.account_address.AccountAddress`` values.  User
input is parsed with the SDK's relaxed rules (AIP-40): short or long form,
with or without ``0x``.
"""

from __future__ import annotations

from typing import Union

from aptos_sdk.account_address import AccountAddress, ParseAddressError
from aptos_sdk.bcs import Serializer, encoder

AddressInput = Union[AccountAddress, str, bytes]


def parse_address(value: AddressInput) -> AccountAddress:
    """
    Coerce an address, hex string or 32 raw bytes into an AccountAddress.

    Raises:
        ValueError: If the value is not a valid address
    """
    if isinstance(value, AccountAddress):
        return value
    try:
        if isinstance(value, (bytes, bytearray)):
            return AccountAddress(bytes(value))
        return AccountAddress.from_str_relaxed(value)
    except (ParseAddressError, RuntimeError) as exc:
        raise ValueError(f"Invalid address {value!r}: {exc}") from exc


def zero_address() -> AccountAddress:
    return AccountAddress(bytes(AccountAddress.LENGTH))


def encode_address(value: AddressInput) -> bytes:
    """Encode an address as an entry function argument."""
    return encoder(parse_address(value), Serializer.struct)

"""
Transaction Builder - Build raw entry-function transactions.

Payloads and raw transactions are ``aptos_sdk.transactions`` types.
Sequence number, chain id and gas price are looked up on the full node
unless the caller supplies them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from aptos_sdk.account_address import AccountAddress
from aptos_sdk.bcs import Serializer
from aptos_sdk.transactions import EntryFunction, ModuleId, RawTransaction, TransactionPayload
from aptos_sdk.type_tag import StructTag, TypeTag

from ..sigil.address import AddressInput, parse_address, zero_address
from ..utils import current_time_in_seconds
from .network import ClientConfig
from .rest import AptosApiError, estimate_gas_price, get_account_info, get_ledger_info

DEFAULT_MAX_GAS_AMOUNT = 200_000
DEFAULT_TXN_EXP_SEC_FROM_NOW = 20


# ============ Type Tags ============

_PRIMITIVE_TAGS = {
    "bool": TypeTag.BOOL,
    "u8": TypeTag.U8,
    "u16": TypeTag.U16,
    "u32": TypeTag.U32,
    "u64": TypeTag.U64,
    "u128": TypeTag.U128,
    "u256": TypeTag.U256,
    "address": TypeTag.ACCOUNT_ADDRESS,
    "signer": TypeTag.SIGNER,
}

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PrimitiveTypeArgument:
    """
    A primitive type used as a type argument.

    The SDK's ``U8Tag`` and friends wrap a value and write it out; a type
    argument is only the variant, so the inner part is empty.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def variant(self) -> int:
        return _PRIMITIVE_TAGS[self.name]

    def serialize(self, serializer: Serializer) -> None:
        pass

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimitiveTypeArgument):
            return NotImplemented
        return self.name == other.name

    def __str__(self) -> str:
        return self.name


class VectorTypeArgument:
    def __init__(self, element: TypeTag) -> None:
        self.element = element

    def variant(self) -> int:
        return TypeTag.VECTOR

    def serialize(self, serializer: Serializer) -> None:
        serializer.struct(self.element)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorTypeArgument):
            return NotImplemented
        return self.element == other.element

    def __str__(self) -> str:
        return f"vector<{self.element}>"


def _split_generics(value: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in value:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return parts


def parse_type_tag(value: str) -> TypeTag:
    """Parse a Move type string such as ``vector<0x1::string::String>``."""
    text = value.strip()
    if text in _PRIMITIVE_TAGS:
        return TypeTag(PrimitiveTypeArgument(text))
    if text.startswith("vector<") and text.endswith(">"):
        return TypeTag(VectorTypeArgument(parse_type_tag(text[len("vector<") : -1])))

    generics: list[TypeTag] = []
    base = text
    if "<" in text:
        if not text.endswith(">"):
            raise ValueError(f"Unbalanced generics in type: {value}")
        base, _, rest = text.partition("<")
        generics = [parse_type_tag(p) for p in _split_generics(rest[:-1])]

    pieces = base.split("::")
    if len(pieces) != 3 or not _IDENT.match(pieces[1]) or not _IDENT.match(pieces[2]):
        raise ValueError(f"Invalid type tag: {value}")
    return TypeTag(StructTag(parse_address(pieces[0]), pieces[1], pieces[2], generics))


# ============ Payload & Raw Transaction ============


def entry_function(
    function: str,
    type_arguments: Sequence[str] = (),
    arguments: Sequence[bytes] = (),
) -> EntryFunction:
    """Build from ``0xADDR::module::function`` and BCS-encoded arguments."""
    pieces = function.split("::")
    if len(pieces) != 3 or not _IDENT.match(pieces[1]) or not _IDENT.match(pieces[2]):
        raise ValueError(f"Function must look like 0x1::module::function, got '{function}'")
    return EntryFunction(
        ModuleId(parse_address(pieces[0]), pieces[1]),
        pieces[2],
        [parse_type_tag(t) for t in type_arguments],
        list(arguments),
    )


@dataclass(frozen=True)
class AnyRawTransaction:
    """A raw transaction plus the extra signers it needs."""

    raw_transaction: RawTransaction
    secondary_signer_addresses: Optional[tuple[AccountAddress, ...]] = None
    fee_payer_address: Optional[AccountAddress] = None


@dataclass
class TransactionOptions:
    max_gas_amount: int = DEFAULT_MAX_GAS_AMOUNT
    gas_unit_price: Optional[int] = None
    expire_timestamp: Optional[int] = None
    account_sequence_number: Optional[int] = None
    chain_id: Optional[int] = None


@dataclass
class SimulateOptions:
    estimate_gas_unit_price: bool = False
    estimate_max_gas_amount: bool = False
    estimate_prioritized_gas_unit_price: bool = False


def _sequence_number(config: ClientConfig, sender: AccountAddress) -> int:
    try:
        info = get_account_info(config, sender)
    except AptosApiError as exc:
        # Accounts that have never transacted are created on first use
        if exc.status == 404:
            return 0
        raise
    return int(info["sequence_number"])


def build_transaction(
    config: ClientConfig,
    sender: AddressInput,
    function: str,
    type_arguments: Sequence[str] = (),
    arguments: Sequence[bytes] = (),
    options: Optional[TransactionOptions] = None,
    secondary_signer_addresses: Optional[Sequence[AddressInput]] = None,
    with_fee_payer: bool = False,
) -> AnyRawTransaction:
    """
    Build an entry-function transaction.

    Args:
        config: Client configuration
        sender: Sender address
        function: ``0xADDR::module::function``
        type_arguments: Move type strings
        arguments: BCS-encoded arguments (see ``pneuma.bcs.encode_*``)
        options: Gas, expiry, sequence number and chain id overrides
        secondary_signer_addresses: Addresses for a multi-agent transaction
        with_fee_payer: Reserve a fee payer slot (address 0x0)

    Returns:
        AnyRawTransaction
    """
    options = options or TransactionOptions()
    sender_address = parse_address(sender)
    payload = TransactionPayload(entry_function(function, type_arguments, arguments))

    sequence_number = options.account_sequence_number
    if sequence_number is None:
        sequence_number = _sequence_number(config, sender_address)

    chain_id = options.chain_id
    if chain_id is None:
        chain_id = int(get_ledger_info(config)["chain_id"])

    gas_unit_price = options.gas_unit_price
    if gas_unit_price is None:
        gas_unit_price = int(estimate_gas_price(config)["gas_estimate"])

    expiration = options.expire_timestamp
    if expiration is None:
        expiration = current_time_in_seconds() + DEFAULT_TXN_EXP_SEC_FROM_NOW

    raw = RawTransaction(
        sender=sender_address,
        sequence_number=sequence_number,
        payload=payload,
        max_gas_amount=options.max_gas_amount,
        gas_unit_price=gas_unit_price,
        expiration_timestamps_secs=expiration,
        chain_id=chain_id,
    )
    secondary = None
    if secondary_signer_addresses is not None:
        secondary = tuple(parse_address(a) for a in secondary_signer_addresses)
    return AnyRawTransaction(
        raw_transaction=raw,
        secondary_signer_addresses=secondary,
        fee_payer_address=zero_address() if with_fee_payer else None,
    )

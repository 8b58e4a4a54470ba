"""
Transaction simulation.

Simulation submits a fully-formed signed transaction whose signatures are
all zero.  The node runs it without committing and reports gas usage and the
VM status.  Authenticators come from ``aptos_sdk.authenticator``; signers
whose public key is unknown are represented by the no-account
authenticator, which the SDK does not model.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Optional, Sequence, TypeVar, Union

from aptos_sdk.account_address import AccountAddress
from aptos_sdk.authenticator import (
    AccountAuthenticator,
    Authenticator,
    Ed25519Authenticator,
    FeePayerAuthenticator,
    MultiAgentAuthenticator,
    SingleSenderAuthenticator,
)
from aptos_sdk.bcs import Serializer
from aptos_sdk.ed25519 import PublicKey
from aptos_sdk.transactions import SignedTransaction

from ..sigil.ed25519 import zero_signature
from .network import ClientConfig
from .rest import MIME_BCS_SIGNED_TRANSACTION, post_fullnode
from .tx import AnyRawTransaction, SimulateOptions

F = TypeVar("F", bound=Callable[..., Any])


class FeePayerError(ValueError):
    pass


class UnsupportedPublicKeyError(ValueError):
    pass


# ============ Authenticators ============


class NoAccountAuthenticator:
    """AccountAuthenticator variant for a signer with no known public key."""

    VARIANT = 4

    def serialize(self, serializer: Serializer) -> None:
        serializer.uleb128(self.VARIANT)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, NoAccountAuthenticator)

    def __str__(self) -> str:
        return "NoAccountAuthenticator"


SimulationAuthenticator = Union[AccountAuthenticator, NoAccountAuthenticator]


def authenticator_for_simulation(public_key: Optional[PublicKey]) -> SimulationAuthenticator:
    """Pair a public key with an invalid signature, or mark the signer unknown."""
    if public_key is None:
        return NoAccountAuthenticator()
    if isinstance(public_key, PublicKey):
        return AccountAuthenticator(Ed25519Authenticator(public_key, zero_signature()))
    raise UnsupportedPublicKeyError(f"Unsupported public key type for simulation: {type(public_key).__name__}")


def _secondary_signers(
    addresses: Sequence[AccountAddress],
    public_keys: Optional[Sequence[Optional[PublicKey]]],
) -> list[tuple[AccountAddress, SimulationAuthenticator]]:
    if public_keys is None:
        return [(address, NoAccountAuthenticator()) for address in addresses]
    if len(public_keys) != len(addresses):
        raise ValueError(
            f"Got {len(public_keys)} secondary signer public keys for {len(addresses)} secondary signers"
        )
    return [(address, authenticator_for_simulation(pk)) for address, pk in zip(addresses, public_keys)]


def generate_signed_transaction_for_simulation(
    transaction: AnyRawTransaction,
    signer_public_key: Optional[PublicKey] = None,
    secondary_signers_public_keys: Optional[Sequence[Optional[PublicKey]]] = None,
    fee_payer_public_key: Optional[PublicKey] = None,
) -> bytes:
    """BCS-encode a SignedTransaction carrying simulation authenticators."""
    sender = authenticator_for_simulation(signer_public_key)

    if transaction.fee_payer_address is not None:
        authenticator = Authenticator(
            FeePayerAuthenticator(
                sender,
                _secondary_signers(transaction.secondary_signer_addresses or (), secondary_signers_public_keys),
                (transaction.fee_payer_address, authenticator_for_simulation(fee_payer_public_key)),
            )
        )
    elif transaction.secondary_signer_addresses is not None:
        authenticator = Authenticator(
            MultiAgentAuthenticator(
                sender,
                _secondary_signers(transaction.secondary_signer_addresses, secondary_signers_public_keys),
            )
        )
    elif isinstance(sender, AccountAuthenticator):
        authenticator = Authenticator(sender.authenticator)
    else:
        authenticator = Authenticator(SingleSenderAuthenticator(sender))

    return SignedTransaction(transaction.raw_transaction, authenticator).bytes()


def simulate_transaction(
    config: ClientConfig,
    transaction: AnyRawTransaction,
    signer_public_key: Optional[PublicKey] = None,
    secondary_signers_public_keys: Optional[Sequence[Optional[PublicKey]]] = None,
    fee_payer_public_key: Optional[PublicKey] = None,
    options: Optional[SimulateOptions] = None,
) -> list[dict[str, Any]]:
    """
    Simulate a transaction on the full node.

    Returns:
        List of user transaction responses
    """
    options = options or SimulateOptions()
    signed = generate_signed_transaction_for_simulation(
        transaction,
        signer_public_key=signer_public_key,
        secondary_signers_public_keys=secondary_signers_public_keys,
        fee_payer_public_key=fee_payer_public_key,
    )
    return post_fullnode(
        config,
        "transactions/simulate",
        origin_method="simulateTransaction",
        content=signed,
        content_type=MIME_BCS_SIGNED_TRANSACTION,
        params={
            "estimate_gas_unit_price": options.estimate_gas_unit_price,
            "estimate_max_gas_amount": options.estimate_max_gas_amount,
            "estimate_prioritized_gas_unit_price": options.estimate_prioritized_gas_unit_price,
        },
    )


# ============ Facade ============


def validate_fee_payer_data_on_simulation(method: F) -> F:
    """Reject fee payer simulations that don't say who pays."""

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        transaction = kwargs.get("transaction", args[0] if args else None)
        if (
            transaction is not None
            and transaction.fee_payer_address is not None
            and kwargs.get("fee_payer_public_key") is None
        ):
            raise FeePayerError("You are simulating a Fee Payer transaction but missing the feePayerPublicKey")
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class Simulate:
    """All simulate-transaction operations for one network."""

    def __init__(self, config: ClientConfig) -> None:
        self.config = config

    @validate_fee_payer_data_on_simulation
    def simple(
        self,
        transaction: AnyRawTransaction,
        *,
        signer_public_key: Optional[PublicKey] = None,
        fee_payer_public_key: Optional[PublicKey] = None,
        options: Optional[SimulateOptions] = None,
    ) -> list[dict[str, Any]]:
        return simulate_transaction(
            self.config,
            transaction,
            signer_public_key=signer_public_key,
            fee_payer_public_key=fee_payer_public_key,
            options=options,
        )

    @validate_fee_payer_data_on_simulation
    def multi_agent(
        self,
        transaction: AnyRawTransaction,
        *,
        signer_public_key: Optional[PublicKey] = None,
        secondary_signers_public_keys: Optional[Sequence[Optional[PublicKey]]] = None,
        fee_payer_public_key: Optional[PublicKey] = None,
        options: Optional[SimulateOptions] = None,
    ) -> list[dict[str, Any]]:
        return simulate_transaction(
            self.config,
            transaction,
            signer_public_key=signer_public_key,
            secondary_signers_public_keys=secondary_signers_public_keys,
            fee_payer_public_key=fee_payer_public_key,
            options=options,
        )

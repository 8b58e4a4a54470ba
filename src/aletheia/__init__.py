__all__ = [
    # Configuration
    "ClientConfig",
    "Network",
    "load_config",
    # REST
    "AptosApiError",
    # Keys & addresses
    "AccountAddress",
    "parse_address",
    "CryptoError",
    "generate_private_key",
    "private_key_from_hex",
    "public_key_from_hex",
    "EphemeralKeyPair",
    "EphemeralKeyPairExpiredError",
    "EphemeralPublicKey",
    "EphemeralSignature",
    # Models
    "Groth16VerificationKey",
    "Groth16Zkp",
    "KeylessConfiguration",
    "ProofFetchEvent",
    "ProofFetchStatus",
    "ZeroKnowledgeSig",
    "ZkProof",
    # Keyless
    "KeylessAccount",
    "KeylessError",
    "PepperLengthError",
    "EphemeralKeyPairLifetimeError",
    "derive_keyless_account",
    "get_keyless_config",
    "get_pepper",
    "get_proof",
    # Transactions & simulation
    "AnyRawTransaction",
    "FeePayerError",
    "Simulate",
    "SimulateOptions",
    "TransactionOptions",
    "build_transaction",
    "simulate_transaction",
    # ABIs
    "fetch_module_abis",
    # Schema
    "SchemaValidationError",
    "SchemaRegistry",
]

from aptos_sdk.account_address import AccountAddress

from .pneuma.network import ClientConfig, Network, load_config
from .pneuma.rest import AptosApiError
from .sigil.address import parse_address
from .sigil.ed25519 import CryptoError, generate_private_key, private_key_from_hex, public_key_from_hex
from .sigil.ephemeral import (
    EphemeralKeyPair,
    EphemeralKeyPairExpiredError,
    EphemeralPublicKey,
    EphemeralSignature,
)
from .spec.models import (
    Groth16VerificationKey,
    Groth16Zkp,
    KeylessConfiguration,
    ProofFetchEvent,
    ProofFetchStatus,
    ZeroKnowledgeSig,
    ZkProof,
)
from .anamnesis.account import KeylessAccount, KeylessError, PepperLengthError
from .anamnesis.keyless import (
    EphemeralKeyPairLifetimeError,
    derive_keyless_account,
    get_keyless_config,
    get_pepper,
    get_proof,
)
from .pneuma.tx import AnyRawTransaction, SimulateOptions, TransactionOptions, build_transaction
from .pneuma.simulate import FeePayerError, Simulate, simulate_transaction
from .pneuma.abi import fetch_module_abis
from .spec.schemas import SchemaRegistry, SchemaValidationError

"""
Keyless account derivation.

Flow:
1. Read the keyless configuration from chain (cached for 5 minutes)
2. Fetch the pepper for (JWT, ephemeral key pair) from the pepper service
3. Check the ephemeral key pair does not outlive the chain's horizon
4. Fetch a Groth16 proof from the proving service
5. Assemble a KeylessAccount, optionally before the proof has arrived
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Union

from aptos_sdk.account_address import AccountAddress

from ..pneuma.network import ClientConfig
from ..pneuma.rest import get_account_resource, post_pepper_service, post_proving_service
from ..sigil.address import parse_address
from ..sigil.ephemeral import EphemeralKeyPair, EphemeralSignature
from ..spec.models import (
    Groth16VerificationKey,
    Groth16Zkp,
    KeylessConfiguration,
    ZeroKnowledgeSig,
    ZkProof,
    ZkpVariant,
)
from ..spec.schemas import KEYLESS_CONFIGURATION, PEPPER_RESPONSE, PROVER_RESPONSE, SchemaRegistry
from ..utils import HexInput, current_time_in_seconds, hex_to_bytes
from . import memo
from .account import PEPPER_LENGTH, KeylessAccount, KeylessError, PepperLengthError, ProofFetchCallback

logger = logging.getLogger(__name__)

KEYLESS_CONFIG_TTL_SECONDS = 5 * 60
CONFIGURATION_RESOURCE = "0x1::keyless_account::Configuration"
VERIFICATION_KEY_RESOURCE = "0x1::keyless_account::Groth16VerificationKey"
FRAMEWORK_ADDRESS = AccountAddress.from_str("0x1")

# Background proof fetches
_proof_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="keyless-proof")


class EphemeralKeyPairLifetimeError(KeylessError):
    pass


def keyless_config_cache_key(config: ClientConfig, ledger_version: Optional[int] = None) -> str:
    key = f"keyless-configuration-{config.network.value}"
    if ledger_version is not None:
        key += f"-{ledger_version}"
    return key


def get_keyless_configuration_resource(
    config: ClientConfig,
    ledger_version: Optional[int] = None,
) -> dict[str, Any]:
    data = get_account_resource(
        config,
        FRAMEWORK_ADDRESS,
        CONFIGURATION_RESOURCE,
        origin_method="getKeylessConfigurationResource",
        ledger_version=ledger_version,
    )
    SchemaRegistry.default().validate_instance(data, KEYLESS_CONFIGURATION)
    return data


def get_groth16_verification_key_resource(
    config: ClientConfig,
    ledger_version: Optional[int] = None,
) -> dict[str, Any]:
    return get_account_resource(
        config,
        FRAMEWORK_ADDRESS,
        VERIFICATION_KEY_RESOURCE,
        origin_method="getGroth16VerificationKeyResource",
        ledger_version=ledger_version,
    )


def get_keyless_config(config: ClientConfig, ledger_version: Optional[int] = None) -> KeylessConfiguration:
    """
    Read how keyless accounts are configured on chain.

    Args:
        config: Client configuration
        ledger_version: Ledger version to query (default: latest)

    Returns:
        KeylessConfiguration with the verification key and max expiry horizon
    """

    def fetch() -> KeylessConfiguration:
        logger.info("Fetching keyless configuration for %s", config.network.value)
        resource = get_keyless_configuration_resource(config, ledger_version)
        vk = Groth16VerificationKey.from_resource(get_groth16_verification_key_resource(config, ledger_version))
        return KeylessConfiguration.create(vk, int(resource["max_exp_horizon_secs"]))

    return memo.memoize(
        fetch,
        keyless_config_cache_key(config, ledger_version),
        KEYLESS_CONFIG_TTL_SECONDS,
    )()


def _epk_hex(ephemeral_key_pair: EphemeralKeyPair) -> str:
    return ephemeral_key_pair.get_public_key().to_hex(prefix=False)


def get_pepper(
    config: ClientConfig,
    jwt: str,
    ephemeral_key_pair: EphemeralKeyPair,
    uid_key: str = "sub",
    derivation_path: Optional[str] = None,
) -> bytes:
    """
    Fetch the pepper for a JWT from the pepper service.

    Returns:
        Pepper bytes
    """
    body = {
        "jwt_b64": jwt,
        "epk": _epk_hex(ephemeral_key_pair),
        "exp_date_secs": ephemeral_key_pair.expiry_date_secs,
        "epk_blinder": ephemeral_key_pair.blinder.hex(),
        "uid_key": uid_key,
        "derivation_path": derivation_path,
    }
    data = post_pepper_service(config, "fetch", body, origin_method="getPepper")
    SchemaRegistry.default().validate_instance(data, PEPPER_RESPONSE)
    return hex_to_bytes(data["pepper"])


def get_proof(
    config: ClientConfig,
    jwt: str,
    ephemeral_key_pair: EphemeralKeyPair,
    pepper: HexInput,
    uid_key: str = "sub",
) -> ZeroKnowledgeSig:
    """
    Fetch a zero-knowledge proof from the proving service.

    Raises:
        EphemeralKeyPairLifetimeError: If the key pair expires beyond the chain's horizon
    """
    max_exp_horizon_secs = get_keyless_config(config).max_exp_horizon_secs
    if max_exp_horizon_secs < ephemeral_key_pair.expiry_date_secs - current_time_in_seconds():
        raise EphemeralKeyPairLifetimeError(
            f"The EphemeralKeyPair is too long lived.  It's lifespan must be less than {max_exp_horizon_secs}"
        )

    body = {
        "jwt_b64": jwt,
        "epk": _epk_hex(ephemeral_key_pair),
        "epk_blinder": ephemeral_key_pair.blinder.hex(),
        "exp_date_secs": ephemeral_key_pair.expiry_date_secs,
        "exp_horizon_secs": max_exp_horizon_secs,
        "pepper": hex_to_bytes(pepper).hex(),
        "uid_key": uid_key,
    }
    data = post_proving_service(config, "prove", body, origin_method="getProof")
    SchemaRegistry.default().validate_instance(data, PROVER_RESPONSE)

    points = data["proof"]
    return ZeroKnowledgeSig(
        proof=ZkProof(Groth16Zkp.from_hex(points["a"], points["b"], points["c"]), ZkpVariant.GROTH16),
        exp_horizon_secs=max_exp_horizon_secs,
        training_wheels_signature=EphemeralSignature.from_hex(data["training_wheels_signature"]),
    )


def derive_keyless_account(
    config: ClientConfig,
    jwt: str,
    ephemeral_key_pair: EphemeralKeyPair,
    uid_key: str = "sub",
    pepper: Optional[HexInput] = None,
    proof_fetch_callback: Optional[ProofFetchCallback] = None,
    address: Optional[Union[AccountAddress, str]] = None,
    derivation_path: Optional[str] = None,
) -> KeylessAccount:
    """
    Derive a keyless account from a JWT and an ephemeral key pair.

    With ``proof_fetch_callback`` the proof is fetched in the background and
    the account is returned straight away; the callback reports the outcome.
    Without it, the call blocks until the proof arrives.

    Raises:
        PepperLengthError: If the pepper is not 31 bytes
        EphemeralKeyPairLifetimeError: If the key pair outlives the chain's horizon
        AptosApiError: If a service call fails
    """
    if pepper is None:
        pepper_bytes = get_pepper(config, jwt, ephemeral_key_pair, uid_key=uid_key, derivation_path=derivation_path)
    else:
        pepper_bytes = hex_to_bytes(pepper)

    if len(pepper_bytes) != PEPPER_LENGTH:
        raise PepperLengthError(f"Pepper needs to be {PEPPER_LENGTH} bytes")

    account_address = parse_address(address) if address is not None else None

    if proof_fetch_callback is not None:
        proof_future = _proof_executor.submit(get_proof, config, jwt, ephemeral_key_pair, pepper_bytes, uid_key)
        return KeylessAccount.create(
            jwt=jwt,
            ephemeral_key_pair=ephemeral_key_pair,
            pepper=pepper_bytes,
            proof=proof_future,
            uid_key=uid_key,
            address=account_address,
            proof_fetch_callback=proof_fetch_callback,
        )

    proof = get_proof(config, jwt, ephemeral_key_pair, pepper_bytes, uid_key)
    return KeylessAccount.create(
        jwt=jwt,
        ephemeral_key_pair=ephemeral_key_pair,
        pepper=pepper_bytes,
        proof=proof,
        uid_key=uid_key,
        address=account_address,
    )

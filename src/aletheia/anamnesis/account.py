"""
Keyless accounts.

A keyless account is controlled by an OIDC identity (the JWT's issuer,
audience and user id) plus a pepper, and transacts through a short-lived
ephemeral key pair authorised by a zero-knowledge proof.  The proof may
still be in flight when the account is constructed; in that case a callback
is told when it lands or fails.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Callable, Optional, Union

from aptos_sdk.account_address import AccountAddress

from ..sigil.ephemeral import EphemeralKeyPair
from ..spec.models import ProofFetchEvent, ProofFetchStatus, ZeroKnowledgeSig
from ..utils import HexInput, bytes_to_hex, decode_jwt_payload, hex_to_bytes

logger = logging.getLogger(__name__)

PEPPER_LENGTH = 31

ProofFetchCallback = Callable[[ProofFetchEvent], None]


class KeylessError(ValueError):
    pass


class PepperLengthError(KeylessError):
    pass


class KeylessAccount:
    PEPPER_LENGTH = PEPPER_LENGTH

    def __init__(
        self,
        *,
        iss: str,
        aud: str,
        uid_key: str,
        uid_val: str,
        pepper: HexInput,
        ephemeral_key_pair: EphemeralKeyPair,
        proof: Union[ZeroKnowledgeSig, "Future[ZeroKnowledgeSig]"],
        jwt: str,
        address: Optional[AccountAddress] = None,
        proof_fetch_callback: Optional[ProofFetchCallback] = None,
    ) -> None:
        self.iss = iss
        self.aud = aud
        self.uid_key = uid_key
        self.uid_val = uid_val
        self.jwt = jwt
        self.ephemeral_key_pair = ephemeral_key_pair
        self.address = address
        self.pepper = hex_to_bytes(pepper)
        if len(self.pepper) != PEPPER_LENGTH:
            raise PepperLengthError(f"Pepper length in bytes should be {PEPPER_LENGTH}")

        self.proof: Optional[ZeroKnowledgeSig] = None
        self._proof_future: Optional[Future[ZeroKnowledgeSig]] = None
        self._proof_fetch_callback = proof_fetch_callback

        if isinstance(proof, Future):
            if proof_fetch_callback is None:
                raise KeylessError("Must provide callback for async proof fetch")
            self._proof_future = proof
            proof.add_done_callback(self._on_proof_fetched)
        else:
            self.proof = proof

    @classmethod
    def create(
        cls,
        *,
        jwt: str,
        ephemeral_key_pair: EphemeralKeyPair,
        pepper: HexInput,
        proof: Union[ZeroKnowledgeSig, "Future[ZeroKnowledgeSig]"],
        uid_key: str = "sub",
        address: Optional[AccountAddress] = None,
        proof_fetch_callback: Optional[ProofFetchCallback] = None,
    ) -> "KeylessAccount":
        """Build an account from the identity claims inside ``jwt``."""
        claims = decode_jwt_payload(jwt)
        iss = claims.get("iss")
        if not isinstance(iss, str):
            raise KeylessError("iss was not found in the JWT")
        aud = claims.get("aud")
        if not isinstance(aud, str):
            raise KeylessError("aud was not found or an array of values")
        uid_val = claims.get(uid_key)
        if uid_val is None:
            raise KeylessError(f"{uid_key} was not found in the JWT")
        return cls(
            iss=iss,
            aud=aud,
            uid_key=uid_key,
            uid_val=str(uid_val),
            pepper=pepper,
            ephemeral_key_pair=ephemeral_key_pair,
            proof=proof,
            jwt=jwt,
            address=address,
            proof_fetch_callback=proof_fetch_callback,
        )

    def _on_proof_fetched(self, future: "Future[ZeroKnowledgeSig]") -> None:
        callback = self._proof_fetch_callback
        error = future.exception()
        if error is not None:
            logger.warning("Background proof fetch failed: %s", error)
            if callback is not None:
                callback(ProofFetchEvent(ProofFetchStatus.FAILED, error))
            return
        self.proof = future.result()
        logger.debug("Background proof fetch completed")
        if callback is not None:
            callback(ProofFetchEvent(ProofFetchStatus.SUCCESS))

    @property
    def proof_or_future(self) -> Union[ZeroKnowledgeSig, "Future[ZeroKnowledgeSig]", None]:
        return self.proof if self.proof is not None else self._proof_future

    def is_proof_pending(self) -> bool:
        return self.proof is None and self._proof_future is not None and not self._proof_future.done()

    def wait_for_proof_fetch(self, timeout: Optional[float] = None) -> ZeroKnowledgeSig:
        """
        Block until the proof is available.

        Raises:
            KeylessError: If the account has neither a proof nor a pending fetch
            TimeoutError: If ``timeout`` elapses first
            Exception: Whatever the proof fetch raised
        """
        if self.proof is not None:
            return self.proof
        if self._proof_future is None:
            raise KeylessError("Keyless account has no proof and no proof fetch in flight")
        self.proof = self._proof_future.result(timeout=timeout)
        return self.proof

    def is_expired(self) -> bool:
        return self.ephemeral_key_pair.is_expired()

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": str(self.address) if self.address is not None else None,
            "iss": self.iss,
            "aud": self.aud,
            "uid_key": self.uid_key,
            "uid_val": self.uid_val,
            "pepper": bytes_to_hex(self.pepper),
            "ephemeral_public_key": self.ephemeral_key_pair.get_public_key().to_hex(),
            "expiry_date_secs": self.ephemeral_key_pair.expiry_date_secs,
            "proof": bytes_to_hex(self.proof.to_bytes()) if self.proof is not None else None,
        }

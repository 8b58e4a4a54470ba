"""Shared fixtures: a fake full node, pepper service and prover."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from aletheia.anamnesis import memo
from aletheia.pneuma.network import ClientConfig, Network
from aletheia.sigil.ed25519 import generate_private_key
from aletheia.sigil.ephemeral import EphemeralKeyPair, EphemeralSignature
from aletheia.utils import base64url_encode, current_time_in_seconds

FULLNODE = "https://fullnode.test/v1"
PEPPER = "https://pepper.test/v0"
PROVER = "https://prover.test/v0"

PEPPER_HEX = "0x" + "ab" * 31
PROOF_A = "0x" + "0a" * 32
PROOF_B = "0x" + "0b" * 64
PROOF_C = "0x" + "0c" * 32

VERIFICATION_KEY = {
    "alpha_g1": "0x" + "11" * 32,
    "beta_g2": "0x" + "22" * 64,
    "delta_g2": "0x" + "33" * 64,
    "gamma_abc_g1": ["0x" + "44" * 32, "0x" + "55" * 32],
    "gamma_g2": "0x" + "66" * 64,
}

JWT_CLAIMS = {
    "iss": "https://accounts.google.com",
    "aud": "test-client-id.apps.googleusercontent.com",
    "sub": "113990307082899718775",
    "email": "alice@example.com",
    "nonce": "7512938711270102436",
    "exp": 1_900_000_000,
}


def make_jwt(claims: dict[str, Any]) -> str:
    header = base64url_encode(json.dumps({"alg": "RS256", "typ": "JWT"}).encode())
    payload = base64url_encode(json.dumps(claims).encode())
    return f"{header}.{payload}.c2lnbmF0dXJl"


class FakeAptos:
    """Routes requests for the three services and records them."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.max_exp_horizon_secs = 10_000_000
        self.pepper = PEPPER_HEX
        self.prover_status = 200
        self.unknown_accounts: set[str] = set()
        self.sequence_number = 7
        self.simulation_result: list[dict[str, Any]] = [
            {
                "success": True,
                "vm_status": "Executed successfully",
                "gas_used": "12",
                "gas_unit_price": "100",
            }
        ]
        self.modules: list[dict[str, Any]] = []
        signer = generate_private_key()
        self.training_wheels_signature = EphemeralSignature(signer.sign(b"training wheels"))

    def count(self, suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith(suffix))

    def bodies(self, suffix: str) -> list[Any]:
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith(suffix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        path = request.url.path

        if host == "pepper.test" and path == "/v0/fetch":
            return httpx.Response(200, json={"pepper": self.pepper})

        if host == "prover.test" and path == "/v0/prove":
            if self.prover_status != 200:
                return httpx.Response(self.prover_status, json={"message": "prover unavailable"})
            return httpx.Response(
                200,
                json={
                    "proof": {"a": PROOF_A, "b": PROOF_B, "c": PROOF_C},
                    "public_inputs_hash": "12345",
                    "training_wheels_signature": "0x" + self.training_wheels_signature.to_bytes().hex(),
                },
            )

        if host == "fullnode.test":
            return self._fullnode(request, path)

        return httpx.Response(404, json={"message": "not found"})

    def _fullnode(self, request: httpx.Request, path: str) -> httpx.Response:
        if path.endswith("/resource/0x1::keyless_account::Configuration"):
            return httpx.Response(
                200,
                json={
                    "type": "0x1::keyless_account::Configuration",
                    "data": {
                        "max_exp_horizon_secs": str(self.max_exp_horizon_secs),
                        "max_commited_epk_bytes": 93,
                        "max_signatures_per_txn": 3,
                    },
                },
            )
        if path.endswith("/resource/0x1::keyless_account::Groth16VerificationKey"):
            return httpx.Response(
                200,
                json={"type": "0x1::keyless_account::Groth16VerificationKey", "data": VERIFICATION_KEY},
            )
        if path == "/v1":
            return httpx.Response(200, json={"chain_id": 4, "ledger_version": "1000"})
        if path == "/v1/estimate_gas_price":
            return httpx.Response(200, json={"gas_estimate": 100})
        if path == "/v1/transactions/simulate":
            return httpx.Response(200, json=self.simulation_result)
        if path.endswith("/modules"):
            return httpx.Response(200, json=self.modules)
        if path.startswith("/v1/accounts/"):
            address = path[len("/v1/accounts/"):]
            if address in self.unknown_accounts:
                return httpx.Response(
                    404,
                    json={"message": "Account not found", "error_code": "account_not_found"},
                )
            return httpx.Response(200, json={"sequence_number": str(self.sequence_number)})
        return httpx.Response(404, json={"message": f"unknown path {path}"})


@pytest.fixture(autouse=True)
def _clear_memo() -> None:
    memo.clear()
    yield
    memo.clear()


@pytest.fixture()
def fake() -> FakeAptos:
    return FakeAptos()


@pytest.fixture()
def config(fake: FakeAptos) -> ClientConfig:
    return ClientConfig(
        network=Network.CUSTOM,
        fullnode_url=FULLNODE,
        pepper_url=PEPPER,
        prover_url=PROVER,
        transport=httpx.MockTransport(fake.handler),
    )


@pytest.fixture()
def jwt() -> str:
    return make_jwt(JWT_CLAIMS)


@pytest.fixture()
def key_pair() -> EphemeralKeyPair:
    return EphemeralKeyPair(
        generate_private_key(),
        expiry_date_secs=current_time_in_seconds() + 3600,
        blinder=bytes(range(31)),
    )

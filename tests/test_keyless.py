"""Tests for the keyless derivation flow against fake services."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from unittest.mock import patch

import pytest

from aletheia.anamnesis import memo
from aletheia.anamnesis.account import KeylessAccount, KeylessError, PepperLengthError
from aletheia.anamnesis.keyless import (
    EphemeralKeyPairLifetimeError,
    derive_keyless_account,
    get_keyless_config,
    get_pepper,
    get_proof,
    keyless_config_cache_key,
)
from aletheia.pneuma.rest import AptosApiError
from aletheia.spec.models import ProofFetchEvent, ProofFetchStatus
from aletheia.spec.schemas import SchemaValidationError
from aletheia.utils import current_time_in_seconds

from .conftest import JWT_CLAIMS, PEPPER_HEX, PROOF_A, PROOF_B, PROOF_C, VERIFICATION_KEY, make_jwt


class TestKeylessConfig:
    def test_reads_horizon_and_verification_key(self, config, fake) -> None:
        keyless = get_keyless_config(config)
        assert keyless.max_exp_horizon_secs == 10_000_000
        assert keyless.verification_key.alpha_g1 == bytes.fromhex("11" * 32)
        assert keyless.verification_key.gamma_abc_g1[1] == bytes.fromhex("55" * 32)
        assert keyless.verification_key.to_dict() == VERIFICATION_KEY

    def test_is_memoized(self, config, fake) -> None:
        get_keyless_config(config)
        get_keyless_config(config)
        assert fake.count("keyless_account::Configuration") == 1
        assert fake.count("keyless_account::Groth16VerificationKey") == 1
        assert keyless_config_cache_key(config) in memo.cached_keys()

    def test_cache_expires_after_five_minutes(self, config, fake) -> None:
        with patch("aletheia.anamnesis.memo.time.monotonic", return_value=1000.0):
            get_keyless_config(config)
        with patch("aletheia.anamnesis.memo.time.monotonic", return_value=1000.0 + 299):
            get_keyless_config(config)
        assert fake.count("keyless_account::Configuration") == 1
        with patch("aletheia.anamnesis.memo.time.monotonic", return_value=1000.0 + 301):
            get_keyless_config(config)
        assert fake.count("keyless_account::Configuration") == 2

    def test_ledger_version_is_forwarded(self, config, fake) -> None:
        get_keyless_config(config, ledger_version=42)
        request = fake.requests[0]
        assert request.url.params["ledger_version"] == "42"

    def test_ledger_version_has_its_own_cache_entry(self, config, fake) -> None:
        latest = get_keyless_config(config)
        fake.max_exp_horizon_secs = 500
        pinned = get_keyless_config(config, ledger_version=42)
        assert latest.max_exp_horizon_secs == 10_000_000
        assert pinned.max_exp_horizon_secs == 500

        assert get_keyless_config(config).max_exp_horizon_secs == 10_000_000
        assert get_keyless_config(config, ledger_version=42).max_exp_horizon_secs == 500
        assert fake.count("keyless_account::Configuration") == 2
        assert keyless_config_cache_key(config) != keyless_config_cache_key(config, 42)
        assert {keyless_config_cache_key(config), keyless_config_cache_key(config, 42)} <= set(memo.cached_keys())

    def test_malformed_resource_is_rejected(self, config, fake) -> None:
        fake.max_exp_horizon_secs = "soon"  # type: ignore[assignment]
        with pytest.raises(SchemaValidationError):
            get_keyless_config(config)


class TestPepper:
    def test_request_body(self, config, fake, jwt, key_pair) -> None:
        pepper = get_pepper(config, jwt, key_pair, derivation_path="m/44'/637'/0'/0'/0'")
        assert pepper == bytes.fromhex("ab" * 31)

        [body] = fake.bodies("/fetch")
        assert body["jwt_b64"] == jwt
        assert body["epk"] == "0020" + key_pair.private_key.public_key().to_crypto_bytes().hex()
        assert body["exp_date_secs"] == key_pair.expiry_date_secs
        assert body["epk_blinder"] == bytes(range(31)).hex()
        assert body["uid_key"] == "sub"
        assert body["derivation_path"] == "m/44'/637'/0'/0'/0'"

    def test_no_credentials_or_prefix_leak(self, config, fake, jwt, key_pair) -> None:
        get_pepper(config, jwt, key_pair, uid_key="email")
        [body] = fake.bodies("/fetch")
        assert body["uid_key"] == "email"
        assert not body["epk"].startswith("0x")
        assert not body["epk_blinder"].startswith("0x")


class TestProof:
    def test_builds_zero_knowledge_sig(self, config, fake, jwt, key_pair) -> None:
        proof = get_proof(config, jwt, key_pair, PEPPER_HEX)
        assert proof.exp_horizon_secs == 10_000_000
        assert proof.proof.proof.a == bytes.fromhex(PROOF_A[2:])
        assert proof.proof.proof.b == bytes.fromhex(PROOF_B[2:])
        assert proof.proof.proof.c == bytes.fromhex(PROOF_C[2:])
        assert proof.training_wheels_signature == fake.training_wheels_signature

        [body] = fake.bodies("/prove")
        assert body["exp_horizon_secs"] == 10_000_000
        assert body["pepper"] == "ab" * 31
        assert body["exp_date_secs"] == key_pair.expiry_date_secs

    def test_rejects_long_lived_key_pair(self, config, fake, jwt, key_pair) -> None:
        fake.max_exp_horizon_secs = 100
        with pytest.raises(EphemeralKeyPairLifetimeError, match="must be less than 100"):
            get_proof(config, jwt, key_pair, PEPPER_HEX)
        assert fake.count("/prove") == 0

    def test_lifetime_equal_to_horizon_is_accepted(self, config, fake, jwt, key_pair) -> None:
        now = key_pair.expiry_date_secs - 3000
        fake.max_exp_horizon_secs = 3000
        with patch("aletheia.anamnesis.keyless.current_time_in_seconds", return_value=now):
            proof = get_proof(config, jwt, key_pair, PEPPER_HEX)
        assert proof.exp_horizon_secs == 3000
        assert fake.count("/prove") == 1

    def test_lifetime_one_second_over_horizon_is_rejected(self, config, fake, jwt, key_pair) -> None:
        now = key_pair.expiry_date_secs - 3001
        fake.max_exp_horizon_secs = 3000
        with patch("aletheia.anamnesis.keyless.current_time_in_seconds", return_value=now):
            with pytest.raises(EphemeralKeyPairLifetimeError):
                get_proof(config, jwt, key_pair, PEPPER_HEX)

    def test_prover_failure_raises_api_error(self, config, fake, jwt, key_pair) -> None:
        fake.prover_status = 503
        with pytest.raises(AptosApiError) as excinfo:
            get_proof(config, jwt, key_pair, PEPPER_HEX)
        assert excinfo.value.status == 503
        assert excinfo.value.origin_method == "getProof"

    def test_proof_serializes(self, config, jwt, key_pair) -> None:
        proof = get_proof(config, jwt, key_pair, PEPPER_HEX)
        data = proof.to_bytes()
        # variant + a + b + c, then the horizon as little-endian u64
        assert data[0] == 0
        assert data[1:129] == bytes.fromhex("0a" * 32 + "0b" * 64 + "0c" * 32)
        assert data[129:137] == (10_000_000).to_bytes(8, "little")
        # extra_field and override_aud_val are absent, training wheels present
        assert data[137:140] == bytes([0, 0, 1])


class TestDerive:
    def test_fetches_pepper_and_proof(self, config, fake, jwt, key_pair) -> None:
        account = derive_keyless_account(config, jwt, key_pair)
        assert account.iss == JWT_CLAIMS["iss"]
        assert account.aud == JWT_CLAIMS["aud"]
        assert account.uid_key == "sub"
        assert account.uid_val == JWT_CLAIMS["sub"]
        assert account.pepper == bytes.fromhex("ab" * 31)
        assert account.proof is not None
        assert account.address is None
        assert fake.count("/fetch") == 1
        assert fake.count("/prove") == 1

    def test_known_pepper_skips_pepper_service(self, config, fake, jwt, key_pair) -> None:
        account = derive_keyless_account(config, jwt, key_pair, pepper="cd" * 31, address="0xabc")
        assert account.pepper == bytes.fromhex("cd" * 31)
        assert str(account.address) == "0x" + "0" * 61 + "abc"
        assert fake.count("/fetch") == 0

    def test_wrong_pepper_length(self, config, fake, jwt, key_pair) -> None:
        with pytest.raises(PepperLengthError, match="Pepper needs to be 31 bytes"):
            derive_keyless_account(config, jwt, key_pair, pepper="ab" * 30)
        assert fake.count("/prove") == 0

    def test_wrong_pepper_length_from_service(self, config, fake, jwt, key_pair) -> None:
        fake.pepper = "0x" + "ab" * 32
        with pytest.raises(PepperLengthError):
            derive_keyless_account(config, jwt, key_pair)

    def test_custom_uid_key(self, config, fake, jwt, key_pair) -> None:
        account = derive_keyless_account(config, jwt, key_pair, uid_key="email")
        assert account.uid_val == "alice@example.com"
        assert fake.bodies("/prove")[0]["uid_key"] == "email"

    def test_background_proof_success(self, config, fake, jwt, key_pair) -> None:
        events: list[ProofFetchEvent] = []
        done = threading.Event()

        def callback(event: ProofFetchEvent) -> None:
            events.append(event)
            done.set()

        account = derive_keyless_account(config, jwt, key_pair, proof_fetch_callback=callback)
        proof = account.wait_for_proof_fetch(timeout=5)
        assert done.wait(timeout=5)
        assert events == [ProofFetchEvent(ProofFetchStatus.SUCCESS)]
        assert account.proof == proof
        assert not account.is_proof_pending()

    def test_background_proof_failure(self, config, fake, jwt, key_pair) -> None:
        fake.prover_status = 500
        events: list[ProofFetchEvent] = []
        done = threading.Event()

        def callback(event: ProofFetchEvent) -> None:
            events.append(event)
            done.set()

        account = derive_keyless_account(config, jwt, key_pair, proof_fetch_callback=callback)
        assert done.wait(timeout=5)
        assert events[0].status is ProofFetchStatus.FAILED
        assert isinstance(events[0].error, AptosApiError)
        assert account.proof is None
        with pytest.raises(AptosApiError):
            account.wait_for_proof_fetch(timeout=5)


class TestKeylessAccount:
    def test_pending_proof_requires_callback(self, jwt, key_pair) -> None:
        with pytest.raises(KeylessError, match="Must provide callback"):
            KeylessAccount.create(jwt=jwt, ephemeral_key_pair=key_pair, pepper=PEPPER_HEX, proof=Future())

    def test_aud_must_be_a_string(self, key_pair) -> None:
        claims = dict(JWT_CLAIMS, aud=["a", "b"])
        with pytest.raises(KeylessError, match="aud"):
            KeylessAccount.create(
                jwt=make_jwt(claims),
                ephemeral_key_pair=key_pair,
                pepper=PEPPER_HEX,
                proof=Future(),
                proof_fetch_callback=lambda event: None,
            )

    def test_missing_uid_claim(self, key_pair) -> None:
        with pytest.raises(KeylessError, match="email"):
            KeylessAccount.create(
                jwt=make_jwt(JWT_CLAIMS),
                ephemeral_key_pair=key_pair,
                pepper=PEPPER_HEX,
                proof=Future(),
                uid_key="email_verified",
                proof_fetch_callback=lambda event: None,
            )

    def test_pepper_length_checked(self, jwt, key_pair) -> None:
        with pytest.raises(PepperLengthError):
            KeylessAccount.create(
                jwt=jwt,
                ephemeral_key_pair=key_pair,
                pepper=b"\x00" * 5,
                proof=Future(),
                proof_fetch_callback=lambda event: None,
            )

    def test_pending_then_resolved(self, jwt, key_pair, config) -> None:
        proof = get_proof(config, jwt, key_pair, PEPPER_HEX)
        future: Future = Future()
        events: list[ProofFetchEvent] = []
        account = KeylessAccount.create(
            jwt=jwt,
            ephemeral_key_pair=key_pair,
            pepper=PEPPER_HEX,
            proof=future,
            proof_fetch_callback=events.append,
        )
        assert account.is_proof_pending()
        assert account.proof_or_future is future
        future.set_result(proof)
        assert account.proof == proof
        assert events == [ProofFetchEvent(ProofFetchStatus.SUCCESS)]
        assert account.to_dict()["proof"] == "0x" + proof.to_bytes().hex()

    def test_wait_keeps_the_fetched_proof(self, jwt, key_pair, config) -> None:
        proof = get_proof(config, jwt, key_pair, PEPPER_HEX)
        future: Future = Future()
        account = KeylessAccount.create(
            jwt=jwt,
            ephemeral_key_pair=key_pair,
            pepper=PEPPER_HEX,
            proof=future,
            proof_fetch_callback=lambda event: None,
        )
        future.set_result(proof)
        account.proof = None
        assert account.wait_for_proof_fetch(timeout=5) == proof
        assert account.proof == proof
        assert account.proof_or_future == proof

    def test_wait_without_proof_or_fetch(self, jwt, key_pair) -> None:
        account = KeylessAccount.create(jwt=jwt, ephemeral_key_pair=key_pair, pepper=PEPPER_HEX, proof=None)
        with pytest.raises(KeylessError, match="no proof fetch in flight"):
            account.wait_for_proof_fetch()

    def test_expiry_follows_key_pair(self, jwt, key_pair, config) -> None:
        proof = get_proof(config, jwt, key_pair, PEPPER_HEX)
        account = KeylessAccount.create(jwt=jwt, ephemeral_key_pair=key_pair, pepper=PEPPER_HEX, proof=proof)
        assert not account.is_expired()
        key_pair.expiry_date_secs = current_time_in_seconds() - 1
        assert account.is_expired()

"""
Theurgy Keyless - Keyless account commands.

- keyless-config: show the on-chain keyless configuration
- pepper:         fetch the pepper for a JWT
- derive:         derive a keyless account (pepper + proof)

All three read the ephemeral key pair created by `aletheia ephemeral`.
"""

from __future__ import annotations

import json
import sys
import threading
from pathlib import Path
from typing import Optional

import click

from ..anamnesis.keyless import derive_keyless_account, get_keyless_config, get_pepper
from ..pneuma.network import ClientConfig, load_config
from ..sigil.ephemeral import EphemeralKeyPair, load_ephemeral_key_pair
from ..spec.models import ProofFetchEvent, ProofFetchStatus
from .ephemeral import EPHEMERAL_PATH

network_option = click.option(
    "--network",
    envvar="APTOS_NETWORK",
    default=None,
    help="mainnet, testnet, devnet, local or custom",
)
jwt_option = click.option("--jwt", envvar="ALETHEIA_JWT", required=True, help="JWT issued by the OIDC provider")
uid_key_option = click.option("--uid-key", default="sub", show_default=True, help="JWT claim that identifies the user")
ephemeral_option = click.option("--ephemeral", "ephemeral_path", default=None, help="Path to the ephemeral key pair")


def _config(network: Optional[str]) -> ClientConfig:
    try:
        return load_config(network=network)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)


def _key_pair(ephemeral_path: Optional[str]) -> EphemeralKeyPair:
    path = Path(ephemeral_path).expanduser() if ephemeral_path else EPHEMERAL_PATH
    try:
        key_pair = load_ephemeral_key_pair(path)
    except (ValueError, FileNotFoundError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        click.echo("Run 'aletheia ephemeral' first.")
        sys.exit(1)
    if key_pair.is_expired():
        click.secho("ERROR: The ephemeral key pair has expired.", fg="red")
        click.echo("Run 'aletheia ephemeral --force' to create a new one.")
        sys.exit(1)
    return key_pair


@click.command("keyless-config")
@network_option
@click.option("--ledger-version", type=int, default=None, help="Ledger version to query")
def keyless_config(network: Optional[str], ledger_version: Optional[int]) -> None:
    """Show the on-chain keyless configuration."""
    config = _config(network)
    try:
        keyless = get_keyless_config(config, ledger_version=ledger_version)
    except Exception as exc:
        click.secho(f"ERROR: Failed to read keyless configuration: {exc}", fg="red")
        sys.exit(1)

    click.echo(f"  Network:             {config.network.value}")
    click.echo(f"  Max expiry horizon:  {keyless.max_exp_horizon_secs}s")
    click.echo("  Verification key:")
    click.echo(json.dumps(keyless.verification_key.to_dict(), indent=2))


@click.command()
@network_option
@jwt_option
@uid_key_option
@ephemeral_option
@click.option("--derivation-path", default=None, help="Pepper derivation path")
def pepper(
    network: Optional[str],
    jwt: str,
    uid_key: str,
    ephemeral_path: Optional[str],
    derivation_path: Optional[str],
) -> None:
    """Fetch the pepper for a JWT."""
    config = _config(network)
    key_pair = _key_pair(ephemeral_path)
    try:
        value = get_pepper(config, jwt, key_pair, uid_key=uid_key, derivation_path=derivation_path)
    except Exception as exc:
        click.secho(f"ERROR: Failed to fetch pepper: {exc}", fg="red")
        sys.exit(1)
    click.echo(f"Pepper: 0x{value.hex()}")


@click.command()
@network_option
@jwt_option
@uid_key_option
@ephemeral_option
@click.option("--pepper", "pepper_hex", default=None, help="Known pepper (hex); skips the pepper service")
@click.option("--address", default=None, help="Account address, if already known")
@click.option("--background", is_flag=True, help="Fetch the proof in the background and report progress")
@click.option("--json", "as_json", is_flag=True, help="Print the account as JSON")
def derive(
    network: Optional[str],
    jwt: str,
    uid_key: str,
    ephemeral_path: Optional[str],
    pepper_hex: Optional[str],
    address: Optional[str],
    background: bool,
    as_json: bool,
) -> None:
    """
    Derive a keyless account from a JWT.

    Fetches the pepper (unless given) and the zero-knowledge proof, then
    prints the resulting account.
    """
    config = _config(network)
    key_pair = _key_pair(ephemeral_path)

    done = threading.Event()
    outcome: dict[str, ProofFetchEvent] = {}

    def on_proof(event: ProofFetchEvent) -> None:
        outcome["event"] = event
        done.set()

    try:
        account = derive_keyless_account(
            config,
            jwt,
            key_pair,
            uid_key=uid_key,
            pepper=pepper_hex,
            proof_fetch_callback=on_proof if background else None,
            address=address,
        )
    except Exception as exc:
        click.secho(f"ERROR: Derivation failed: {exc}", fg="red")
        sys.exit(1)

    if background:
        click.echo("Account assembled; waiting for proof...")
        done.wait()
        event = outcome["event"]
        if event.status is ProofFetchStatus.FAILED:
            click.secho(f"ERROR: Proof fetch failed: {event.error}", fg="red")
            sys.exit(1)
        click.secho("Proof received.", fg="green")

    details = account.to_dict()
    if as_json:
        click.echo(json.dumps(details, indent=2))
        return

    click.secho("Keyless account derived.", fg="green")
    click.echo(f"  Issuer:     {details['iss']}")
    click.echo(f"  Audience:   {details['aud']}")
    click.echo(f"  {uid_key}:{' ' * max(1, 10 - len(uid_key))}{details['uid_val']}")
    click.echo(f"  Pepper:     {details['pepper']}")
    click.echo(f"  Expires:    {details['expiry_date_secs']}")
    if details["address"]:
        click.echo(f"  Address:    {details['address']}")

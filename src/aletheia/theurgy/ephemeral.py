"""
Theurgy Ephemeral - Create an ephemeral key pair.

The key pair is stored in ~/.aletheia/ephemeral.json.  Its public key,
expiry and blinder go into the OAuth login nonce, then `derive` reuses the
same key pair once the JWT comes back.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from ..pneuma.network import ALETHEIA_DIR
from ..sigil.ephemeral import (
    DEFAULT_LIFETIME_SECS,
    EphemeralKeyPair,
    load_ephemeral_key_pair,
    save_ephemeral_key_pair,
)
from ..utils import current_time_in_seconds, floor_to_whole_hour

EPHEMERAL_PATH = ALETHEIA_DIR / "ephemeral.json"


@click.command()
@click.option(
    "--lifetime",
    default=DEFAULT_LIFETIME_SECS,
    show_default=True,
    type=int,
    help="Seconds until the key pair expires (floored to the whole hour)",
)
@click.option("--out", "out_path", default=None, help="Where to store the key pair")
@click.option("--force", is_flag=True, help="Overwrite an existing key pair")
def ephemeral(lifetime: int, out_path: Optional[str], force: bool) -> None:
    """Generate and store an ephemeral key pair."""
    target = Path(out_path).expanduser() if out_path else EPHEMERAL_PATH

    if target.exists() and not force:
        try:
            existing = load_ephemeral_key_pair(target)
        except ValueError:
            existing = None
        if existing is not None and not existing.is_expired():
            click.secho(f"ERROR: An unexpired key pair already exists at {target}", fg="red")
            click.echo("Use --force to replace it.")
            sys.exit(1)

    if lifetime <= 0:
        click.secho("ERROR: --lifetime must be positive", fg="red")
        sys.exit(1)

    expiry = floor_to_whole_hour(current_time_in_seconds() + lifetime)
    key_pair = EphemeralKeyPair.generate(expiry_date_secs=expiry)
    save_ephemeral_key_pair(key_pair, target)

    click.secho("Ephemeral key pair created.", fg="green")
    click.echo(f"  Public key: {key_pair.get_public_key().to_hex()}")
    click.echo(f"  Expires:    {key_pair.expiry_date_secs}")
    click.echo(f"  Blinder:    0x{key_pair.blinder.hex()}")
    click.echo(f"  Saved to:   {target}")

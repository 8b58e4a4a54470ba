"""
Aletheia CLI

Command-line interface for keyless accounts and transaction simulation.

Commands:
  ephemeral       - Create an ephemeral key pair
  keyless-config  - Show the on-chain keyless configuration
  pepper          - Fetch the pepper for a JWT
  derive          - Derive a keyless account (pepper + proof)
  simulate        - Simulate an entry function transaction
  modules         - List entry functions published at an address
  info            - Show configuration
"""

from __future__ import annotations

import logging
import sys

import click

from .pneuma.network import ALETHEIA_ENV, load_config
from .sigil.ephemeral import load_ephemeral_key_pair

# ============ Constants ============

VERSION = "0.1.0"


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="aletheia")
@click.option("-v", "--verbose", is_flag=True, help="Log requests and cache activity")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Aletheia: keyless accounts and transaction simulation."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.ephemeral import EPHEMERAL_PATH, ephemeral
from .theurgy.keyless import derive, keyless_config, pepper
from .theurgy.modules import modules
from .theurgy.simulate import simulate

cli.add_command(ephemeral)
cli.add_command(keyless_config)
cli.add_command(pepper)
cli.add_command(derive)
cli.add_command(simulate)
cli.add_command(modules)


# ============ Info ============


@cli.command()
@click.option("--network", envvar="APTOS_NETWORK", default=None, help="mainnet, testnet, devnet, local or custom")
def info(network: str | None) -> None:
    """Show configuration."""
    click.secho(f"  Aletheia v{VERSION}", fg="bright_white", bold=True)
    click.echo()

    try:
        config = load_config(network=network)
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    click.echo(click.style("  Network:     ", dim=True) + config.network.value)
    click.echo(click.style("  Full node:   ", dim=True) + config.fullnode)
    for label, resolve in (("Pepper:      ", lambda: config.pepper_service), ("Prover:      ", lambda: config.proving_service)):
        try:
            value = resolve()
        except ValueError:
            value = click.style("not configured", fg="yellow")
        click.echo(click.style(f"  {label}", dim=True) + value)
    click.echo(click.style("  Config file: ", dim=True) + str(ALETHEIA_ENV))

    try:
        key_pair = load_ephemeral_key_pair(EPHEMERAL_PATH)
        status = click.style("expired", fg="yellow") if key_pair.is_expired() else click.style("valid", fg="green")
        click.echo(
            click.style("  Ephemeral:   ", dim=True)
            + key_pair.get_public_key().to_hex()
            + f" ({status})"
        )
    except (ValueError, FileNotFoundError):
        click.echo(
            click.style("  Ephemeral:   ", dim=True)
            + click.style("none", fg="yellow")
            + click.style("  (run: aletheia ephemeral)", dim=True)
        )


# ============ Entry Points ============


def main() -> None:
    """Aletheia CLI entry point."""
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()

"""
Theurgy Modules - List the functions published under an account.
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click

from ..pneuma.abi import entry_functions, fetch_module_abis, view_functions
from ..pneuma.network import load_config


@click.command()
@click.option("--network", envvar="APTOS_NETWORK", default=None, help="mainnet, testnet, devnet, local or custom")
@click.option("--address", required=True, help="Account that published the modules")
@click.option("--ledger-version", type=int, default=None, help="Ledger version to query")
@click.option("--views", is_flag=True, help="Also list view functions")
@click.option("--json", "as_json", is_flag=True, help="Print raw ABIs as JSON")
def modules(
    network: Optional[str],
    address: str,
    ledger_version: Optional[int],
    views: bool,
    as_json: bool,
) -> None:
    """List entry functions of modules published at an address."""
    try:
        config = load_config(network=network)
        abis = fetch_module_abis(config, address, ledger_version=ledger_version)
    except Exception as exc:
        click.secho(f"ERROR: Failed to fetch modules: {exc}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(abis, indent=2))
        return

    if not abis:
        click.echo(f"No modules published at {address}.")
        return

    for abi in abis:
        click.secho(f"  {abi['name']}", fg="cyan")
        for name in entry_functions(abi):
            click.echo(f"    entry  {name}")
        if views:
            for name in view_functions(abi):
                click.echo(f"    view   {name}")

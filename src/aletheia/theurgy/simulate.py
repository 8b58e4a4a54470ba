"""
Theurgy Simulate - Dry-run an entry function call.

Builds the transaction from the sender's on-chain state, signs it with
zeroed signatures and asks the full node to execute it without committing.
"""

from __future__ import annotations

import json
import sys
from typing import Callable, Optional

import click

from ..pneuma import bcs
from ..pneuma.network import load_config
from ..pneuma.simulate import Simulate
from ..pneuma.tx import SimulateOptions, TransactionOptions, build_transaction
from ..sigil.address import encode_address
from ..sigil.ed25519 import public_key_from_hex
from ..utils import hex_to_bytes

_ARGUMENT_ENCODERS: dict[str, Callable[[str], bytes]] = {
    "u8": lambda v: bcs.encode_u8(int(v, 0)),
    "u16": lambda v: bcs.encode_u16(int(v, 0)),
    "u32": lambda v: bcs.encode_u32(int(v, 0)),
    "u64": lambda v: bcs.encode_u64(int(v, 0)),
    "u128": lambda v: bcs.encode_u128(int(v, 0)),
    "u256": lambda v: bcs.encode_u256(int(v, 0)),
    "bool": lambda v: bcs.encode_bool(_parse_bool(v)),
    "address": encode_address,
    "string": bcs.encode_string,
    "hex": lambda v: bcs.encode_bytes(hex_to_bytes(v)),
}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValueError(f"Not a boolean: {value}")


def parse_argument(spec: str) -> bytes:
    """Encode a ``type:value`` argument, e.g. ``u64:100`` or ``address:0x1``."""
    kind, sep, value = spec.partition(":")
    if not sep:
        raise ValueError(f"Argument must look like type:value, got '{spec}'")
    encoder = _ARGUMENT_ENCODERS.get(kind.strip().lower())
    if encoder is None:
        choices = ", ".join(sorted(_ARGUMENT_ENCODERS))
        raise ValueError(f"Unknown argument type '{kind}'. Expected one of: {choices}")
    return encoder(value)


@click.command()
@click.option("--network", envvar="APTOS_NETWORK", default=None, help="mainnet, testnet, devnet, local or custom")
@click.option("--sender", required=True, help="Sender address")
@click.option("--function", "function", required=True, help="Entry function, e.g. 0x1::aptos_account::transfer")
@click.option("--type-arg", "type_args", multiple=True, help="Type argument (repeatable)")
@click.option("--arg", "args", multiple=True, help="Argument as type:value, e.g. u64:100 (repeatable)")
@click.option("--public-key", default=None, help="Sender Ed25519 public key (hex); omit to skip key checks")
@click.option("--secondary-signer", "secondary_signers", multiple=True, help="Secondary signer address (repeatable)")
@click.option("--fee-payer-public-key", default=None, help="Fee payer Ed25519 public key (hex); enables sponsoring")
@click.option("--max-gas", type=int, default=None, help="Max gas amount")
@click.option("--gas-unit-price", type=int, default=None, help="Gas unit price")
@click.option("--estimate-gas", is_flag=True, help="Let the node estimate gas unit price and max gas")
@click.option("--json", "as_json", is_flag=True, help="Print the full simulation result as JSON")
def simulate(
    network: Optional[str],
    sender: str,
    function: str,
    type_args: tuple[str, ...],
    args: tuple[str, ...],
    public_key: Optional[str],
    secondary_signers: tuple[str, ...],
    fee_payer_public_key: Optional[str],
    max_gas: Optional[int],
    gas_unit_price: Optional[int],
    estimate_gas: bool,
    as_json: bool,
) -> None:
    """Simulate an entry function transaction."""
    try:
        config = load_config(network=network)
        arguments = [parse_argument(a) for a in args]
        signer_key = public_key_from_hex(public_key) if public_key else None
        fee_payer_key = public_key_from_hex(fee_payer_public_key) if fee_payer_public_key else None
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    options = TransactionOptions(gas_unit_price=gas_unit_price)
    if max_gas is not None:
        options.max_gas_amount = max_gas

    try:
        transaction = build_transaction(
            config,
            sender,
            function,
            type_arguments=type_args,
            arguments=arguments,
            options=options,
            secondary_signer_addresses=list(secondary_signers) or None,
            with_fee_payer=fee_payer_key is not None,
        )
        simulator = Simulate(config)
        sim_options = SimulateOptions(
            estimate_gas_unit_price=estimate_gas,
            estimate_max_gas_amount=estimate_gas,
        )
        if secondary_signers:
            results = simulator.multi_agent(
                transaction,
                signer_public_key=signer_key,
                fee_payer_public_key=fee_payer_key,
                options=sim_options,
            )
        else:
            results = simulator.simple(
                transaction,
                signer_public_key=signer_key,
                fee_payer_public_key=fee_payer_key,
                options=sim_options,
            )
    except Exception as exc:
        click.secho(f"Simulation failed: {exc}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(results, indent=2))
        return

    for result in results:
        success = result.get("success")
        colour = "green" if success else "red"
        click.secho(f"  Success:    {success}", fg=colour)
        click.echo(f"  VM status:  {result.get('vm_status')}")
        click.echo(f"  Gas used:   {result.get('gas_used')}")
        click.echo(f"  Gas price:  {result.get('gas_unit_price')}")

    if not all(r.get("success") for r in results):
        sys.exit(1)

"""
ABI Loader - Reads Move module ABIs from the full node.

Each published module comes back as ``{"bytecode": ..., "abi": {...}}``;
only the ABI half is kept.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from aptos_sdk.account_address import AccountAddress

from ..sigil.address import parse_address
from .network import ClientConfig
from .rest import get_account_modules


def fetch_module_abis(
    config: ClientConfig,
    address: Union[AccountAddress, str],
    ledger_version: Optional[int] = None,
) -> list[dict[str, Any]]:
    """
    Fetch the ABI of every module published under an address.

    Args:
        config: Client configuration
        address: Account that published the modules
        ledger_version: Ledger version to query (default: latest)

    Returns:
        ABIs as a list of dicts, sorted by module name
    """
    modules = get_account_modules(config, parse_address(address), ledger_version=ledger_version)
    abis = [module["abi"] for module in modules if module.get("abi")]
    return sorted(abis, key=lambda abi: abi.get("name", ""))


def entry_functions(abi: dict[str, Any]) -> list[str]:
    """List a module's entry functions as ``address::module::function``."""
    address = parse_address(abi["address"])
    names = [
        fn["name"]
        for fn in abi.get("exposed_functions", [])
        if fn.get("is_entry")
    ]
    return [f"{address}::{abi['name']}::{name}" for name in sorted(names)]


def view_functions(abi: dict[str, Any]) -> list[str]:
    address = parse_address(abi["address"])
    names = [
        fn["name"]
        for fn in abi.get("exposed_functions", [])
        if fn.get("is_view")
    ]
    return [f"{address}::{abi['name']}::{name}" for name in sorted(names)]

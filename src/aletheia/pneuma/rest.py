"""
REST Client for the full node and the keyless services.

Thin httpx wrappers: one short-lived client per request, a common header
set, and a single error type for non-2xx responses.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from aptos_sdk.account_address import AccountAddress

from .network import ClientConfig

logger = logging.getLogger(__name__)

CLIENT_HEADER = "x-aptos-client"
CLIENT_NAME = "aletheia-python"
CLIENT_VERSION = "0.1.0"

MIME_JSON = "application/json"
MIME_BCS_SIGNED_TRANSACTION = "application/x.aptos.signed_transaction+bcs"


class AptosApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        status: int,
        url: str,
        origin_method: str,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.url = url
        self.origin_method = origin_method
        self.data = data

    @property
    def error_code(self) -> Optional[str]:
        return self.data.get("error_code") if isinstance(self.data, dict) else None

    @property
    def vm_error_code(self) -> Optional[int]:
        return self.data.get("vm_error_code") if isinstance(self.data, dict) else None


def _headers(config: ClientConfig, content_type: Optional[str] = None) -> dict[str, str]:
    headers = {
        CLIENT_HEADER: f"{CLIENT_NAME}/{CLIENT_VERSION}",
        "Accept": MIME_JSON,
    }
    if content_type:
        headers["Content-Type"] = content_type
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    return headers


def _clean_params(params: Optional[dict[str, Any]]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        # Query flags are lowercase on the wire
        cleaned[key] = str(value).lower() if isinstance(value, bool) else value
    return cleaned


def _request(
    config: ClientConfig,
    method: str,
    url: str,
    origin_method: str,
    params: Optional[dict[str, Any]] = None,
    json_body: Any = None,
    content: Optional[bytes] = None,
    content_type: Optional[str] = None,
) -> Any:
    """
    Make an HTTP request and decode the JSON response.

    Raises:
        AptosApiError: On transport failure or a non-2xx response
    """
    if json_body is not None and content_type is None:
        content_type = MIME_JSON

    logger.debug("%s %s (%s)", method, url, origin_method)
    try:
        with httpx.Client(timeout=config.timeout, transport=config.transport) as client:
            response = client.request(
                method,
                url,
                params=_clean_params(params),
                json=json_body,
                content=content,
                headers=_headers(config, content_type),
            )
    except httpx.HTTPError as exc:
        raise AptosApiError(
            f"Request to {url} failed: {exc}",
            status=0,
            url=url,
            origin_method=origin_method,
        ) from exc

    try:
        data = response.json()
    except ValueError:
        data = response.text

    if response.is_error:
        message = data.get("message") if isinstance(data, dict) else None
        raise AptosApiError(
            f"{origin_method} failed with status {response.status_code}: {message or data}",
            status=response.status_code,
            url=str(response.request.url),
            origin_method=origin_method,
            data=data,
        )

    logger.debug("%s -> %s", origin_method, response.status_code)
    return data


def get_fullnode(
    config: ClientConfig,
    path: str,
    origin_method: str,
    params: Optional[dict[str, Any]] = None,
) -> Any:
    url = f"{config.fullnode}/{path.lstrip('/')}" if path else config.fullnode
    return _request(config, "GET", url, origin_method, params=params)


def post_fullnode(
    config: ClientConfig,
    path: str,
    origin_method: str,
    body: Any = None,
    content: Optional[bytes] = None,
    params: Optional[dict[str, Any]] = None,
    content_type: Optional[str] = None,
) -> Any:
    url = f"{config.fullnode}/{path.lstrip('/')}"
    return _request(
        config,
        "POST",
        url,
        origin_method,
        params=params,
        json_body=body,
        content=content,
        content_type=content_type,
    )


def post_pepper_service(config: ClientConfig, path: str, body: dict[str, Any], origin_method: str) -> Any:
    url = f"{config.pepper_service}/{path.lstrip('/')}"
    return _request(config, "POST", url, origin_method, json_body=body)


def post_proving_service(config: ClientConfig, path: str, body: dict[str, Any], origin_method: str) -> Any:
    url = f"{config.proving_service}/{path.lstrip('/')}"
    return _request(config, "POST", url, origin_method, json_body=body)


# ============ Convenience Reads ============


def get_ledger_info(config: ClientConfig) -> dict[str, Any]:
    return get_fullnode(config, "", origin_method="getLedgerInfo")


def get_account_info(config: ClientConfig, address: AccountAddress) -> dict[str, Any]:
    return get_fullnode(config, f"accounts/{address}", origin_method="getAccountInfo")


def get_account_resource(
    config: ClientConfig,
    address: AccountAddress,
    resource_type: str,
    origin_method: str = "getAccountResource",
    ledger_version: Optional[int] = None,
) -> dict[str, Any]:
    """
    Read a single Move resource.

    Returns:
        The resource's ``data`` field
    """
    resource = get_fullnode(
        config,
        f"accounts/{address}/resource/{resource_type}",
        origin_method=origin_method,
        params={"ledger_version": ledger_version},
    )
    return resource["data"]


def get_account_modules(
    config: ClientConfig,
    address: AccountAddress,
    ledger_version: Optional[int] = None,
    limit: int = 1000,
) -> list[dict[str, Any]]:
    return get_fullnode(
        config,
        f"accounts/{address}/modules",
        origin_method="getAccountModules",
        params={"ledger_version": ledger_version, "limit": limit},
    )


def estimate_gas_price(config: ClientConfig) -> dict[str, Any]:
    return get_fullnode(config, "estimate_gas_price", origin_method="getGasPriceEstimation")

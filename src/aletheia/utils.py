from __future__ import annotations

import base64
import json
import os
import time
from pathlib import Path
from typing import Any, Union

HexInput = Union[str, bytes, bytearray]


def base64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def base64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def current_time_in_seconds() -> int:
    return int(time.time())


def floor_to_whole_hour(timestamp_secs: int) -> int:
    return timestamp_secs - (timestamp_secs % 3600)


def hex_to_bytes(value: HexInput) -> bytes:
    """Accept 0x-prefixed or bare hex strings, or raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    stripped = value[2:] if value.startswith(("0x", "0X")) else value
    if len(stripped) % 2:
        raise ValueError(f"Hex string has odd length: {value}")
    try:
        return bytes.fromhex(stripped)
    except ValueError as exc:
        raise ValueError(f"Invalid hex string: {value}") from exc


def bytes_to_hex(data: bytes, prefix: bool = True) -> str:
    return ("0x" if prefix else "") + data.hex()


def decode_jwt_payload(jwt: str) -> dict[str, Any]:
    """Decode the payload segment of a JWT without verifying it."""
    parts = jwt.split(".")
    if len(parts) != 3:
        raise ValueError("Invalid JWT: expected three dot-separated segments")
    try:
        payload = json.loads(base64url_decode(parts[1]))
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"Invalid JWT payload: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Invalid JWT payload: not a JSON object")
    return payload


def write_private_json(path: Path, payload: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    # Owner-only permissions on Unix
    if os.name != "nt":
        path.chmod(0o600)
    return path

"""
Time-bounded memoization.

Values are cached in-process under an explicit key and reused until their
time-to-live runs out.  Used for on-chain configuration that changes rarely
but is read on every keyless derivation.
"""

from __future__ import annotations

import functools
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")


@dataclass
class _Entry:
    value: Any
    stored_at: float


_cache: dict[str, _Entry] = {}
_lock = threading.Lock()


def memoize(func: Callable[..., T], key: str, ttl_seconds: Optional[float] = None) -> Callable[..., T]:
    """
    Wrap ``func`` so its result is cached under ``key``.

    Args:
        func: Function to call on a cache miss
        key: Cache key shared by every wrapper created with it
        ttl_seconds: Entry lifetime; ``None`` caches forever

    Returns:
        Wrapped function
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        now = time.monotonic()
        with _lock:
            entry = _cache.get(key)
            if entry is not None and (ttl_seconds is None or now - entry.stored_at <= ttl_seconds):
                return entry.value
        value = func(*args, **kwargs)
        with _lock:
            _cache[key] = _Entry(value=value, stored_at=time.monotonic())
        return value

    return wrapper


def clear(key: Optional[str] = None) -> None:
    """
    Drop cached values.

    Args:
        key: If provided, clear only this entry.
             If None, clear everything.
    """
    with _lock:
        if key is None:
            _cache.clear()
        else:
            _cache.pop(key, None)


def cached_keys() -> list[str]:
    with _lock:
        return sorted(_cache)

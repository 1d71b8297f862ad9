"""Nonce generators for signed requests.

Kraken rejects any private request whose nonce is not greater than the
last one seen for the same API key, so generators must never go backwards.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod


class NonceGenerator(ABC):
    """Source of non-decreasing nonces for one set of credentials."""

    @abstractmethod
    def generate_nonce(self) -> int:
        ...


class UnixMillisNonceGenerator(NonceGenerator):
    """Current UNIX time in milliseconds.

    Two calls inside the same millisecond return the same value, so only
    use this when private calls are never issued concurrently.
    """

    def generate_nonce(self) -> int:
        return time.time_ns() // 1_000_000


class HFNonceGenerator(NonceGenerator):
    """High-frequency generator: construction time in ns plus a counter.

    Strictly increasing and safe to share between threads and tasks.
    """

    def __init__(self) -> None:
        self._base = time.time_ns()
        self._counter = 0
        self._lock = threading.Lock()

    def generate_nonce(self) -> int:
        with self._lock:
            self._counter += 1
            return self._base + self._counter

"""
Account nonce tracking.

Different RPC nodes may report different "next nonce" values because of
propagation lag. Keeping the maximum of every observation avoids nonce
reuse while tolerating stale reads from lagging nodes.
"""

import threading

MAX_NONCE = 2**64 - 1


class NonceTracker:
    """
    Monotonic nonce counter for a single account.

    The stored value only ever rises. ``observe`` is a lock-guarded
    compare-and-raise (``threading.Lock``, CPython has no atomic fetch-max)
    and is safe for concurrent asyncio tasks and threads.
    """

    def __init__(self, address: str):
        self.address = address
        self._nonce = 0
        self._guard = threading.Lock()

    def observe(self, candidate: int) -> int:
        """
        Raise the stored nonce to at least ``candidate``.

        Returns:
            The nonce after the raise
        """
        if candidate < 0 or candidate > MAX_NONCE:
            raise ValueError(f"nonce out of range: {candidate}")
        with self._guard:
            if candidate > self._nonce:
                self._nonce = candidate
            return self._nonce

    @property
    def current(self) -> int:
        """Latest raised value."""
        return self._nonce

    def __repr__(self) -> str:
        return f"NonceTracker(address={self.address}, nonce={self._nonce})"

"""
Lock-striped set of object keys written by the upload phase.
"""

import threading
from typing import Iterator, List, Set

from s3bench.configuration import KEY_REGISTRY_STRIPES


class KeyRegistry:
    """Concurrency-safe record of keys successfully uploaded in one loop iteration.

    Upload workers insert concurrently; each stripe has its own lock so
    inserts of different keys rarely contend. Download workers only iterate,
    and never while uploads are still running.
    """

    def __init__(self, stripes: int = KEY_REGISTRY_STRIPES):
        if stripes <= 0:
            raise ValueError(f"Stripe count must be positive, got {stripes}")

        self._stripes: List[Set[str]] = [set() for _ in range(stripes)]
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def _stripe_index(self, key: str) -> int:
        return hash(key) % len(self._stripes)

    def add(self, key: str) -> None:
        """Record a key whose upload was confirmed."""
        index = self._stripe_index(key)
        with self._locks[index]:
            self._stripes[index].add(key)

    def __len__(self) -> int:
        total = 0
        for stripe, lock in zip(self._stripes, self._locks):
            with lock:
                total += len(stripe)
        return total

    def __iter__(self) -> Iterator[str]:
        """Iterate over a snapshot of the keys; order is unspecified."""
        return iter(self.snapshot())

    def snapshot(self) -> List[str]:
        """Return the current keys as a list."""
        keys: List[str] = []
        for stripe, lock in zip(self._stripes, self._locks):
            with lock:
                keys.extend(stripe)
        return keys

    def __repr__(self) -> str:
        return f"KeyRegistry(keys={len(self)}, stripes={len(self._stripes)})"

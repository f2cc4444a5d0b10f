"""
Shared per-loop counters mutated by phase workers.
"""

import threading
from typing import Dict


class AtomicCounter:
    """An integer whose increments and decrements are indivisible.

    Each counter owns its lock; no two counters ever share one.
    """

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """Add ``amount`` and return the new value."""
        with self._lock:
            self._value += amount
            return self._value

    def decrement(self, amount: int = 1) -> int:
        """Subtract ``amount`` and return the new value."""
        with self._lock:
            self._value -= amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __int__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"


class ResultAggregator:
    """Counters for one loop iteration, built fresh by the coordinator each loop.

    ``uploaded`` doubles as the upload key allocator and ``deleted`` as the
    delete index allocator: workers claim an index by incrementing and give it
    back by decrementing when the operation fails.
    """

    def __init__(self):
        self.uploaded = AtomicCounter()
        self.upload_slowdowns = AtomicCounter()
        self.downloaded = AtomicCounter()
        self.download_slowdowns = AtomicCounter()
        self.deleted = AtomicCounter()
        self.delete_slowdowns = AtomicCounter()

    def snapshot(self) -> Dict[str, int]:
        """Get the current value of every counter.

        Only consistent once every worker of the phase has joined.
        """
        return {
            'uploaded': self.uploaded.value,
            'upload_slowdowns': self.upload_slowdowns.value,
            'downloaded': self.downloaded.value,
            'download_slowdowns': self.download_slowdowns.value,
            'deleted': self.deleted.value,
            'delete_slowdowns': self.delete_slowdowns.value,
        }

    def __repr__(self) -> str:
        counters = ", ".join(f"{name}={value}" for name, value in self.snapshot().items())
        return f"ResultAggregator({counters})"

"""
Random payload shared by every upload worker of a run.
"""

import os
import logging
from typing import Iterator, Tuple

from s3bench.configuration import OBJECT_KEY_PREFIX, PAYLOAD_CONTENT_TYPE
from s3bench.common.sizes import format_size

logger = logging.getLogger(__name__)


def object_key(index: int) -> str:
    """Return the object key for a 1-based object index."""
    return f"{OBJECT_KEY_PREFIX}{index}"


class Payload:
    """Fixed-size random byte buffer, created once and never mutated."""

    def __init__(self, size: int, content_type: str = PAYLOAD_CONTENT_TYPE):
        if size <= 0:
            raise ValueError(f"Payload size must be positive, got {size}")

        self.size = size
        self.content_type = content_type
        self.data: bytes = os.urandom(size)

        logger.info(f"Generated {format_size(size)}B random payload ({content_type})")

    def __len__(self) -> int:
        return self.size

    def parts(self, part_size: int) -> Iterator[Tuple[int, memoryview]]:
        """Split the payload into sequential parts without copying.

        Every part except possibly the last is exactly ``part_size`` bytes.

        Args:
            part_size: Length of each part in bytes

        Yields:
            (part_number, data) tuples with 1-based part numbers
        """
        if part_size <= 0:
            raise ValueError(f"Part size must be positive, got {part_size}")

        view = memoryview(self.data)
        part_number = 1
        for offset in range(0, self.size, part_size):
            yield part_number, view[offset:offset + part_size]
            part_number += 1

    def part_count(self, part_size: int) -> int:
        """Number of parts ``parts(part_size)`` yields."""
        return -(-self.size // part_size)

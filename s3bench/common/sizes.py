"""
Byte-size parsing and formatting with K, M, G, T, P and E suffixes.
"""

import re

from s3bench.configuration import (
    BYTE,
    KILOBYTE,
    MEGABYTE,
    GIGABYTE,
    TERABYTE,
    PETABYTE,
    EXABYTE,
)

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGTPE]?)(I?B)?\s*$", re.IGNORECASE)

_UNITS = {
    "": BYTE,
    "K": KILOBYTE,
    "M": MEGABYTE,
    "G": GIGABYTE,
    "T": TERABYTE,
    "P": PETABYTE,
    "E": EXABYTE,
}

# Largest unit first, used when formatting
_FORMAT_UNITS = [
    ("E", EXABYTE),
    ("P", PETABYTE),
    ("T", TERABYTE),
    ("G", GIGABYTE),
    ("M", MEGABYTE),
    ("K", KILOBYTE),
]


def parse_size(text: str) -> int:
    """Parse a size such as ``512K``, ``1M``, ``1.5GB`` or ``5GiB`` into bytes.

    Units are binary (``1K == 1024``). A bare ``B`` suffix or no suffix
    means bytes.

    Args:
        text: Size string

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a positive size
    """
    match = _SIZE_PATTERN.match(text or "")
    if not match:
        raise ValueError(
            f"byte quantity must be a positive integer with a unit of measurement "
            f"like M, MB, MiB, G, GiB, or GB: {text!r}"
        )

    number, unit, suffix = match.groups()
    if not unit and suffix and suffix.upper() == "IB":
        raise ValueError(f"invalid byte unit in {text!r}")

    size = int(float(number) * _UNITS[unit.upper()])
    if size <= 0:
        raise ValueError(f"byte quantity must be positive: {text!r}")
    return size


def format_size(size: float) -> str:
    """Format a byte count the short way: ``100B``, ``512K``, ``1.5M``, ``10G``."""
    size = int(size)
    for unit, multiple in _FORMAT_UNITS:
        if size >= multiple:
            value = f"{size / multiple:.1f}"
            if value.endswith(".0"):
                value = value[:-2]
            return f"{value}{unit}"
    return f"{size}B"

"""Identifiers shared by every e-filing table."""

from __future__ import annotations

import secrets
import time
import uuid

_VERSION_7 = 0x7 << 76
_VARIANT_RFC4122 = 0x2 << 62


def generate_uuid7() -> str:
    """
    Time-ordered UUID (version 7) as a string.

    48 bits of Unix milliseconds lead, so primary keys sort by creation
    time; the remaining 74 bits are random.
    """
    millis = time.time_ns() // 1_000_000
    value = (millis & ((1 << 48) - 1)) << 80
    value |= _VERSION_7
    value |= secrets.randbits(12) << 64
    value |= _VARIANT_RFC4122
    value |= secrets.randbits(62)
    return str(uuid.UUID(int=value))


def format_file_number(department_code: str, year: int, sequence: int) -> str:
    """Official file number, e.g. ``WTR/2026/0007``."""
    code = (department_code or "GEN").strip().upper()
    return f"{code}/{year}/{sequence:04d}"

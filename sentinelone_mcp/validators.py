from __future__ import annotations

import re

from .errors import InvalidParameterError

_HEX = re.compile(r"[0-9a-fA-F]+")
HASH_LENGTHS = {40: "SHA1", 64: "SHA256"}


def validate_hash(value: str) -> str:
    """Accept a SHA1 (40 hex chars) or SHA256 (64 hex chars) digest."""
    if len(value) not in HASH_LENGTHS:
        raise InvalidParameterError(
            f"Invalid hash format. Expected SHA1 (40 chars) or SHA256 (64 chars), got {len(value)} chars"
        )
    if not _HEX.fullmatch(value):
        raise InvalidParameterError("Invalid hash format. Hash must be hexadecimal characters only.")
    return value


def check_limit(limit: int, maximum: int) -> int:
    # Out-of-range limits are rejected, never clamped.
    if limit < 1 or limit > maximum:
        raise InvalidParameterError(f"limit must be between 1 and {maximum}, got {limit}")
    return limit

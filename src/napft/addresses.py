"""Wallet address identity helpers.

Addresses are opaque strings. Identity is case-insensitive, so every address
is stored and compared in its lowercase form.
"""

from __future__ import annotations

from napft.errors import ValidationError


def normalize_address(address: str) -> str:
    """Return the canonical (stripped, lowercase) form of an address.

    Raises:
        ValidationError: If the address is empty or not a string.
    """
    if not isinstance(address, str) or not address.strip():
        msg = "Address must be a non-empty string"
        raise ValidationError(msg)
    return address.strip().lower()


def normalize_optional(address: str | None) -> str | None:
    if address is None:
        return None
    return normalize_address(address)


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality. ``None`` never matches."""
    if not a or not b:
        return False
    return a.strip().lower() == b.strip().lower()

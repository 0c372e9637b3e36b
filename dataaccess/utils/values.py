"""
Helpers for comparing and classifying raw field values.
"""

from __future__ import annotations

from typing import Any

# Zero dates some databases hand out instead of NULL.
EMPTY_SENTINELS = ("", "0000-00-00", "0000", "0000-00-00 00:00:00")


def is_empty(value: Any) -> bool:
    """True for None, empty containers, the empty string and zero-date sentinels."""
    if value is None:
        return True
    if isinstance(value, str):
        return value in EMPTY_SENTINELS
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def loosely_equal(left: Any, right: Any) -> bool:
    """
    Equality that treats ``7`` and ``"7"`` as the same value.

    None only equals None.
    """
    if left is None or right is None:
        return left is right
    if left == right:
        return True
    return str(left) == str(right)


__all__ = ["EMPTY_SENTINELS", "is_empty", "loosely_equal"]

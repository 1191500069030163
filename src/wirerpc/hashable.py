"""Structural hashing for JSON values.

JSON ids may be any JSON value, and floats have no canonical hash, so batch
correlation keys its lookup table with :class:`HashableValue` instead of the
raw id.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_I64_MIN = -(2**63)
_U64_MAX = 2**64 - 1

_NULL = ("null",)
_FALSE = ("false",)
_TRUE = ("true",)


def _number_key(value: int | float) -> tuple[str, int | str]:
    if isinstance(value, int) and _I64_MIN <= value <= _U64_MAX:
        return ("number", value)
    # Fractions and out-of-range integers compare by their decimal text.
    return ("number", repr(value) if isinstance(value, float) else str(value))


def canonical_key(value: Any) -> tuple[Any, ...]:
    """Map a JSON value onto a hashable tuple that preserves JSON equality.

    Object entries are sorted by key, so two objects holding the same
    entries in a different order produce the same key.
    """
    if value is None:
        return _NULL
    if value is False:
        return _FALSE
    if value is True:
        return _TRUE
    if isinstance(value, (int, float)):
        return _number_key(value)
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, Mapping):
        entries = sorted((str(k), canonical_key(v)) for k, v in value.items())
        return ("object", len(entries), tuple(entries))
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return ("array", len(value), tuple(canonical_key(v) for v in value))
    raise TypeError(f"not a JSON value: {type(value).__name__}")


class HashableValue:
    """Read-only wrapper making a JSON value usable as a dict key."""

    __slots__ = ("_key", "_value")

    def __init__(self, value: Any) -> None:
        self._value = value
        self._key = canonical_key(value)

    @property
    def value(self) -> Any:
        return self._value

    def __hash__(self) -> int:
        return hash(self._key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HashableValue):
            return NotImplemented
        return self._key == other._key

    def __repr__(self) -> str:
        return f"HashableValue({self._value!r})"

"""Field extraction helpers returning explicit results instead of raising.

Exchange payloads differ in naming, nesting and value types (numbers as JSON
strings or numbers, booleans as ``"true"`` or ``"1"``). Each helper returns an
``Extracted`` holding either a value or the reason it is absent, so callers
skip a record through a plain branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, Iterable, List, Mapping, Optional, TypeVar

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class Extracted(Generic[T]):
    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def of(cls, value: T) -> "Extracted[T]":
        return cls(value=value)

    @classmethod
    def absent(cls, reason: str) -> "Extracted[T]":
        return cls(reason=reason)


def first_absent(*results: Extracted[Any]) -> Optional[Extracted[Any]]:
    """Return the first failed result, or None when all are present."""
    for result in results:
        if not result.ok:
            return result
    return None


def raw_field(obj: Any, key: str) -> Extracted[Any]:
    if not isinstance(obj, Mapping):
        return Extracted.absent(f"expected object holding '{key}'")
    value = obj.get(key, _MISSING)
    if value is _MISSING:
        return Extracted.absent(f"missing '{key}'")
    return Extracted.of(value)


def str_field(obj: Any, key: str, *, allow_empty: bool = False) -> Extracted[str]:
    result = raw_field(obj, key)
    if not result.ok:
        return result
    value = result.value
    if not isinstance(value, str):
        return Extracted.absent(f"'{key}' is not a string")
    if not allow_empty and not value.strip():
        return Extracted.absent(f"'{key}' is empty")
    return Extracted.of(value.strip())


def to_decimal(value: Any) -> Extracted[Decimal]:
    if value is None or isinstance(value, bool):
        return Extracted.absent(f"not a number: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return Extracted.absent("empty number")
    elif isinstance(value, float):
        value = repr(value)
    elif not isinstance(value, (int, Decimal)):
        return Extracted.absent(f"not a number: {value!r}")
    try:
        parsed = Decimal(value)
    except (InvalidOperation, ValueError):
        return Extracted.absent(f"not a number: {value!r}")
    if not parsed.is_finite():
        return Extracted.absent(f"not a finite number: {value!r}")
    return Extracted.of(parsed)


def decimal_field(obj: Any, key: str) -> Extracted[Decimal]:
    result = raw_field(obj, key)
    if not result.ok:
        return result
    parsed = to_decimal(result.value)
    if not parsed.ok:
        return Extracted.absent(f"'{key}': {parsed.reason}")
    return parsed


def bool_field(obj: Any, key: str, truthy: Iterable[str] = ("true",)) -> Extracted[bool]:
    """Read a JSON boolean, or a string compared against ``truthy``."""
    result = raw_field(obj, key)
    if not result.ok:
        return result
    value = result.value
    if isinstance(value, bool):
        return Extracted.of(value)
    if isinstance(value, str):
        return Extracted.of(value.strip().lower() in {t.lower() for t in truthy})
    return Extracted.absent(f"'{key}' is not a boolean")


def list_at(obj: Any, *path: str) -> List[Any]:
    """Walk nested objects along ``path`` and return the list found there, or []."""
    node = obj
    for key in path:
        if not isinstance(node, Mapping):
            return []
        node = node.get(key)
    return node if isinstance(node, list) else []

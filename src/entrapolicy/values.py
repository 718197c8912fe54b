"""
Setting value model.

Every setting resolved from the directory service carries at most one
value, expressed as one of the variants below.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from entrapolicy.policy.settings import PolicySetting


INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_DECIMAL_RE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class Text:
    """Free-form text value."""

    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "value": self.value}


@dataclass(frozen=True)
class Decimal:
    """64-bit signed integer value."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not INT64_MIN <= self.value <= INT64_MAX:
            raise ValueError(f"Decimal out of 64-bit range: {self.value!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"type": "decimal", "value": self.value}


@dataclass(frozen=True)
class Boolean:
    """Boolean value."""

    value: bool

    def to_dict(self) -> dict[str, Any]:
        return {"type": "boolean", "value": self.value}


@dataclass(frozen=True)
class MultiText:
    """Ordered sequence of text values."""

    values: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"type": "multi_text", "value": list(self.values)}


@dataclass(frozen=True)
class ListEntry:
    """Single name/value row of a list presentation."""

    name: str
    value: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class ListValue:
    """Ordered sequence of name/value rows."""

    entries: tuple[ListEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"type": "list", "value": [entry.to_dict() for entry in self.entries]}


@dataclass(frozen=True)
class Collection:
    """
    Nested group of settings.

    Only built from group setting collections; never decoded directly
    from a response body.
    """

    settings: tuple[PolicySetting, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "collection",
            "value": [setting.to_dict() for setting in self.settings],
        }


Value = Union[Text, Decimal, Boolean, MultiText, ListValue, Collection]


def _parse_int64(text: str) -> int | None:
    """Strict 64-bit signed integer parse (sign and ASCII digits only)."""
    if not _DECIMAL_RE.fullmatch(text):
        return None
    number = int(text)
    if not INT64_MIN <= number <= INT64_MAX:
        return None
    return number


def parse_input_value(text: str) -> Value:
    """
    Parse raw setting text into a typed value.

    Integers are tried first, then case-insensitive "true"/"false",
    and anything else is kept as text.

    Args:
        text: Raw string from the directory service

    Returns:
        Decimal, Boolean or Text value
    """
    number = _parse_int64(text)
    if number is not None:
        return Decimal(number)

    lowered = text.lower()
    if lowered == "true":
        return Boolean(True)
    if lowered == "false":
        return Boolean(False)

    return Text(text)


def value_from_json(raw: Any) -> Value:
    """
    Decode a presentation value taken from a JSON body.

    Shapes are tried in the order Text, Decimal, Boolean, MultiText, List.
    Strings are kept as text and are not run through parse_input_value.

    Raises:
        ValueError: If the data matches none of the shapes
    """
    if isinstance(raw, str):
        return Text(raw)
    # bool is a subclass of int, so it has to be ruled out first
    if isinstance(raw, int) and not isinstance(raw, bool):
        if INT64_MIN <= raw <= INT64_MAX:
            return Decimal(raw)
        raise ValueError(f"Integer out of 64-bit range: {raw}")
    if isinstance(raw, bool):
        return Boolean(raw)
    if isinstance(raw, list):
        if all(isinstance(item, str) for item in raw):
            return MultiText(tuple(raw))
        if all(_is_list_entry(item) for item in raw):
            return ListValue(
                tuple(ListEntry(name=item["name"], value=item.get("value")) for item in raw)
            )
    raise ValueError(f"Unsupported presentation value: {raw!r}")


def _is_list_entry(item: Any) -> bool:
    if not isinstance(item, dict) or not isinstance(item.get("name"), str):
        return False
    value = item.get("value")
    return value is None or isinstance(value, str)

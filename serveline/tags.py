"""Typed values and name/value tags attached to log events."""

from __future__ import annotations

import enum
import math
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

_STRING_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\0": "\\0",
}


def _escape_char(char: str) -> str:
    escaped = _STRING_ESCAPES.get(char)
    if escaped is not None:
        return escaped
    if not char.isprintable():
        return f"\\u{{{ord(char):x}}}"
    return char


def _quote(text: str) -> str:
    return '"' + "".join(_escape_char(char) for char in text) + '"'


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        text = str(int(value))
        if text == "0" and math.copysign(1.0, value) < 0:
            return "-0"
        return text
    return format(Decimal(repr(value)), "f")


class TagKind(enum.IntEnum):
    """The type of a tag value; the number is its ordinal and sort order."""

    STR = 0
    STRING = 1
    BOOL = 2
    I8 = 3
    I16 = 4
    I32 = 5
    I64 = 6
    I128 = 7
    U8 = 8
    U16 = 9
    U32 = 10
    U64 = 11
    U128 = 12
    USIZE = 13
    FLOAT = 14
    NULL = 15


_INT_KINDS = (
    (TagKind.I64, -(2**63), 2**63 - 1),
    (TagKind.U64, 0, 2**64 - 1),
    (TagKind.I128, -(2**127), 2**127 - 1),
    (TagKind.U128, 0, 2**128 - 1),
)


@dataclass(frozen=True, order=True)
class TagValue:
    """A typed tag value. Floats are stored as their display text."""

    kind: TagKind
    value: Any = None

    @classmethod
    def from_value(cls, value: Any) -> TagValue:
        """Convert a Python value (str, path, bool, int, float or None) to a `TagValue`."""
        if isinstance(value, TagValue):
            return value
        if value is None:
            return cls(TagKind.NULL)
        if isinstance(value, bool):
            return cls(TagKind.BOOL, value)
        if isinstance(value, int):
            for kind, low, high in _INT_KINDS:
                if low <= value <= high:
                    return cls(kind, value)
            raise ValueError(f"integer too large for a tag value: {value}")
        if isinstance(value, float):
            return cls(TagKind.FLOAT, _format_float(value))
        if isinstance(value, str):
            return cls(TagKind.STRING, value)
        if isinstance(value, os.PathLike):
            return cls(TagKind.STRING, os.fsdecode(value))
        raise TypeError(f"unsupported tag value type: {type(value).__name__}")

    def ordinal(self) -> int:
        return int(self.kind)

    def __str__(self) -> str:
        if self.kind in (TagKind.STR, TagKind.STRING):
            return _quote(self.value)
        if self.kind is TagKind.BOOL:
            return "true" if self.value else "false"
        if self.kind is TagKind.NULL:
            return "null"
        return str(self.value)

    def __repr__(self) -> str:
        label = self.kind.name.title()
        if self.kind is TagKind.NULL:
            return label
        if self.kind in (TagKind.STR, TagKind.STRING, TagKind.FLOAT):
            return f"{label}({_quote(self.value)})"
        return f"{label}({self})"


@dataclass(frozen=True, order=True)
class Tag:
    """A named value attached to a log event."""

    name: str
    value: TagValue

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", TagValue.from_value(self.value))

    def __str__(self) -> str:
        return f"{self.name}: {self.value}"

    def __repr__(self) -> str:
        return f"Tag{{{_quote(self.name)}:{self.value!r}}}"


def tag(name: str, value: Any) -> Tag:
    """Make a `Tag`."""
    return Tag(name, value)
"""An ordered list of log tags."""

from __future__ import annotations

import functools
from collections.abc import Iterable, Iterator
from typing import Any, Union

from serveline.tags import Tag, TagValue

TagSource = Union["TagList", Tag, Iterable[Any], None]


def _quoted_name(name: str) -> str:
    return str(TagValue.from_value(name))


def _to_tag(item: Any) -> Tag:
    if isinstance(item, Tag):
        return item
    if isinstance(item, (tuple, list)) and len(item) == 2 and isinstance(item[0], str):
        return Tag(item[0], item[1])
    raise TypeError(f"cannot make a tag from {item!r}")


def _coerce(tags: TagSource) -> list[Tag]:
    if tags is None:
        return []
    if isinstance(tags, Tag):
        return [tags]
    if isinstance(tags, TagList):
        return list(tags)
    return [_to_tag(item) for item in tags]


@functools.total_ordering
class TagList:
    """Tags in the order they were added.

    Built from nothing, a single `Tag`, another `TagList`, or an iterable whose
    items are `Tag`s or `(name, value)` pairs.
    """

    def __init__(self, tags: TagSource = ()) -> None:
        self._tags: list[Tag] = _coerce(tags)

    def push(self, name: str, value: Any) -> None:
        """Add a tag at the end."""
        self._tags.append(Tag(name, value))

    def with_tag(self, name: str, value: Any) -> TagList:
        """Add a tag at the end and return this list, for chaining."""
        self.push(name, value)
        return self

    def append(self, other: TagList) -> None:
        """Move every tag of `other` to the end of this list, leaving `other` empty."""
        self._tags.extend(other._tags)
        other._tags.clear()

    def __add__(self, other: object) -> TagList:
        if not isinstance(other, TagList):
            return NotImplemented
        return TagList(self._tags + other._tags)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __getitem__(self, index: int) -> Tag:
        return self._tags[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagList):
            return NotImplemented
        return self._tags == other._tags

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, TagList):
            return NotImplemented
        return self._tags < other._tags

    def __hash__(self) -> int:
        return hash(tuple(self._tags))

    def __str__(self) -> str:
        return ",".join(f"{_quoted_name(t.name)}:{t.value}" for t in self._tags)

    def __repr__(self) -> str:
        inner = ",".join(f"{_quoted_name(t.name)}:{t.value!r}" for t in self._tags)
        return f"TagList{{{inner}}}"
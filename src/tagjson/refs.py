"""
``tagjson.refs``: Shared and cyclic identity
============================================

Book-keeping used to encode and decode graphs where a value appears more than
once. All the tables here live for exactly one :func:`~tagjson.encode` or
:func:`~tagjson.decode` call.
"""

from __future__ import annotations

import contextlib
from typing import Any, Iterator

from .errors import CircularReference, UnknownReferenceId

__all__ = ("EncodeTable", "ActiveStack", "DecodeTable")


class EncodeTable:
    """Ids handed out to composite values while encoding with cycles on.

    Ids start at 1 and are assigned in the order the values are first
    visited.
    """

    # id(obj) -> assigned id
    memo: dict[int, int]
    # Since we rely on `id` to detect duplicates we have to hold on to all the
    # values we've seen to make sure addresses do not get reused (values
    # returned by transform hooks might be transient).
    transient: list[Any]

    def __init__(self) -> None:
        self.memo = {}
        self.transient = []

    def lookup(self, obj: Any) -> int | None:
        return self.memo.get(id(obj))

    def assign(self, obj: Any) -> int:
        ident = self.memo[id(obj)] = len(self.transient) + 1
        self.transient.append(obj)
        return ident

    def __len__(self) -> int:
        return len(self.transient)


class ActiveStack:
    """The composite values on the current recursion path."""

    active: set[int]

    def __init__(self) -> None:
        self.active = set()

    @contextlib.contextmanager
    def visiting(self, obj: Any) -> Iterator[None]:
        addr = id(obj)
        if addr in self.active:
            raise CircularReference(obj)
        self.active.add(addr)
        try:
            yield
        finally:
            self.active.discard(addr)


class DecodeTable:
    """Values decoded so far, by the id they were given on the wire."""

    values: dict[int, Any]

    def __init__(self) -> None:
        self.values = {}

    def store(self, ident: int | None, value: Any) -> None:
        if ident is not None:
            self.values.setdefault(ident, value)

    def resolve(self, ident: object) -> Any:
        try:
            return self.values[ident]  # type: ignore[index]
        except (KeyError, TypeError):
            raise UnknownReferenceId(ident) from None

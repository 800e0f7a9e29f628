"""
``tagjson.errors``: What can go wrong
=====================================

Every error raised by :mod:`tagjson` derives from :class:`TagJSONError` and
from the closest built-in exception, so callers can catch either::

  >>> import tagjson
  >>> try:
  ...     tagjson.stringify(print)
  ... except TypeError as e:
  ...     print(type(e).__name__)
  UnsupportedValueKind

Errors abort the whole call: there is never a partial result.
"""

from __future__ import annotations

from typing import Any

__all__ = (
    "TagJSONError",
    "UnsupportedValueKind",
    "CircularReference",
    "UnknownReferenceId",
    "UnknownTypedArrayConstructor",
    "MalformedWrapper",
    "BackingApiFailure",
)


class TagJSONError(Exception):
    """Base class of all the errors raised while encoding or decoding."""


class UnsupportedValueKind(TagJSONError, TypeError):
    """The value (or key) cannot be represented on the wire.

    Attributes:
      kind(str): name of the offending python type
    """

    kind: str

    def __init__(self, value: Any, what: str = "value") -> None:
        self.kind = type(value).__name__
        super().__init__(f"Unsupported {what} of type {self.kind!r}")


class CircularReference(TagJSONError, ValueError):
    """A value contains itself and cycle preservation is turned off."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            f"Circular reference detected on a {type(value).__name__!r} "
            "(use preserve_cycles=True to encode cyclic values)"
        )


class UnknownReferenceId(TagJSONError, LookupError):
    """A ``reference`` wrapper points to an id that wasn't decoded yet."""

    ident: object

    def __init__(self, ident: object) -> None:
        self.ident = ident
        super().__init__(f"Unknown reference id: {ident!r}")


class UnknownTypedArrayConstructor(TagJSONError, LookupError):
    """A ``TypedArray`` wrapper names an element kind we don't know."""

    name: object

    def __init__(self, name: object) -> None:
        self.name = name
        super().__init__(f"Unknown typed array constructor: {name!r}")


class MalformedWrapper(TagJSONError, ValueError):
    """A wrapper has a known tag but its payload has the wrong shape."""

    tag: str

    def __init__(self, tag: str, message: str) -> None:
        self.tag = tag
        super().__init__(f"Malformed {tag!r} wrapper: {message}")


class BackingApiFailure(TagJSONError, RuntimeError):
    """The underlying python value couldn't be inspected or built.

    Attributes:
      detail(str): diagnostic reported by the failing call
    """

    detail: str

    def __init__(self, operation: str, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")

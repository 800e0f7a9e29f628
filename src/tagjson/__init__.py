"""

:mod:`tagjson` extends JSON with the values it cannot represent natively
(non-finite numbers, big integers, dates, patterns, sets, maps, errors, binary
data, sparse arrays...) and, optionally, with shared and cyclic references.

Values that plain JSON can't hold are written as *wrappers*: objects with a
``"$$type"`` field naming what they are::

  >>> import datetime
  >>> when = datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc)
  >>> text = stringify({"when": when, "count": 2**64})
  >>> text
  '{"when":{"$$type":"Date","value":"2024-05-01T00:00:00.000Z"},\
"count":{"$$type":"BigInt","value":"18446744073709551616"}}'
  >>> parse(text) == {"when": when, "count": 2**64}
  True

Supported types
---------------

+ :const:`None`, :class:`bool`, :class:`str`, :class:`int`, :class:`float`
  (including ``nan`` and the infinities) and :class:`BigInt`
+ :data:`JSUndefined` and :data:`JSHole` (an empty array slot)
+ :class:`list` and :class:`tuple` (decoded as lists)
+ :class:`dict` with string keys
+ :class:`JSSet`, :class:`set` and :class:`frozenset` (decoded as
  :class:`JSSet`), :class:`JSMap`
+ :class:`datetime.datetime` (decoded as an aware UTC datetime)
+ :class:`JSRegExp` and compiled :mod:`re` patterns (decoded as
  :class:`JSRegExp`)
+ exceptions, see :func:`register_error`
+ :class:`bytes`, :class:`bytearray`, :class:`array.array` and
  :class:`memoryview`

"""
from __future__ import annotations

from importlib import metadata

from .decode import ERROR_TYPES, decode, register_error
from .encode import encode
from .errors import (
    BackingApiFailure,
    CircularReference,
    MalformedWrapper,
    TagJSONError,
    UnknownReferenceId,
    UnknownTypedArrayConstructor,
    UnsupportedValueKind,
)
from .jstypes import (
    BigInt,
    JSError,
    JSHole,
    JSMap,
    JSRegExp,
    JSSet,
    JSSymbol,
    JSUndefined,
)
from .text import copy, dump, load, parse, stringify

# https://packaging.python.org/en/latest/guides/single-sourcing-package-version/
__version__ = metadata.version(__name__)

__all__ = (
    "stringify",
    "parse",
    "dump",
    "load",
    "copy",
    "encode",
    "decode",
    "register_error",
    "ERROR_TYPES",
    "BigInt",
    "JSError",
    "JSHole",
    "JSMap",
    "JSRegExp",
    "JSSet",
    "JSSymbol",
    "JSUndefined",
    "TagJSONError",
    "UnsupportedValueKind",
    "CircularReference",
    "UnknownReferenceId",
    "UnknownTypedArrayConstructor",
    "MalformedWrapper",
    "BackingApiFailure",
)

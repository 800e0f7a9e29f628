"""
``tagjson.jstypes``: Values python doesn't have
===============================================

The wire format can carry a few kinds of values that have no direct python
equivalent. This module provides them:

+ :data:`JSUndefined` and :data:`JSHole`: markers for an absent value and for
  an absent array slot.
+ :class:`BigInt`: an :class:`int` that is always written as an arbitrary
  precision integer.
+ :class:`JSSymbol`: unique keys, optionally shared via a process wide
  registry.
+ :class:`JSSet` and :class:`JSMap`: insertion ordered collections that accept
  unhashable members (compared by identity).
+ :class:`JSError`: the generic error kind.
+ :class:`JSRegExp`: a pattern as written on the wire, flags included.

"""

from __future__ import annotations

import array
import dataclasses
import enum
import re
import sys
from collections.abc import Hashable, MutableMapping, MutableSet
from typing import Any, Final, Iterable, Iterator, Mapping

__all__ = (
    "JSUndefined",
    "JSHole",
    "BigInt",
    "JSSymbol",
    "JSSet",
    "JSMap",
    "JSError",
    "JSRegExp",
    "REGEXP_FLAGS",
    "JS_REGEXP_FLAGS",
    "TYPED_ARRAY_TYPECODES",
    "typed_array_name",
)


class _Marker(enum.Enum):
    UNDEFINED = "JSUndefined"
    HOLE = "JSHole"

    def __repr__(self) -> str:
        return self.value

    def __bool__(self) -> bool:
        return False


#: The absent value.
JSUndefined: Final = _Marker.UNDEFINED

#: An array slot with no value in it (distinct from :data:`JSUndefined`).
JSHole: Final = _Marker.HOLE


class BigInt(int):
    """An integer that is always encoded as a ``BigInt``.

    Plain :class:`int` are only encoded that way when they cannot be
    represented exactly by a double.

    >>> BigInt(12) == 12
    True
    """

    def __repr__(self) -> str:
        return f"BigInt({int(self)})"


_GLOBAL_SYMBOLS: dict[str, JSSymbol] = {}


class JSSymbol:
    """A unique property key.

    Two symbols are never equal unless they are the same object. Symbols
    obtained via :meth:`for_key` are shared process wide:

    >>> JSSymbol("a") == JSSymbol("a")
    False
    >>> JSSymbol.for_key("app.id") is JSSymbol.for_key("app.id")
    True
    """

    __slots__ = ("description",)

    description: str | None

    def __init__(self, description: str | None = None) -> None:
        self.description = description

    @classmethod
    def for_key(cls, key: str) -> JSSymbol:
        sym = _GLOBAL_SYMBOLS.get(key)
        if sym is None:
            sym = _GLOBAL_SYMBOLS[key] = cls(key)
        return sym

    @staticmethod
    def key_for(sym: JSSymbol) -> str | None:
        """The registry key of *sym* or ``None`` if it is a local symbol."""
        key = sym.description
        if key is not None and _GLOBAL_SYMBOLS.get(key) is sym:
            return key
        return None

    def __repr__(self) -> str:
        if self.description is None:
            return "JSSymbol()"
        return f"JSSymbol({self.description!r})"


class _Identity:
    """Hashes an unhashable value by its identity."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __hash__(self) -> int:
        return id(self.value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Identity) and other.value is self.value


def _slot(value: Any) -> Hashable:
    # `True == 1` and `False == 0` but they are distinct members.
    if type(value) is bool:
        return _Identity(value)
    try:
        hash(value)
    except TypeError:
        return _Identity(value)
    return value  # type: ignore[no-any-return]


class JSSet(MutableSet[Any]):
    """An insertion ordered set.

    Hashable members are compared by equality, the other ones by identity:

    >>> key = {"k": 1}
    >>> s = JSSet([1, key, 1, {"k": 1}])
    >>> len(s), key in s, {"k": 1} in s
    (3, True, False)
    """

    _data: dict[Hashable, Any]

    def __init__(self, items: Iterable[Any] = ()) -> None:
        self._data = {}
        for item in items:
            self.add(item)

    def add(self, value: Any) -> None:
        self._data.setdefault(_slot(value), value)

    def discard(self, value: Any) -> None:
        self._data.pop(_slot(value), None)

    def __contains__(self, value: object) -> bool:
        return _slot(value) in self._data

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._data.values()))

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"JSSet({list(self._data.values())!r})"


class JSMap(MutableMapping[Any, Any]):
    """An insertion ordered mapping that accepts any key.

    >>> m = JSMap([([1], "list"), ("a", 1)])
    >>> m["a"], list(m.values())
    (1, ['list', 1])
    """

    _data: dict[Hashable, tuple[Any, Any]]

    def __init__(
        self, items: Mapping[Any, Any] | Iterable[tuple[Any, Any]] = ()
    ) -> None:
        self._data = {}
        if isinstance(items, Mapping):
            items = items.items()
        for key, value in items:
            self[key] = value

    def __getitem__(self, key: Any) -> Any:
        return self._data[_slot(key)][1]

    def __setitem__(self, key: Any, value: Any) -> None:
        slot = _slot(key)
        previous = self._data.get(slot)
        self._data[slot] = (key if previous is None else previous[0], value)

    def __delitem__(self, key: Any) -> None:
        del self._data[_slot(key)]

    def __iter__(self) -> Iterator[Any]:
        return iter([k for k, _ in self._data.values()])

    def __eq__(self, other: object) -> bool:
        # Order matters and keys may be unhashable.
        if isinstance(other, JSMap):
            return list(self.items()) == list(other.items())
        return super().__eq__(other)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"JSMap({list(self._data.values())!r})"


class JSError(Exception):
    """The generic error kind.

    Errors whose name doesn't match a registered exception type are decoded as
    :class:`JSError`; *name* keeps track of what they were called.

    >>> e = JSError("boom", name="RangeError")
    >>> e.name, e.message
    ('RangeError', 'boom')
    """

    name: str = "Error"
    stack: str | None = None

    def __init__(
        self, message: str = "", *, name: str | None = None
    ) -> None:
        super().__init__(message)
        if name is not None:
            self.name = name

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def __str__(self) -> str:
        return self.message


#: Every flag letter a pattern can carry on the wire.
JS_REGEXP_FLAGS: Final = "dgimsuvy"

# Flag letter -> `re` flag, in the order the letters are written. The other
# letters change how a pattern is used rather than what it matches.
REGEXP_FLAGS: Final = (
    ("i", re.IGNORECASE),
    ("m", re.MULTILINE),
    ("s", re.DOTALL),
)


@dataclasses.dataclass(frozen=True, slots=True)
class JSRegExp:
    """A pattern and its flag letters, kept exactly as they were written.

    Compiled :mod:`re` patterns are encoded as well but patterns are always
    decoded as :class:`JSRegExp` so that flags python has no use for (``g``,
    ``y``...) survive a round trip. :meth:`compile` gives a python pattern:

    >>> p = JSRegExp("^a+$", "gi")
    >>> p.compile().match("AAA") is not None
    True
    """

    source: str
    flags: str = ""

    def compile(self) -> re.Pattern[str]:
        """Compile with :mod:`re` (which raises :class:`re.error` on syntax
        it doesn't share with javascript)."""
        flags = 0
        for letter, flag in REGEXP_FLAGS:
            if letter in self.flags:
                flags |= flag
        return re.compile(self.source, flags)


# Element kind -> array typecode. ``Uint8ClampedArray`` has no python
# counterpart and shares the typecode of ``Uint8Array``.
TYPED_ARRAY_TYPECODES: Final[Mapping[str, str]] = {
    "Int8Array": "b",
    "Uint8Array": "B",
    "Uint8ClampedArray": "B",
    "Int16Array": "h",
    "Uint16Array": "H",
    "Int32Array": "i",
    "Uint32Array": "I",
    "Float32Array": "f",
    "Float64Array": "d",
    "BigInt64Array": "q",
    "BigUint64Array": "Q",
}

_SIGNED_NAMES: Final = {1: "Int8", 2: "Int16", 4: "Int32", 8: "BigInt64"}
_UNSIGNED_NAMES: Final = {
    1: "Uint8",
    2: "Uint16",
    4: "Uint32",
    8: "BigUint64",
}
_FLOAT_NAMES: Final = {4: "Float32", 8: "Float64"}

LITTLE_ENDIAN: Final = sys.byteorder == "little"


def typed_array_name(arr: array.array[Any]) -> str | None:
    """The element kind matching *arr*, or ``None``.

    >>> typed_array_name(array.array("H"))
    'Uint16Array'
    >>> typed_array_name(array.array("d"))
    'Float64Array'
    """
    code = arr.typecode
    if code in "fd":
        table = _FLOAT_NAMES
    elif code in "bhilq":
        table = _SIGNED_NAMES
    elif code in "BHILQ":
        table = _UNSIGNED_NAMES
    else:
        return None
    prefix = table.get(arr.itemsize)
    return None if prefix is None else prefix + "Array"

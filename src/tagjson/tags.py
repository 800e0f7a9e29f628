"""
``tagjson.tags``: The wrapper vocabulary
========================================

Values that JSON cannot represent are written as *wrappers*: objects that
carry a sentinel ``"$$type"`` field naming the kind of value they hold::

  >>> wrap(Tag.NUMBER, NAN)
  {'$$type': 'Number', 'value': 'NaN'}
  >>> reference(3)
  {'$$type': 'reference', '$$id': 3}

Only the tags listed in :class:`Tag` make an object a wrapper. Caller data that
happens to use the sentinel field with any other value is ordinary data:

  >>> tag_of({"$$type": "Set", "value": []})
  <Tag.SET: 'Set'>
  >>> tag_of({"$$type": "Sandwich"}) is None
  True

"""

from __future__ import annotations

import enum
from typing import Any, Final

__all__ = (
    "Node",
    "Tag",
    "TYPE_KEY",
    "ID_KEY",
    "wrap",
    "with_id",
    "reference",
    "typed_array",
    "data_view",
    "prop_key_string",
    "prop_key_symbol",
    "is_known",
    "is_wrapper",
    "tag_of",
)

TYPE_KEY: Final = "$$type"
ID_KEY: Final = "$$id"

VALUE_KEY: Final = "value"
ARRAY_TYPE_KEY: Final = "arrayType"
BYTE_OFFSET_KEY: Final = "byteOffset"
LENGTH_KEY: Final = "length"
SOURCE_KEY: Final = "source"
FLAGS_KEY: Final = "flags"
NAME_KEY: Final = "name"
MESSAGE_KEY: Final = "message"
STACK_KEY: Final = "stack"
KEY_KEY: Final = "key"
DESCRIPTION_KEY: Final = "description"
GLOBAL_KEY: Final = "global"
PROPS_KEY: Final = "props"

#: A wire tree, as produced by the JSON parser. Wrappers are just dicts.
Node = bool | int | float | str | None | list[Any] | dict[str, Any]

NAN: Final = "NaN"
INFINITY: Final = "Infinity"
NEG_INFINITY: Final = "-Infinity"


@enum.unique
class Tag(str, enum.Enum):
    UNDEFINED = "Undefined"
    HOLE = "Hole"
    NUMBER = "Number"
    BIGINT = "BigInt"
    DATE = "Date"
    REGEXP = "RegExp"
    SET = "Set"
    MAP = "Map"
    ERROR = "Error"
    OBJECT = "object"
    ARRAY = "array"
    REFERENCE = "reference"
    PROP_KEY_STRING = "PropKeyString"
    PROP_KEY_SYMBOL = "PropKeySymbol"
    BUFFER = "Buffer"
    ARRAY_BUFFER = "ArrayBuffer"
    TYPED_ARRAY = "TypedArray"
    DATA_VIEW = "DataView"


_KNOWN: Final = {tag.value: tag for tag in Tag}

# Marks a missing ``value`` field (``None`` is a valid payload).
_ABSENT: Final[Any] = object()


def wrap(
    tag: Tag, value: Any = _ABSENT, ident: int | None = None
) -> dict[str, Any]:
    """Build a wrapper, adding the ``$$id`` field when *ident* is set."""
    res: dict[str, Any] = {TYPE_KEY: tag.value}
    if value is not _ABSENT:
        res[VALUE_KEY] = value
    if ident is not None:
        res[ID_KEY] = ident
    return res


def with_id(tag: Tag, ident: int, value: Any) -> dict[str, Any]:
    """``object`` and ``array`` wrappers: the id comes before the payload.

    >>> with_id(Tag.ARRAY, 1, [])
    {'$$type': 'array', '$$id': 1, 'value': []}
    """
    return {TYPE_KEY: tag.value, ID_KEY: ident, VALUE_KEY: value}


def reference(ident: int) -> dict[str, Any]:
    return {TYPE_KEY: Tag.REFERENCE.value, ID_KEY: ident}


def typed_array(
    name: str, payload: str, length: int, ident: int | None = None
) -> dict[str, Any]:
    res: dict[str, Any] = {
        TYPE_KEY: Tag.TYPED_ARRAY.value,
        ARRAY_TYPE_KEY: name,
        VALUE_KEY: payload,
        BYTE_OFFSET_KEY: 0,
        LENGTH_KEY: length,
    }
    if ident is not None:
        res[ID_KEY] = ident
    return res


def data_view(
    payload: str, length: int, ident: int | None = None
) -> dict[str, Any]:
    res = wrap(Tag.DATA_VIEW, payload)
    res[BYTE_OFFSET_KEY] = 0
    res[LENGTH_KEY] = length
    if ident is not None:
        res[ID_KEY] = ident
    return res


def prop_key_string(key: str) -> dict[str, Any]:
    return wrap(Tag.PROP_KEY_STRING, key)


def prop_key_symbol(is_global: bool, text: str | None) -> dict[str, Any]:
    """Wrap a symbol key.

    Global symbols are identified by their registry key, local ones only by
    their description (which is dropped when it is ``None``).
    """
    res: dict[str, Any] = {
        TYPE_KEY: Tag.PROP_KEY_SYMBOL.value,
        GLOBAL_KEY: is_global,
    }
    if is_global:
        res[KEY_KEY] = text
    elif text is not None:
        res[DESCRIPTION_KEY] = text
    return res


def is_known(tag: object) -> bool:
    """
    >>> is_known("Map"), is_known("map")
    (True, False)
    """
    return isinstance(tag, str) and tag in _KNOWN


def tag_of(node: Any) -> Tag | None:
    """The :class:`Tag` of *node* if it is a wrapper, ``None`` otherwise."""
    if type(node) is not dict:
        return None
    tag = node.get(TYPE_KEY)
    return _KNOWN[tag] if is_known(tag) else None


def is_wrapper(node: Any, tag: Tag) -> bool:
    return tag_of(node) is tag

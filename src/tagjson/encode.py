"""
``tagjson.encode``: From python values to wire trees
====================================================

:func:`encode` walks a value depth first and returns a tree made only of
:class:`dict`, :class:`list`, :class:`str`, numbers, booleans and ``None``.
Everything JSON can't express directly is replaced by a wrapper (see
:mod:`tagjson.tags`)::

  >>> encode([1.5, math.inf, JSUndefined])
  [1.5, {'$$type': 'Number', 'value': 'Infinity'}, {'$$type': 'Undefined'}]

By default a value that contains itself is an error; shared values that are
not cyclic are simply written out several times. With ``preserve_cycles``
every composite value is given an id the first time it is seen, and later
occurrences become references to that id:

  >>> a = []
  >>> encode([a, a], preserve_cycles=True)
  {'$$type': 'array', '$$id': 1, 'value': [{'$$type': 'array', '$$id': 2, \
'value': []}, {'$$type': 'reference', '$$id': 2}]}

"""

from __future__ import annotations

import array
import datetime
import math
import re
import traceback
from typing import Any, Final

from . import b64, tags
from .errors import BackingApiFailure, UnsupportedValueKind
from .hooks import Transform, offer
from .jstypes import (
    LITTLE_ENDIAN,
    REGEXP_FLAGS,
    BigInt,
    JSError,
    JSHole,
    JSMap,
    JSRegExp,
    JSSet,
    JSSymbol,
    JSUndefined,
    typed_array_name,
)
from .refs import ActiveStack, EncodeTable
from .tags import Node, Tag

__all__ = ("encode",)

#: Integers above this (in absolute value) are not exactly representable as
#: doubles and get written as ``BigInt``.
MAX_SAFE_INTEGER: Final = 2**53 - 1

# We do exact type comparisons instead of calls to `isinstance` to avoid
# running into problems with inheritance. Exceptions are the one exception.
COMPOSITE_TAGS: Final[dict[type, Tag]] = {
    list: Tag.ARRAY,
    tuple: Tag.ARRAY,
    dict: Tag.OBJECT,
    JSSet: Tag.SET,
    set: Tag.SET,
    frozenset: Tag.SET,
    JSMap: Tag.MAP,
    bytes: Tag.BUFFER,
    bytearray: Tag.ARRAY_BUFFER,
    array.array: Tag.TYPED_ARRAY,
    memoryview: Tag.DATA_VIEW,
    datetime.datetime: Tag.DATE,
    re.Pattern: Tag.REGEXP,
    JSRegExp: Tag.REGEXP,
}


def _number(f: float) -> Node:
    if math.isfinite(f):
        return f
    if math.isnan(f):
        return tags.wrap(Tag.NUMBER, tags.NAN)
    return tags.wrap(
        Tag.NUMBER, tags.INFINITY if f > 0 else tags.NEG_INFINITY
    )


def _composite_tag(v: Any) -> Tag:
    tag = COMPOSITE_TAGS.get(type(v))
    if tag is not None:
        return tag
    if isinstance(v, BaseException):
        return Tag.ERROR
    if isinstance(v, JSSymbol):
        raise UnsupportedValueKind(v, "symbol at a value position")
    if callable(v):
        raise UnsupportedValueKind(v, "function")
    raise UnsupportedValueKind(v)


def _iso_date(d: datetime.datetime) -> str:
    """
    >>> _iso_date(datetime.datetime(2024, 1, 1))
    '2024-01-01T00:00:00.000Z'
    """
    if d.tzinfo is not None:
        try:
            d = d.astimezone(datetime.timezone.utc)
        except (OverflowError, ValueError) as e:
            raise BackingApiFailure("datetime.astimezone", str(e)) from e
    timespec = "milliseconds" if d.microsecond % 1000 == 0 else "microseconds"
    return d.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


def _regexp_payload(p: re.Pattern[Any] | JSRegExp) -> dict[str, str]:
    if isinstance(p, JSRegExp):
        return {tags.SOURCE_KEY: p.source, tags.FLAGS_KEY: p.flags}
    # `re.ASCII` has no letter: javascript classes are ASCII already.
    if not isinstance(p.pattern, str) or p.flags & (re.LOCALE | re.VERBOSE):
        raise UnsupportedValueKind(p, "pattern")
    flags = "".join(
        letter for letter, flag in REGEXP_FLAGS if p.flags & flag
    )
    return {tags.SOURCE_KEY: p.pattern, tags.FLAGS_KEY: flags}


def _typed_array_bytes(arr: array.array[Any]) -> bytes:
    if LITTLE_ENDIAN:
        return arr.tobytes()
    swapped = array.array(arr.typecode, arr)
    swapped.byteswap()
    return swapped.tobytes()


def _view_bytes(view: memoryview) -> bytes:
    try:
        return view.tobytes()
    except ValueError as e:
        # Released views
        raise BackingApiFailure("memoryview.tobytes", str(e)) from e


def _error_fields(
    err: BaseException,
) -> tuple[str, str, str | None]:
    """The name, message and stack of an exception."""
    if isinstance(err, JSError):
        return err.name, err.message, err.stack
    own = vars(err)
    name = own.get(tags.NAME_KEY)
    if not isinstance(name, str):
        name = type(err).__name__
    args = err.args
    if len(args) == 1 and isinstance(args[0], str):
        message = args[0]
    else:
        message = str(err)
    stack = own.get(tags.STACK_KEY)
    if not isinstance(stack, str):
        stack = None
        if err.__traceback__ is not None:
            stack = "".join(
                traceback.format_exception(type(err), err, err.__traceback__)
            )
    return name, message, stack


def _error_keys(err: BaseException) -> list[Any]:
    """The own properties of *err*: string keys first then symbols."""
    strings = []
    symbols = []
    for key in vars(err):
        if isinstance(key, str):
            strings.append(key)
        elif isinstance(key, JSSymbol):
            symbols.append(key)
        else:
            raise UnsupportedValueKind(key, "error property key")
    return strings + symbols


def _prop_key(key: str | JSSymbol) -> Node:
    if isinstance(key, str):
        return tags.prop_key_string(key)
    registered = JSSymbol.key_for(key)
    if registered is not None:
        return tags.prop_key_symbol(True, registered)
    return tags.prop_key_symbol(False, key.description)


def encode(
    value: Any,
    *,
    transform: Transform | None = None,
    preserve_cycles: bool = False,
) -> Node:
    """Convert *value* to a tree of JSON compatible values.

    Args:
      value: The value to encode
      transform: Called on every node before it's encoded, see
        :mod:`tagjson.hooks`
      preserve_cycles: Give ids to composite values and emit references for
        values that were already seen

    Raises:
      UnsupportedValueKind: a function, a symbol, an object key that isn't a
        string or a value of a type we don't know about was found
      CircularReference: *value* contains itself and *preserve_cycles* is off
    """
    table = EncodeTable() if preserve_cycles else None
    stack = ActiveStack()

    def reduce(v: Any, apply_transform: bool = True) -> Node:
        if apply_transform and transform is not None:
            replaced, replacement = offer(transform, v)
            if replaced:
                return reduce(replacement, False)
        ty = type(v)
        if v is None or ty is bool or ty is str:
            return v  # type: ignore[no-any-return]
        if ty is float:
            return _number(v)
        if ty is int:
            if -MAX_SAFE_INTEGER <= v <= MAX_SAFE_INTEGER:
                return v  # type: ignore[no-any-return]
            return tags.wrap(Tag.BIGINT, str(v))
        if ty is BigInt:
            return tags.wrap(Tag.BIGINT, str(int(v)))
        if v is JSUndefined:
            return tags.wrap(Tag.UNDEFINED)
        if v is JSHole:
            return tags.wrap(Tag.HOLE)
        tag = _composite_tag(v)
        if table is None:
            with stack.visiting(v):
                return reduce_composite(tag, v, None)
        known = table.lookup(v)
        if known is not None:
            return tags.reference(known)
        return reduce_composite(tag, v, table.assign(v))

    def reduce_items(items: Any) -> list[Node]:
        # Holes are not values: they never go through the transform.
        return [
            tags.wrap(Tag.HOLE) if item is JSHole else reduce(item)
            for item in items
        ]

    def reduce_composite(tag: Tag, v: Any, ident: int | None) -> Node:
        match tag:
            case Tag.ARRAY:
                items = reduce_items(v)
                if ident is None:
                    return items
                return tags.with_id(Tag.ARRAY, ident, items)
            case Tag.OBJECT:
                members: dict[str, Node] = {}
                for key, member in list(v.items()):
                    if not isinstance(key, str):
                        raise UnsupportedValueKind(key, "object key")
                    members[key] = reduce(member)
                if ident is None:
                    return members
                return tags.with_id(Tag.OBJECT, ident, members)
            case Tag.BUFFER | Tag.ARRAY_BUFFER:
                return tags.wrap(tag, b64.encode(v), ident)
            case Tag.TYPED_ARRAY:
                name = typed_array_name(v)
                if name is None:
                    raise UnsupportedValueKind(v, f"{v.typecode!r} array")
                return tags.typed_array(
                    name, b64.encode(_typed_array_bytes(v)), len(v), ident
                )
            case Tag.DATA_VIEW:
                data = _view_bytes(v)
                return tags.data_view(b64.encode(data), len(data), ident)
            case Tag.DATE:
                return tags.wrap(Tag.DATE, _iso_date(v), ident)
            case Tag.REGEXP:
                return tags.wrap(Tag.REGEXP, _regexp_payload(v), ident)
            case Tag.ERROR:
                return tags.wrap(Tag.ERROR, reduce_error(v), ident)
            case Tag.SET:
                return tags.wrap(Tag.SET, [reduce(x) for x in list(v)], ident)
            case Tag.MAP:
                pairs = []
                for key, member in list(v.items()):
                    # Note that the order is important here for references...
                    ek = reduce(key)
                    ev = reduce(member)
                    pairs.append([ek, ev])
                return tags.wrap(Tag.MAP, pairs, ident)
        assert False, tag  # pragma: no cover

    def reduce_error(err: BaseException) -> dict[str, Node]:
        name, message, stack = _error_fields(err)
        payload: dict[str, Node] = {
            tags.NAME_KEY: name,
            tags.MESSAGE_KEY: message,
        }
        if stack is not None:
            payload[tags.STACK_KEY] = stack
        own = vars(err)
        payload[tags.PROPS_KEY] = [
            [_prop_key(key), reduce(own[key])] for key in _error_keys(err)
        ]
        return payload

    return reduce(value)

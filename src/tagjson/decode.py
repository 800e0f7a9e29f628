"""
``tagjson.decode``: From wire trees back to python values
=========================================================

:func:`decode` is the mirror image of :func:`~tagjson.encode`::

  >>> decode([1, {"$$type": "Number", "value": "-Infinity"}])
  [1, -inf]

Objects whose ``"$$type"`` isn't one of the known tags are left alone:

  >>> decode({"$$type": "Sandwich", "value": 1})
  {'$$type': 'Sandwich', 'value': 1}

Errors are rebuilt using the exception type registered under their name
(see :func:`register_error`); names we don't know about become
:class:`~tagjson.jstypes.JSError`:

  >>> err = decode({"$$type": "Error", "value": {"name": "RangeError",
  ...                                            "message": "too far"}})
  >>> type(err).__name__, err.name, err.message
  ('JSError', 'RangeError', 'too far')

"""

from __future__ import annotations

import array
import builtins
import datetime
import math
import typing
from typing import Any, Callable, Final, Type, TypeVar

from . import b64, tags
from .errors import (
    BackingApiFailure,
    MalformedWrapper,
    UnknownTypedArrayConstructor,
    UnsupportedValueKind,
)
from .hooks import Transform, offer
from .jstypes import (
    JS_REGEXP_FLAGS,
    LITTLE_ENDIAN,
    TYPED_ARRAY_TYPECODES,
    BigInt,
    JSError,
    JSHole,
    JSMap,
    JSRegExp,
    JSSet,
    JSSymbol,
    JSUndefined,
)
from .refs import DecodeTable
from .tags import Node, Tag

__all__ = ("decode", "register_error", "ERROR_TYPES")

E = TypeVar("E", bound=BaseException)

ErrorFactory = Callable[..., BaseException]

# Built-in exceptions that can't be created from just a message.
_NEEDS_MORE_ARGS: Final = frozenset(
    (
        "BaseExceptionGroup",
        "ExceptionGroup",
        "UnicodeDecodeError",
        "UnicodeEncodeError",
        "UnicodeTranslateError",
    )
)

#: Error name -> exception type used to rebuild it.
ERROR_TYPES: dict[str, ErrorFactory] = {
    name: obj
    for name, obj in vars(builtins).items()
    if isinstance(obj, type)
    and issubclass(obj, BaseException)
    and name not in _NEEDS_MORE_ARGS
}
ERROR_TYPES["Error"] = JSError


@typing.overload
def register_error(cls: Type[E], /) -> Type[E]:  # pragma: no cover
    ...


@typing.overload
def register_error(
    *, name: str | None = None
) -> Callable[[Type[E]], Type[E]]:  # pragma: no cover
    ...


def register_error(
    cls: Type[E] | None = None, /, *, name: str | None = None
) -> Type[E] | Callable[[Type[E]], Type[E]]:
    """Register an exception type to use when decoding errors.

    Decoded errors named *name* (by default the name of the class) are
    created by calling *cls* with their message.

    Can be used as a plain decorator::

        >>> @register_error
        ... class QuotaExceeded(Exception):
        ...     pass

        >>> @register_error(name="ERR_QUOTA")
        ... class QuotaError(Exception):
        ...     pass

    Args:
      cls: The exception type
      name: The error name to register *cls* for
    """

    def wrapper(cls: Type[E]) -> Type[E]:
        ERROR_TYPES[cls.__name__ if name is None else name] = cls
        return cls

    if cls is None:
        return wrapper
    return wrapper(cls)


def _field(tag: Tag, node: dict[str, Any], key: str, ty: type) -> Any:
    value = node.get(key)
    if not isinstance(value, ty):
        raise MalformedWrapper(
            tag.value, f"expected {ty.__name__} for {key!r}, got {value!r}"
        )
    return value


def _ident(node: dict[str, Any]) -> int | None:
    ident = node.get(tags.ID_KEY)
    if type(ident) is float and ident.is_integer():
        return int(ident)
    return ident if type(ident) is int else None


def _number(text: str) -> float:
    if text == tags.NAN:
        return math.nan
    if text == tags.INFINITY:
        return math.inf
    if text == tags.NEG_INFINITY:
        return -math.inf
    try:
        return float(text)
    except ValueError:
        raise MalformedWrapper(
            Tag.NUMBER.value, f"not a number: {text!r}"
        ) from None


def _date(text: str) -> datetime.datetime:
    """
    >>> _date("2024-01-01T00:00:00.000Z")
    datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        d = datetime.datetime.fromisoformat(iso)
    except ValueError:
        raise MalformedWrapper(
            Tag.DATE.value, f"not a date: {text!r}"
        ) from None
    if d.tzinfo is None:
        return d.replace(tzinfo=datetime.timezone.utc)
    return d.astimezone(datetime.timezone.utc)


def _regexp(payload: dict[str, Any]) -> JSRegExp:
    source = _field(Tag.REGEXP, payload, tags.SOURCE_KEY, str)
    flags = _field(Tag.REGEXP, payload, tags.FLAGS_KEY, str)
    for letter in flags:
        if letter not in JS_REGEXP_FLAGS:
            raise MalformedWrapper(
                Tag.REGEXP.value, f"unknown flag {letter!r}"
            )
    return JSRegExp(source, flags)


def _length(node: dict[str, Any], default: int) -> int:
    length = node.get(tags.LENGTH_KEY)
    return length if type(length) is int and length >= 0 else default


def _typed_array(node: dict[str, Any]) -> array.array[Any]:
    name = node.get(tags.ARRAY_TYPE_KEY)
    typecode = TYPED_ARRAY_TYPECODES.get(name) if type(name) is str else None
    if typecode is None:
        raise UnknownTypedArrayConstructor(name)
    data = b64.decode(_field(Tag.TYPED_ARRAY, node, tags.VALUE_KEY, str))
    arr = array.array(typecode)
    length = _length(node, len(data) // arr.itemsize)
    size = length * arr.itemsize
    if size > len(data):
        raise BackingApiFailure(
            name, f"{length} elements need {size} bytes, got {len(data)}"
        )
    arr.frombytes(data[:size])
    if not LITTLE_ENDIAN:
        arr.byteswap()
    return arr


def _data_view(node: dict[str, Any]) -> memoryview:
    data = bytearray(
        b64.decode(_field(Tag.DATA_VIEW, node, tags.VALUE_KEY, str))
    )
    length = _length(node, len(data))
    if length > len(data):
        raise BackingApiFailure(
            "DataView", f"{length} bytes requested, got {len(data)}"
        )
    return memoryview(data)[:length]


def _new_error(name: object, message: object) -> BaseException:
    factory = ERROR_TYPES.get(name) if isinstance(name, str) else None
    if factory is None:
        factory = JSError
    args = (message,) if isinstance(message, str) else ()
    try:
        return factory(*args)
    except Exception as e:
        raise BackingApiFailure(f"creating {name!r}", str(e)) from e


def decode(tree: Node, *, transform: Transform | None = None) -> Any:
    """Rebuild the value described by *tree*.

    Args:
      tree: A wire tree, as produced by :func:`~tagjson.encode`
      transform: Called on every node before it's decoded, see
        :mod:`tagjson.hooks`

    Raises:
      UnknownReferenceId: a reference points to an id that wasn't decoded yet
      UnknownTypedArrayConstructor: a typed array has an unknown element kind
      MalformedWrapper: a wrapper's payload doesn't have the expected shape
    """
    table = DecodeTable()

    def reduce(node: Any, apply_transform: bool = True) -> Any:
        if apply_transform and transform is not None:
            replaced, replacement = offer(transform, node)
            if replaced:
                return reduce(replacement, False)
        match node:
            case list():
                return reduce_items(node, [])
            case dict():
                tag = tags.tag_of(node)
                if tag is None:
                    return reduce_members(node, {})
                return reduce_wrapper(tag, node)
        return node

    def reduce_items(items: list[Any], out: list[Any]) -> list[Any]:
        for item in items:
            if tags.is_wrapper(item, Tag.HOLE):
                out.append(JSHole)
            else:
                out.append(reduce(item))
        return out

    def reduce_members(
        members: dict[Any, Any], out: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in members.items():
            if not isinstance(key, str):
                raise UnsupportedValueKind(key, "object key")
            out[key] = reduce(value)
        return out

    def store(ident: int | None, value: Any) -> Any:
        table.store(ident, value)
        return value

    def reduce_wrapper(tag: Tag, node: dict[str, Any]) -> Any:
        ident = _ident(node)
        match tag:
            case Tag.REFERENCE:
                return table.resolve(node.get(tags.ID_KEY))
            case Tag.UNDEFINED:
                return JSUndefined
            case Tag.HOLE:
                return JSHole
            case Tag.NUMBER:
                return _number(_field(tag, node, tags.VALUE_KEY, str))
            case Tag.BIGINT:
                text = _field(tag, node, tags.VALUE_KEY, str)
                try:
                    return store(ident, BigInt(text))
                except ValueError:
                    raise MalformedWrapper(
                        tag.value, f"not an integer: {text!r}"
                    ) from None
            case Tag.DATE:
                text = _field(tag, node, tags.VALUE_KEY, str)
                return store(ident, _date(text))
            case Tag.REGEXP:
                payload = _field(tag, node, tags.VALUE_KEY, dict)
                return store(ident, _regexp(payload))
            case Tag.OBJECT:
                payload = _field(tag, node, tags.VALUE_KEY, dict)
                return reduce_members(payload, store(ident, {}))
            case Tag.ARRAY:
                payload = _field(tag, node, tags.VALUE_KEY, list)
                return reduce_items(payload, store(ident, []))
            case Tag.PROP_KEY_STRING:
                key = node.get(tags.VALUE_KEY, JSUndefined)
                if key is not JSUndefined and not isinstance(key, str):
                    raise MalformedWrapper(tag.value, f"bad key {key!r}")
                return key
            case Tag.PROP_KEY_SYMBOL:
                if node.get(tags.GLOBAL_KEY) is True:
                    key = _field(tag, node, tags.KEY_KEY, str)
                    return JSSymbol.for_key(key)
                description = node.get(tags.DESCRIPTION_KEY)
                if not isinstance(description, str):
                    description = None
                return JSSymbol(description)
            case Tag.ERROR:
                payload = _field(tag, node, tags.VALUE_KEY, dict)
                return reduce_error(ident, payload)
            case Tag.SET:
                payload = _field(tag, node, tags.VALUE_KEY, list)
                s = store(ident, JSSet())
                for item in payload:
                    s.add(reduce(item))
                return s
            case Tag.MAP:
                payload = _field(tag, node, tags.VALUE_KEY, list)
                m = store(ident, JSMap())
                for entry in payload:
                    if not isinstance(entry, list) or len(entry) < 2:
                        raise MalformedWrapper(
                            tag.value, f"bad entry {entry!r}"
                        )
                    key = reduce(entry[0])
                    m[key] = reduce(entry[1])
                return m
            case Tag.BUFFER:
                text = _field(tag, node, tags.VALUE_KEY, str)
                return store(ident, b64.decode(text))
            case Tag.ARRAY_BUFFER:
                text = _field(tag, node, tags.VALUE_KEY, str)
                return store(ident, bytearray(b64.decode(text)))
            case Tag.TYPED_ARRAY:
                return store(ident, _typed_array(node))
            case Tag.DATA_VIEW:
                return store(ident, _data_view(node))
        assert False, tag  # pragma: no cover

    def reduce_error(ident: int | None, payload: dict[str, Any]) -> Any:
        name = payload.get(tags.NAME_KEY)
        err = store(ident, _new_error(name, payload.get(tags.MESSAGE_KEY)))
        own = vars(err)
        if isinstance(name, str):
            own[tags.NAME_KEY] = name
        stack = payload.get(tags.STACK_KEY)
        if isinstance(stack, str):
            own[tags.STACK_KEY] = stack
        props = payload.get(tags.PROPS_KEY)
        if not isinstance(props, list):
            return err
        for entry in props:
            if not isinstance(entry, list) or len(entry) < 2:
                continue
            key = reduce(entry[0])
            value = reduce(entry[1])
            if isinstance(key, (str, JSSymbol)):
                own[key] = value
        return err

    return reduce(tree)

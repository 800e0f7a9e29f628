"""
``tagjson.text``: Reading and writing JSON text
===============================================

The entry points of the library. Values are converted to wire trees by
:func:`~tagjson.encode` and the trees are printed by the standard :mod:`json`
module (and the other way around)::

  >>> import math
  >>> from tagjson import JSSet
  >>> stringify([math.nan, JSSet(["a"])])
  '[{"$$type":"Number","value":"NaN"},{"$$type":"Set","value":["a"]}]'
  >>> parse('[{"$$type":"Hole"},{"$$type":"Undefined"}]')
  [JSHole, JSUndefined]

"""

from __future__ import annotations

import json
import logging
from typing import IO, Any, TypeVar

from .decode import decode
from .encode import encode
from .hooks import Transform

__all__ = ("stringify", "parse", "dump", "load", "copy")

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _check_transform(transform: Transform | None) -> None:
    if transform is not None and not callable(transform):
        raise TypeError(
            f"transform should be callable, got {type(transform).__name__!r}"
        )


def stringify(
    value: Any,
    *,
    transform: Transform | None = None,
    preserve_cycles: bool = False,
    indent: int | None = None,
) -> str:
    """Serialise *value* to JSON text.

    Shared values can be kept shared (and cycles made possible) by passing
    ``preserve_cycles=True``:

      >>> a = {}
      >>> a["self"] = a
      >>> print(stringify(a, preserve_cycles=True, indent=1))
      {
       "$$type": "object",
       "$$id": 1,
       "value": {
        "self": {
         "$$type": "reference",
         "$$id": 1
        }
       }
      }

    Args:
      value: The value to serialise
      transform: Called on every node before it's encoded (see
        :mod:`tagjson.hooks`)
      preserve_cycles: Emit references for values that were already seen
      indent(int | None): Pretty print with that many spaces of indentation.
        The output is on one line if it is ``None``.

    Raises:
      UnsupportedValueKind:
      CircularReference:
      BackingApiFailure:
    """
    _check_transform(transform)
    tree = encode(
        value, transform=transform, preserve_cycles=preserve_cycles
    )
    separators = (",", ":") if indent is None else None
    res = json.dumps(
        tree,
        allow_nan=False,
        ensure_ascii=False,
        indent=indent,
        separators=separators,
    )
    logger.debug(
        "stringify: %d characters (preserve_cycles=%s)",
        len(res),
        preserve_cycles,
    )
    return res


def parse(text: str | bytes, *, transform: Transform | None = None) -> Any:
    """Load a value from JSON text written by :func:`stringify`.

    Unlike a javascript reviver, *transform* doesn't substitute a node by
    returning a value: it calls ``replace`` (the same convention as
    :func:`stringify`). Its return value is ignored:

      >>> def upper(node, replace):
      ...     if isinstance(node, str):
      ...         replace(node.upper())
      >>> parse('["a", {"b": "c"}]', transform=upper)
      ['A', {'b': 'C'}]

    Args:
      text: The JSON document
      transform: Called on every node before it's decoded (see
        :mod:`tagjson.hooks`)

    Raises:
      json.JSONDecodeError: *text* is not valid JSON
      UnknownReferenceId:
      UnknownTypedArrayConstructor:
      MalformedWrapper:
      BackingApiFailure:
    """
    _check_transform(transform)
    logger.debug("parse: %d characters", len(text))
    return decode(json.loads(text), transform=transform)


def dump(value: Any, fp: IO[str], **options: Any) -> None:
    """Like :func:`stringify` but writes to the text file *fp*."""
    fp.write(stringify(value, **options))


def load(fp: IO[str] | IO[bytes], **options: Any) -> Any:
    """Like :func:`parse` but reads from the file *fp*."""
    return parse(fp.read(), **options)


def copy(value: T, *, preserve_cycles: bool = True) -> T:
    """Copy a value using its representation.

    ``copy(v)`` is equivalent to ``parse(stringify(v, preserve_cycles=True))``
    without going through text.

      >>> l = [1]
      >>> c = copy([l, l])
      >>> c == [[1], [1]], c[0] is c[1], c[0] is l
      (True, True, False)
    """
    res: T = decode(encode(value, preserve_cycles=preserve_cycles))
    return res

"""
``tagjson.hooks``: Caller supplied transforms
=============================================

Both :func:`~tagjson.stringify` and :func:`~tagjson.parse` accept a
*transform*: a function called once per node, before the node is
interpreted, with the node and a ``replace`` callback. Calling ``replace``
substitutes the node; not calling it leaves the node alone (the return value
of the transform is ignored)::

  >>> import datetime, tagjson
  >>> def dates_as_text(value, replace):
  ...     if isinstance(value, datetime.date):
  ...         replace(value.isoformat())
  >>> tagjson.stringify([datetime.date(2024, 1, 2)], transform=dates_as_text)
  '["2024-01-02"]'

The substitute itself is not offered to the transform again, but its children
are.
"""

from __future__ import annotations

from typing import Any, Callable, TypeAlias

__all__ = ("Replace", "Transform", "offer")

Replace: TypeAlias = Callable[[Any], None]

Transform: TypeAlias = Callable[[Any, Replace], object]


def offer(transform: Transform, value: Any) -> tuple[bool, Any]:
    """Run *transform* on *value*.

    Returns whether a replacement was requested and what it was (the last one
    wins if ``replace`` was called several times).
    """
    replaced = False
    replacement: Any = None

    def replace(new: Any) -> None:
        nonlocal replaced, replacement
        replaced = True
        replacement = new

    transform(value, replace)
    return replaced, replacement

"""
``tagjson.b64``: Binary payloads as text
========================================

Standard base64 (``A-Z a-z 0-9 + /`` with ``=`` padding).

Decoding is lenient: it stops at the first 4 character group that contains
something other than the alphabet (or padding where padding can go) and
returns what was decoded up to that point::

  >>> encode(b"hello")
  'aGVsbG8='
  >>> decode("aGVsbG8=")
  b'hello'
  >>> decode("aGVs!!!!bG8=")
  b'hel'

"""

from __future__ import annotations

import base64
from typing import Final

__all__ = ("encode", "decode")

ALPHABET: Final = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
)
PAD: Final = "="

_INDEX: Final = {c: i for i, c in enumerate(ALPHABET)}


def encode(data: bytes | bytearray | memoryview) -> str:
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    out = bytearray()
    for start in range(0, len(text), 4):
        # A short trailing group is read as if it was padded.
        c0, c1, c2, c3 = text[start : start + 4].ljust(4, PAD)
        i0 = _INDEX.get(c0)
        i1 = _INDEX.get(c1)
        if i0 is None or i1 is None:
            break
        i2 = None if c2 == PAD else _INDEX.get(c2, -1)
        i3 = None if c3 == PAD else _INDEX.get(c3, -1)
        if i2 == -1 or i3 == -1 or (i2 is None and i3 is not None):
            break
        triple = (i0 << 18) | (i1 << 12) | ((i2 or 0) << 6) | (i3 or 0)
        out.append((triple >> 16) & 0xFF)
        if i2 is not None:
            out.append((triple >> 8) & 0xFF)
        if i3 is not None:
            out.append(triple & 0xFF)
    return bytes(out)

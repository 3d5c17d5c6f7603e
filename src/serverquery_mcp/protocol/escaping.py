"""Reserved-character escaping for ServerQuery field values.

Every value placed into a command is escaped, and every value read out
of a record is unescaped. Each reserved character maps to a two
character backslash sequence, so the mapping is a bijection.
"""

from __future__ import annotations

import re

ESCAPE_MAP: dict[str, str] = {
    "\\": "\\\\",
    "/": "\\/",
    " ": "\\s",
    "|": "\\p",
    ";": "\\;",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}

UNESCAPE_MAP: dict[str, str] = {seq: char for char, seq in ESCAPE_MAP.items()}

_ESCAPE_RE = re.compile("|".join(re.escape(char) for char in ESCAPE_MAP))
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def to_utf8(value: str | bytes) -> str:
    """Transcode a value into UTF-8 text.

    ``bytes`` are decoded as UTF-8, falling back to Latin-1 so that legacy
    single-byte input is preserved rather than rejected.
    """
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.decode("latin-1")
    return value


def escape(value: str | bytes) -> str:
    """Escape reserved characters for placement in a command."""
    return _ESCAPE_RE.sub(lambda m: ESCAPE_MAP[m.group(0)], to_utf8(value))


def unescape(value: str) -> str:
    """Reverse :func:`escape` on a value read from the wire.

    Unknown escape sequences are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        return UNESCAPE_MAP.get(match.group(0), match.group(0))

    return _UNESCAPE_RE.sub(_replace, value)

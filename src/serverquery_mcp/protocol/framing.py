"""Line framing for the ServerQuery wire grammar.

A command or reply unit is one text line::

    name key=value key=value|key=value key=value

- Cell separator (space) joins ``key=value`` cells within one record
- List separator (pipe) joins repeated records / cell groups
- Pair separator (equals) splits a cell into key and value

The line itself carries no length or terminator beyond the transport's
line convention. A reply ends with a line whose first cell is ``error``;
unsolicited notifications start with a first cell beginning ``notify``.
"""

from __future__ import annotations

import re

SEPARATOR_LINE = "\n"
SEPARATOR_LIST = "|"
SEPARATOR_CELL = " "
SEPARATOR_PAIR = "="

ERROR = "error"
EVENT = "notify"

TS3_PROTO_IDENT = "TS3"
TEA_PROTO_IDENT = "TeaSpeak"

_INT_RE = re.compile(r"-?\d+", re.ASCII)


def first_cell(line: str) -> str:
    """Return the first cell of a wire line (the command or marker token)."""
    return line.split(SEPARATOR_CELL, 1)[0]


def split_records(line: str) -> list[str]:
    """Split one wire line into its list-separated records."""
    return line.split(SEPARATOR_LIST)


def split_cells(record: str) -> list[str]:
    """Split one record into non-empty cells."""
    return [cell for cell in record.split(SEPARATOR_CELL) if cell]


def split_pair(cell: str) -> tuple[str, str | None]:
    """Split a cell into ``(key, value)``.

    A bare cell without a pair separator yields ``(key, None)``. Only the
    first separator splits, so escaped values keep any later ``=``.
    """
    if SEPARATOR_PAIR not in cell:
        return cell, None
    key, value = cell.split(SEPARATOR_PAIR, 1)
    return key, value


def is_int(value: str) -> bool:
    """True if a raw wire value is an integer literal."""
    return bool(_INT_RE.fullmatch(value))

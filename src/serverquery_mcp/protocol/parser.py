"""Parsing of reply and notification lines into records."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from ..errors import ProtocolError
from ..models.event import Event
from ..models.reply import ErrorRecord, Record, Reply
from .escaping import unescape
from .framing import (
    ERROR,
    EVENT,
    SEPARATOR_CELL,
    SEPARATOR_PAIR,
    first_cell,
    is_int,
    split_cells,
    split_pair,
    split_records,
)

# Appended to a notification payload so it decodes like a finished reply
SUCCESS_LINE = f"{ERROR} id{SEPARATOR_PAIR}0 msg{SEPARATOR_PAIR}ok"


def decode_value(value: str | None) -> Any:
    """Decode one raw field value: ints become ``int``, the rest is unescaped."""
    if value is None:
        return None
    if is_int(value):
        return int(value)
    return unescape(value)


def parse_record(record: str) -> Record:
    """Decode one record into a field mapping.

    Field names are lowercased; a repeated field keeps its last value.
    """
    result: Record = {}
    for cell in split_cells(record):
        key, value = split_pair(cell)
        result[key.lower()] = decode_value(value)
    return result


def parse_line(line: str) -> list[Record]:
    """Decode a payload line, which may hold several ``|``-separated records."""
    return [parse_record(record) for record in split_records(line) if record.strip()]


def is_error_line(line: str) -> bool:
    return first_cell(line) == ERROR


def is_event_line(line: str) -> bool:
    return first_cell(line).startswith(EVENT)


def parse_error(line: str) -> ErrorRecord:
    """Decode the terminal ``error`` line of a reply.

    Raises:
        ProtocolError: If the line is not an error line or lacks an id.
    """
    if not is_error_line(line):
        raise ProtocolError(f"invalid error line ({line})")

    fields = parse_record(line.split(SEPARATOR_CELL, 1)[1] if SEPARATOR_CELL in line else "")
    code = fields.get("id")
    if not isinstance(code, int):
        raise ProtocolError(f"invalid error line ({line})")

    message = fields.get("msg")
    extra_msg = fields.get("extra_msg")
    failed_permid = fields.get("failed_permid")
    return ErrorRecord(
        code=code,
        message="" if message is None else str(message),
        extra_msg=None if extra_msg is None else str(extra_msg),
        failed_permid=failed_permid if isinstance(failed_permid, int) else None,
    )


def parse_reply(lines: Iterable[str], command: str = "") -> Reply:
    """Assemble the lines read for one command into a :class:`Reply`.

    The last line must be the ``error`` line; lines after it are not
    expected and are rejected.

    Raises:
        ProtocolError: If no error line terminates the sequence.
    """
    records: list[Record] = []
    error: ErrorRecord | None = None

    for line in lines:
        if error is not None:
            raise ProtocolError(f"unexpected data after reply to '{command}' ({line})")
        if is_error_line(line):
            error = parse_error(line)
        elif line:
            records.extend(parse_line(line))

    if error is None:
        raise ProtocolError(f"reply to '{command}' ended without an error line")

    return Reply(command=command, records=tuple(records), error=error)


def parse_event(line: str) -> Event:
    """Decode a notification line into an :class:`Event`.

    The payload is decoded through :func:`parse_reply` with a synthetic
    success line, so notifications follow the same field rules as replies.

    Raises:
        ProtocolError: If the line is not a notification or has no payload.
    """
    if not is_event_line(line):
        raise ProtocolError("invalid notification event format")

    parts = line.split(SEPARATOR_CELL, 1)
    if len(parts) < 2 or not parts[1].strip():
        raise ProtocolError("invalid notification event data")

    type_token, payload = parts
    reply = parse_reply([payload, SUCCESS_LINE], type_token)
    return Event(type_token[len(EVENT):], reply.to_list(), payload, reply.to_dicts())

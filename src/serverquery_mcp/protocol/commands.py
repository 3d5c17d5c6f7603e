"""Command builders for the ServerQuery wire grammar.

:func:`prepare` turns a command name and its parameters into one wire
line. Parameter values are converted as follows:

- ``None`` is skipped entirely
- ``False`` / ``True`` become ``0`` / ``1``
- objects exposing ``get_id()`` (or an ``id`` attribute) become that id
- lists and tuples expand into parallel cell groups joined by ``|``
- everything else is converted with ``str`` and escaped
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..errors import ERR_COMMAND_NOT_FOUND, CommandError
from .escaping import escape
from .framing import SEPARATOR_CELL, SEPARATOR_LIST, SEPARATOR_PAIR, first_cell

DEFAULT_BLOCKED_COMMANDS: tuple[str, ...] = ("help",)


def _convert(value: Any) -> Any:
    if value is False:
        return 0
    if value is True:
        return 1
    get_id = getattr(value, "get_id", None)
    if callable(get_id):
        return get_id()
    if hasattr(value, "id") and not isinstance(value, (str, bytes, int)):
        return value.id
    return value


def _cell(ident: str, value: Any) -> str:
    value = _convert(value)
    if not isinstance(value, bytes):
        value = str(value)
    return ident + escape(value)


def prepare(name: str, params: Mapping[str, Any] | Iterable[Any] | None = None) -> str:
    """Build a wire line from a command name and its parameters.

    Args:
        name: Command name, e.g. ``"login"``.
        params: Mapping of parameter name to value, visited in order.
            Keys are lowercased. A plain iterable of values produces bare
            cells (options such as ``-uid``).

    Returns:
        The command line without a line terminator.
    """
    args: list[str] = []
    cells: dict[int, list[str]] = {}

    if params is None:
        items: Iterable[tuple[str, Any]] = ()
    elif isinstance(params, Mapping):
        items = params.items()
    else:
        items = (("", value) for value in params)

    for key, value in items:
        ident = key.lower() + SEPARATOR_PAIR if isinstance(key, str) and key else ""

        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if item is None:
                    continue
                cells.setdefault(index, []).append(_cell(ident, item))
        elif value is not None:
            args.append(_cell(ident, value))

    command = name
    if args:
        command += " " + SEPARATOR_CELL.join(args)
    if cells:
        groups = [SEPARATOR_CELL.join(cells[index]) for index in sorted(cells)]
        command += " " + SEPARATOR_LIST.join(groups)

    return command.strip()


def command_name(command: str) -> str:
    """Return the name token of a wire command."""
    return first_cell(command)


def validate_command(command: str, blocked: Iterable[str] = DEFAULT_BLOCKED_COMMANDS) -> str:
    """Reject commands that must never reach the wire.

    Raises:
        CommandError: If the command contains a line break or its name
            is on the block-list.
    """
    if "\r" in command or "\n" in command:
        raise CommandError(f"illegal characters in command '{command_name(command)}'")
    if command_name(command) in tuple(blocked):
        raise CommandError("command not found", ERR_COMMAND_NOT_FOUND)
    return command


def build_command(
    name: str,
    params: Mapping[str, Any] | Iterable[Any] | None = None,
    blocked: Iterable[str] = DEFAULT_BLOCKED_COMMANDS,
) -> str:
    """Prepare and validate a command in one step."""
    return validate_command(prepare(name, params), blocked)

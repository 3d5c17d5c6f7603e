"""Exception types raised by the ServerQuery client.

Error codes follow the server's numbering where one exists (``0x100``
command not found, ``0x602`` invalid parameter). A registry of custom
message templates lets an application reword errors by code; templates
may reference ``{code}`` and ``{mesg}``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .signals import ERROR_EXCEPTION

if TYPE_CHECKING:
    from .models.reply import Reply
    from .signals import SignalBus

ERR_OK = 0x00
ERR_COMMAND_NOT_FOUND = 0x100
ERR_INVALID_PARAMETER = 0x602

_custom_messages: dict[int, str] = {}


class ServerQueryError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, code: int = ERR_OK) -> None:
        self.code = int(code)
        self.raw_message = message
        template = _custom_messages.get(self.code)
        self.message = template.format(code=self.code, mesg=message) if template else message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code=0x{self.code:X}, message={self.message!r})"


class CommandError(ServerQueryError):
    """A command was rejected before it was sent."""


class ProtocolError(ServerQueryError):
    """The server sent something that does not follow the wire grammar."""


class UsageError(ServerQueryError):
    """An operation was called in a state that does not support it."""


class ReadOnlyError(ServerQueryError):
    """An attempt was made to modify read-only data."""


class InvalidParameterError(ServerQueryError, KeyError):
    """A requested field does not exist."""

    def __init__(self, message: str = "invalid parameter", code: int = ERR_INVALID_PARAMETER) -> None:
        super().__init__(message, code)

    def __str__(self) -> str:
        return self.message


class TransportError(ServerQueryError, ConnectionError):
    """The underlying connection failed or was closed."""


class TransferError(ServerQueryError):
    """A file transfer was rejected or moved fewer bytes than expected."""

    def __init__(
        self,
        message: str,
        code: int = ERR_OK,
        transferred: int | None = None,
        expected: int | None = None,
    ) -> None:
        super().__init__(message, code)
        self.transferred = transferred
        self.expected = expected


class ServerError(ServerQueryError):
    """The server answered a command with a non-zero error id."""

    def __init__(
        self,
        message: str,
        code: int,
        command: str = "",
        reply: Reply | None = None,
        extra_msg: str | None = None,
        failed_permid: int | None = None,
    ) -> None:
        super().__init__(message, code)
        self.command = command
        self.reply = reply
        self.extra_msg = extra_msg
        self.failed_permid = failed_permid

    def __str__(self) -> str:
        if self.failed_permid is not None:
            return f"{self.message} (failed on permission {self.failed_permid})"
        if self.extra_msg:
            return f"{self.message} ({self.extra_msg})"
        return self.message


def register_custom_message(code: int, message: str) -> None:
    """Register a message template used for errors with ``code``."""
    code = int(code)
    if code in _custom_messages:
        raise ServerQueryError(f"custom message for code 0x{code:X} is already registered")
    if not isinstance(message, str):
        raise ServerQueryError(f"custom message for code 0x{code:X} must be a string")
    _custom_messages[code] = message


def unregister_custom_message(code: int) -> None:
    """Remove the message template registered for ``code``."""
    code = int(code)
    if code not in _custom_messages:
        raise ServerQueryError(f"custom message for code 0x{code:X} is not registered")
    del _custom_messages[code]


def notify(exc: ServerQueryError, bus: SignalBus | None = None) -> ServerQueryError:
    """Emit ``errorException`` for ``exc`` on ``bus`` and return it.

    Used at raise sites so observers see every error before it
    propagates::

        raise notify(CommandError("..."), self.bus)

    An exception already reported on ``bus`` is not emitted again, so a
    transport and the engine above it may both report the same error.
    """
    if bus is not None and getattr(exc, "_reported_on", None) is not bus:
        exc._reported_on = bus
        bus.emit(ERROR_EXCEPTION, exc)
    return exc

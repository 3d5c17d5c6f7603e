"""ServerQuery connection: command/reply transactions and notifications.

Usage::

    transport = TCPTransport(TransportConfig(host="127.0.0.1", port=10011))
    with ServerQuery(transport) as query:
        query.connect()
        query.request(query.prepare("login", {
            "client_login_name": "serveradmin",
            "client_login_password": "secret",
        }))
        reply = query.request("serverlist")
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ..errors import ProtocolError, ServerQueryError, UsageError, notify
from ..models.event import Event
from ..models.reply import Reply
from ..protocol.commands import DEFAULT_BLOCKED_COMMANDS, prepare, validate_command
from ..protocol.framing import TEA_PROTO_IDENT, TS3_PROTO_IDENT
from ..protocol.parser import is_error_line, is_event_line, parse_event, parse_reply
from ..signals import (
    COMMAND_FINISHED,
    COMMAND_STARTED,
    NOTIFY_EVENT,
    SERVERQUERY_CONNECTED,
    SignalBus,
    notify_signal,
)
from ..transport.base import AbstractTransport

logger = logging.getLogger(__name__)

DEFAULT_QUERY_PORT = 10011


class ServerQuery:
    """Drives one ServerQuery connection.

    Every call blocks the calling thread. The instance is not safe for use
    from several threads at once.

    Args:
        transport: Line transport to the server.
        bus: Signal bus for lifecycle and notification signals. A private
            bus is created if omitted.
        blocked: Command names rejected before any I/O.
        proto_idents: Accepted prefixes of the server's greeting line.
    """

    def __init__(
        self,
        transport: AbstractTransport,
        bus: SignalBus | None = None,
        blocked: Iterable[str] = DEFAULT_BLOCKED_COMMANDS,
        proto_idents: Iterable[str] = (TS3_PROTO_IDENT, TEA_PROTO_IDENT),
    ) -> None:
        self.transport = transport
        self.bus = bus if bus is not None else SignalBus()
        self.blocked = tuple(blocked)
        self.proto_idents = tuple(proto_idents)
        self._count = 0
        self._timer: float | None = None
        self._runtime = 0.0

    def __enter__(self) -> ServerQuery:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    @property
    def query_count(self) -> int:
        """Number of commands sent on this connection."""
        return self._count

    @property
    def last_timestamp(self) -> float | None:
        """Wall-clock time of the most recent command."""
        return self._timer

    @property
    def query_runtime(self) -> float:
        """Seconds spent waiting for replies, summed over all commands."""
        return self._runtime

    @property
    def transport_host(self) -> str:
        return self.transport.get_config("host", "0.0.0.0")

    @property
    def transport_port(self) -> int:
        return self.transport.get_config("port", 0)

    def connect(self, skip_welcome: bool = True) -> str:
        """Connect the transport and check the server greeting.

        Args:
            skip_welcome: Also consume the welcome text line that follows
                the protocol identifier.

        Returns:
            The protocol identifier line.

        Raises:
            ProtocolError: If the greeting does not start with a known
                protocol identifier.
        """
        with self._reporting():
            self.transport.connect()
            ready = self.transport.read_line()
        if not ready or not ready.startswith(self.proto_idents):
            raise notify(ProtocolError(f"invalid reply from the server ({ready})"), self.bus)

        if skip_welcome:
            with self._reporting():
                self.transport.read_line()

        logger.info("ServerQuery ready on %s:%s", self.transport_host, self.transport_port)
        self.bus.emit(SERVERQUERY_CONNECTED, self)
        return ready

    def close(self) -> None:
        """Send ``quit`` if still connected, then disconnect.

        Failures while quitting are ignored.
        """
        if not self.transport.is_connected():
            return
        try:
            self.request("quit")
        except Exception as e:
            logger.debug("Ignoring error while sending quit: %s", e)
        finally:
            self.transport.disconnect()

    def prepare(self, name: str, params: Mapping[str, Any] | Iterable[Any] | None = None) -> str:
        """Build a wire command from a name and parameters."""
        return prepare(name, params)

    def request(self, command: str, throw_on_error: bool = True) -> Reply:
        """Send a prepared command and read its reply.

        Args:
            command: A wire command, usually from :meth:`prepare`.
            throw_on_error: Raise :class:`ServerError` for a non-zero error
                id. With ``False`` the reply is returned for inspection.

        Raises:
            CommandError: If the command is rejected before sending.
            ProtocolError: If the reply stream ends without an error line.
            ServerError: If the server reports an error and ``throw_on_error``
                is set.
        """
        try:
            validate_command(command, self.blocked)
        except ServerQueryError as e:
            raise notify(e, self.bus) from None

        self.bus.emit(COMMAND_STARTED, command)

        started = time.perf_counter()
        with self._reporting():
            self.transport.send_line(command)
        self._timer = time.time()
        self._count += 1

        lines: list[str] = []
        events: list[Event] = []
        while True:
            with self._reporting():
                line = self.transport.read_line()
            if line is None:
                raise notify(
                    ProtocolError(f"connection closed while awaiting reply to '{command}'"),
                    self.bus,
                )
            if is_event_line(line):
                # Interleaved notification; delivered once the reply is complete
                try:
                    events.append(parse_event(line))
                except ServerQueryError as e:
                    logger.warning("Skipping malformed notification during '%s': %s", command, e)
                    notify(e, self.bus)
                continue
            lines.append(line)
            if is_error_line(line):
                break

        self._runtime += time.perf_counter() - started

        for event in events:
            self._emit_event(event)

        try:
            reply = parse_reply(lines, command)
        except ServerQueryError as e:
            raise notify(e, self.bus) from None

        logger.debug("%s -> %d record(s), error %d", command, len(reply), reply.error.code)
        self.bus.emit(COMMAND_FINISHED, command, reply)

        if throw_on_error and not reply.ok:
            try:
                reply.raise_for_error()
            except ServerQueryError as e:
                raise notify(e, self.bus) from None

        return reply

    def execute(
        self,
        name: str,
        params: Mapping[str, Any] | Iterable[Any] | None = None,
        throw_on_error: bool = True,
    ) -> Reply:
        """Prepare and send a command in one step."""
        return self.request(self.prepare(name, params), throw_on_error)

    def wait_for_event(self) -> Event:
        """Block until the server sends a notification and return it.

        Lines that are not notifications are discarded.

        Raises:
            UsageError: If the transport is in blocking mode.
        """
        if self.transport.get_config("blocking", True):
            raise notify(UsageError("only available in non-blocking mode"), self.bus)

        while True:
            with self._reporting():
                line = self.transport.read_line()
            if line is None:
                raise notify(ProtocolError("connection closed while waiting for events"), self.bus)
            if is_event_line(line):
                with self._reporting():
                    event = parse_event(line)
                return self._emit_event(event)
            logger.debug("Discarding non-notification line: %s", line)

    def _emit_event(self, event: Event) -> Event:
        self.bus.emit(NOTIFY_EVENT, event, self)
        self.bus.emit(notify_signal(event.type), event, self)
        return event

    @contextmanager
    def _reporting(self) -> Iterator[None]:
        """Emit ``errorException`` for library errors raised in the block."""
        try:
            yield
        except ServerQueryError as e:
            raise notify(e, self.bus)

"""TCP socket transport for ServerQuery and file transfer connections.

Usage::

    transport = TCPTransport(TransportConfig(host="127.0.0.1", port=10011))
    transport.connect()
    transport.send_line("version")
    line = transport.read_line()
    transport.disconnect()
"""

from __future__ import annotations

import logging
import select
import socket
import time
from typing import BinaryIO

from ..errors import TransportError, notify
from ..protocol.framing import SEPARATOR_LINE
from ..signals import SignalBus
from .base import AbstractTransport, TransportConfig

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class TCPTransport(AbstractTransport):
    """Plain TCP implementation of :class:`AbstractTransport`.

    Args:
        config: Host, port, timeout and blocking mode.
        bus: Optional bus receiving raw I/O trace signals.
        signal_prefix: Prefix of the emitted signal names, e.g.
            ``serverquery`` gives ``serverqueryDataRead``.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        bus: SignalBus | None = None,
        signal_prefix: str = "serverquery",
    ) -> None:
        super().__init__(config)
        self.bus = bus
        self.signal_prefix = signal_prefix
        self._sock: socket.socket | None = None
        self._stream: BinaryIO | None = None
        self._buffer = b""

    def _emit(self, name: str, *args) -> None:
        if self.bus is not None:
            self.bus.emit(self.signal_prefix + name, *args)

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise notify(TransportError("not connected"), self.bus)
        return self._sock

    def connect(self) -> None:
        if self._sock is not None:
            return

        address = (self.config.host, int(self.config.port))
        try:
            sock = socket.create_connection(address, timeout=self.config.timeout)
        except OSError as e:
            raise notify(
                TransportError(f"failed to connect to {address[0]}:{address[1]} ({e})"),
                self.bus,
            ) from e

        sock.settimeout(None if self.config.blocking else self.config.timeout)
        self._sock = sock
        self._buffer = b""
        logger.info("Connected to %s:%d", address[0], address[1])

    def disconnect(self) -> None:
        if self._sock is None:
            return

        try:
            if self._stream is not None:
                self._stream.close()
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        finally:
            self._sock = None
            self._stream = None
            self._buffer = b""
            logger.info("Disconnected from %s:%s", self.config.host, self.config.port)
            self._emit("Disconnected")

    def is_connected(self) -> bool:
        return self._sock is not None

    def _wait_readable(self, sock: socket.socket) -> None:
        """Poll until data is available, emitting ``WaitTimeout`` while idle."""
        started = time.monotonic()
        while True:
            readable, _, _ = select.select([sock], [], [], self.config.timeout)
            if readable:
                return
            self._emit("WaitTimeout", int(time.monotonic() - started), self)

    def _recv(self, size: int) -> bytes:
        sock = self._require_socket()
        if not self.config.blocking:
            self._wait_readable(sock)
        try:
            return sock.recv(size)
        except OSError as e:
            self.disconnect()
            raise notify(TransportError(f"connection to server lost ({e})"), self.bus) from e

    def read_line(self) -> str:
        while SEPARATOR_LINE.encode() not in self._buffer:
            data = self._recv(READ_CHUNK_SIZE)
            if not data:
                self.disconnect()
                raise notify(TransportError("connection to server lost"), self.bus)
            self._buffer += data

        raw, self._buffer = self._buffer.split(SEPARATOR_LINE.encode(), 1)
        line = raw.decode(self.config.encoding, errors="replace").strip("\r\n")
        logger.debug("<< %s", line)
        self._emit("DataRead", line)
        return line

    def read(self, size: int) -> bytes:
        if self._buffer:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        else:
            data = self._recv(size)
        self._emit("DataRead", data)
        return data

    def send_line(self, line: str) -> None:
        logger.debug(">> %s", line)
        self.send(line + SEPARATOR_LINE)

    def send(self, data: bytes | str) -> int:
        sock = self._require_socket()
        if isinstance(data, str):
            data = data.encode(self.config.encoding)
        try:
            sock.sendall(data)
        except OSError as e:
            self.disconnect()
            raise notify(TransportError(f"connection to server lost ({e})"), self.bus) from e
        self._emit("DataSend", data)
        return len(data)

    def get_stream(self) -> BinaryIO:
        if self._stream is None:
            self._stream = self._require_socket().makefile("rb")
        return self._stream

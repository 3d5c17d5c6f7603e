"""File transfer connection: key handshake and chunked streaming.

The file transfer port carries no command grammar. The client sends the
transfer key obtained over ServerQuery (``ftinitupload`` /
``ftinitdownload``) and then streams raw file bytes in either direction.

Usage::

    transport = TCPTransport(TransportConfig(host="127.0.0.1", port=30033))
    with FileTransfer(transport) as ft:
        ft.connect()
        ft.upload(key, 0, data)
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, BinaryIO

from ..errors import ServerQueryError, TransferError, notify
from ..signals import (
    DOWNLOAD_FINISHED,
    DOWNLOAD_PROGRESS,
    DOWNLOAD_STARTED,
    FILETRANSFER_CONNECTED,
    FILETRANSFER_HANDSHAKE,
    UPLOAD_FINISHED,
    UPLOAD_PROGRESS,
    UPLOAD_STARTED,
    SignalBus,
)
from ..transport.base import AbstractTransport

logger = logging.getLogger(__name__)

DEFAULT_FILETRANSFER_PORT = 30033
CHUNK_SIZE = 4096
KEY_LENGTHS = (16, 32)


class FileTransfer:
    """Drives one file transfer connection.

    Args:
        transport: Raw byte transport to the file transfer port.
        bus: Signal bus for handshake and progress signals. A private bus
            is created if omitted.
    """

    def __init__(self, transport: AbstractTransport, bus: SignalBus | None = None) -> None:
        self.transport = transport
        self.bus = bus if bus is not None else SignalBus()
        self._started: float | None = None
        self._runtime = 0.0

    def __enter__(self) -> FileTransfer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    @property
    def runtime(self) -> float:
        """Seconds spent transferring, summed over all transfers."""
        return self._runtime

    def connect(self) -> None:
        with self._reporting():
            self.transport.connect()
        self.bus.emit(FILETRANSFER_CONNECTED, self)

    def close(self) -> None:
        """Stop timing and disconnect the transport if still connected."""
        self._stop_timer()
        if self.transport.is_connected():
            self.transport.disconnect()

    @contextmanager
    def _reporting(self) -> Iterator[None]:
        try:
            yield
        except ServerQueryError as e:
            raise notify(e, self.bus)

    def _stop_timer(self) -> None:
        if self._started is not None:
            self._runtime += time.perf_counter() - self._started
            self._started = None

    def handshake(self, key: str) -> None:
        """Send the transfer key that authorizes this session.

        Raises:
            TransferError: If the key is not 16 or 32 characters long.
        """
        if len(key) not in KEY_LENGTHS:
            raise notify(TransferError("invalid file transfer key format"), self.bus)

        self._started = time.perf_counter()
        with self._reporting():
            self.transport.send(key)
        logger.debug("File transfer handshake sent for key %s", key)
        self.bus.emit(FILETRANSFER_HANDSHAKE, self)

    def upload(self, key: str, offset: int, data: bytes) -> int:
        """Send ``data`` to the server, resuming at byte ``offset``.

        Data goes out in chunks of :data:`CHUNK_SIZE`; the cursor starts at
        ``offset`` and the transfer is complete at ``offset + len(data)``.

        Returns:
            The final cursor position.

        Raises:
            TransferError: If the transport accepted fewer bytes than given.
        """
        self.handshake(key)

        offset = int(offset)
        size = offset + len(data)
        seek = offset

        self.bus.emit(UPLOAD_STARTED, key, seek, size)

        while seek < size:
            start = seek - offset
            with self._reporting():
                sent = self.transport.send(data[start : start + CHUNK_SIZE])
            if not sent:
                break
            seek += sent
            self.bus.emit(UPLOAD_PROGRESS, key, seek, size)

        self._stop_timer()
        self.bus.emit(UPLOAD_FINISHED, key, seek, size)

        if seek < size:
            raise notify(
                TransferError(
                    f"incomplete file upload ({seek} of {size} bytes)",
                    transferred=seek,
                    expected=size,
                ),
                self.bus,
            )

        logger.info("Uploaded %d bytes for key %s", size - offset, key)
        return seek

    def download(
        self,
        key: str,
        size: int,
        passthrough: bool = False,
        sink: BinaryIO | None = None,
    ) -> bytes | int:
        """Receive ``size`` bytes from the server.

        Args:
            key: Transfer key from ``ftinitdownload``.
            size: Expected file size in bytes.
            passthrough: Copy the incoming stream straight to ``sink``
                (stdout by default) instead of buffering it.
            sink: Binary file object written to in passthrough mode.

        Returns:
            The file contents, or the number of bytes written in
            passthrough mode.

        Raises:
            TransferError: If fewer than ``size`` bytes arrived.
        """
        self.handshake(key)
        size = int(size)

        if passthrough:
            return self._passthrough(key, size, sink if sink is not None else sys.stdout.buffer)

        buffer = bytearray()

        self.bus.emit(DOWNLOAD_STARTED, key, len(buffer), size)

        while len(buffer) < size:
            with self._reporting():
                chunk = self.transport.read(min(CHUNK_SIZE, size - len(buffer)))
            if not chunk:
                break
            buffer += chunk
            self.bus.emit(DOWNLOAD_PROGRESS, key, len(buffer), size)

        self._stop_timer()
        self.bus.emit(DOWNLOAD_FINISHED, key, len(buffer), size)

        if len(buffer) != size:
            raise notify(
                TransferError(
                    f"incomplete file download ({len(buffer)} of {size} bytes)",
                    transferred=len(buffer),
                    expected=size,
                ),
                self.bus,
            )

        logger.info("Downloaded %d bytes for key %s", size, key)
        return bytes(buffer)

    def _passthrough(self, key: str, size: int, sink: BinaryIO) -> int:
        stream = self.transport.get_stream()
        written = 0

        self.bus.emit(DOWNLOAD_STARTED, key, written, size)

        while written < size:
            chunk = stream.read(min(CHUNK_SIZE, size - written))
            if not chunk:
                break
            sink.write(chunk)
            written += len(chunk)
            self.bus.emit(DOWNLOAD_PROGRESS, key, written, size)

        sink.flush()
        self._stop_timer()
        self.bus.emit(DOWNLOAD_FINISHED, key, written, size)

        if written != size:
            raise notify(
                TransferError(
                    f"incomplete file download ({written} of {size} bytes)",
                    transferred=written,
                    expected=size,
                ),
                self.bus,
            )
        return written

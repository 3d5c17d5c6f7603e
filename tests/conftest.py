"""Shared pytest fixtures: a scripted transport and an isolated signal bus."""

from __future__ import annotations

import io

import pytest

from serverquery_mcp.signals import SignalBus
from serverquery_mcp.transport.base import AbstractTransport, TransportConfig


class ScriptedTransport(AbstractTransport):
    """Transport double that replays scripted lines and records traffic.

    ``lines`` are returned by ``read_line`` in order (``None`` once
    exhausted), ``data`` backs ``read`` and ``get_stream``, and
    ``send_limit`` caps how many payload bytes ``send`` accepts in total.
    """

    def __init__(
        self,
        lines: list[str] | None = None,
        data: bytes = b"",
        send_limit: int | None = None,
        blocking: bool = True,
    ) -> None:
        super().__init__(TransportConfig(host="10.0.0.1", port=10011, blocking=blocking))
        self.lines = list(lines or [])
        self.stream = io.BytesIO(data)
        self.send_limit = send_limit
        self.sent_lines: list[str] = []
        self.sent: list[bytes | str] = []
        self.sent_bytes = 0
        self.calls: list[str] = []
        self.connected = False

    def connect(self) -> None:
        self.calls.append("connect")
        self.connected = True

    def disconnect(self) -> None:
        self.calls.append("disconnect")
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def read_line(self) -> str | None:
        self.calls.append("read_line")
        return self.lines.pop(0) if self.lines else None

    def read(self, size: int) -> bytes:
        self.calls.append("read")
        return self.stream.read(size)

    def send_line(self, line: str) -> None:
        self.calls.append("send_line")
        self.sent_lines.append(line)

    def send(self, data: bytes | str) -> int:
        self.calls.append("send")
        if isinstance(data, str):
            self.sent.append(data)
            return len(data)
        accepted = len(data)
        if self.send_limit is not None:
            accepted = max(0, min(accepted, self.send_limit - self.sent_bytes))
        if accepted:
            self.sent.append(data[:accepted])
        self.sent_bytes += accepted
        return accepted

    def get_stream(self):
        self.calls.append("get_stream")
        return self.stream


@pytest.fixture
def bus():
    return SignalBus()


@pytest.fixture
def make_transport():
    """Factory for scripted transports."""
    return ScriptedTransport

"""Transport abstraction.

The protocol engines talk to the server only through this interface,
so a socket, a TLS wrapper, or a scripted test double can be swapped
in without touching them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, BinaryIO

DEFAULT_TIMEOUT = 10.0


@dataclass
class TransportConfig:
    """Connection settings for a transport."""

    host: str = "127.0.0.1"
    port: int = 0
    timeout: float = DEFAULT_TIMEOUT
    # In non-blocking mode reads poll with ``timeout`` instead of waiting forever
    blocking: bool = True
    encoding: str = "utf-8"


class AbstractTransport(ABC):
    """Byte/line stream used by the protocol engines."""

    def __init__(self, config: TransportConfig | None = None) -> None:
        self.config = config or TransportConfig()

    def get_config(self, key: str, default: Any = None) -> Any:
        """Return one configuration value, or ``default`` if unset."""
        value = asdict(self.config).get(key)
        return default if value is None else value

    @abstractmethod
    def connect(self) -> None:
        """Open the connection."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection; a no-op if already closed."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def read_line(self) -> str:
        """Read one line without its terminator."""
        ...

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; an empty result means end of stream."""
        ...

    @abstractmethod
    def send_line(self, line: str) -> None:
        """Send ``line`` followed by the line terminator."""
        ...

    @abstractmethod
    def send(self, data: bytes | str) -> int:
        """Send raw data and return the number of bytes accepted."""
        ...

    @abstractmethod
    def get_stream(self) -> BinaryIO:
        """Return a readable binary stream over the connection."""
        ...

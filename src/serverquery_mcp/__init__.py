"""ServerQuery client engine with an MCP tool surface."""

from .adapters import FileTransfer, ServerQuery
from .errors import (
    CommandError,
    ProtocolError,
    ServerError,
    ServerQueryError,
    TransferError,
    TransportError,
    UsageError,
)
from .models import ErrorRecord, Event, Reply
from .signals import SignalBus
from .transport import AbstractTransport, TCPTransport, TransportConfig

__version__ = "0.1.0"

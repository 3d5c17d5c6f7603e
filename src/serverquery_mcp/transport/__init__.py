"""Transport layer: the connection contract and its TCP implementation."""

from .base import AbstractTransport, TransportConfig
from .tcp_connection import TCPTransport

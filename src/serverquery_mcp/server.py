"""MCP server entry point for ServerQuery administration.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport. This module owns the
process-wide signal bus shared by every connection it opens.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from .adapters.filetransfer import DEFAULT_FILETRANSFER_PORT, FileTransfer
from .adapters.serverquery import DEFAULT_QUERY_PORT, ServerQuery
from .errors import ServerQueryError
from .models.event import Event
from .signals import COMMAND_FINISHED, ERROR_EXCEPTION, NOTIFY_EVENT, SignalBus
from .transport.base import DEFAULT_TIMEOUT, TransportConfig
from .transport.tcp_connection import TCPTransport

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "serverquery",
    instructions="MCP server for ServerQuery administration and file transfer",
)

# Global connection state
_bus: SignalBus | None = None
_query: ServerQuery | None = None
_recent_events: deque[dict[str, Any]] = deque(maxlen=50)
_recent_errors: deque[str] = deque(maxlen=20)


def _record_event(event: Event, connection: Any = None) -> None:
    _recent_events.append({"type": event.type, "data": event.data})


def _record_error(exc: Exception) -> None:
    _recent_errors.append(str(exc))


def _log_command(command: str, reply: Any) -> None:
    logger.debug("Command finished: %s (%r)", command.split(" ", 1)[0], reply)


def get_bus() -> SignalBus:
    """Return the process-wide signal bus, creating it on first use."""
    global _bus
    if _bus is None:
        _bus = SignalBus()
        _bus.subscribe(NOTIFY_EVENT, _record_event)
        _bus.subscribe(ERROR_EXCEPTION, _record_error)
        _bus.subscribe(COMMAND_FINISHED, _log_command)
    return _bus


def _get_connection() -> ServerQuery:
    """Get the active ServerQuery connection, raising if not connected."""
    if _query is None or not _query.transport.is_connected():
        raise RuntimeError(
            "Not connected to a server. Use the 'connect' tool first."
        )
    return _query


def _reply_to_dict(reply: Any) -> dict[str, Any]:
    return {
        "command": reply.command.split(" ", 1)[0],
        "records": reply.to_dicts(),
        "error": reply.error.to_dict(),
    }


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str = "127.0.0.1",
    port: int = DEFAULT_QUERY_PORT,
    blocking: bool = True,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Open a ServerQuery connection and check the server greeting.

    Args:
        host: Server address.
        port: ServerQuery port (default 10011).
        blocking: Use blocking reads. Set to False to allow wait_for_event.
        timeout: Connect timeout, and the poll interval in non-blocking mode.
    """
    global _query
    if _query is not None and _query.transport.is_connected():
        return {
            "connected": True,
            "message": "Already connected",
            "host": _query.transport_host,
            "port": _query.transport_port,
        }

    config = TransportConfig(host=host, port=port, timeout=timeout, blocking=blocking)
    transport = TCPTransport(config, bus=get_bus(), signal_prefix="serverquery")
    query = ServerQuery(transport, bus=get_bus())
    ident = query.connect()
    _query = query

    return {"connected": True, "host": host, "port": port, "protocol": ident}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Send quit and close the ServerQuery connection."""
    global _query
    if _query is None:
        return {"disconnected": True}
    _query.close()
    _query = None
    return {"disconnected": True}


# ─── COMMAND TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def send_command(
    command: str,
    params: dict[str, Any] | None = None,
    options: list[str] | None = None,
    throw_on_error: bool = False,
) -> dict[str, Any]:
    """Send one ServerQuery command and return its decoded reply.

    Args:
        command: Command name, e.g. "serverlist" or "clientlist".
        params: Parameter name to value. List values are sent as
            repeated cell groups.
        options: Bare option flags such as "-uid" or "-away".
        throw_on_error: Report a non-zero server error as a tool error
            instead of returning it in the reply.
    """
    query = _get_connection()
    line = query.prepare(command, params)
    if options:
        line = " ".join([line, *options])
    try:
        reply = query.request(line, throw_on_error=throw_on_error)
    except ServerQueryError as e:
        return {"error": str(e), "code": e.code}
    return _reply_to_dict(reply)


@mcp.tool()
def get_query_stats() -> dict[str, Any]:
    """Report command count, last command time, and total query runtime."""
    query = _get_connection()
    return {
        "query_count": query.query_count,
        "last_timestamp": query.last_timestamp,
        "query_runtime": round(query.query_runtime, 6),
    }


@mcp.tool()
def wait_for_event() -> dict[str, Any]:
    """Block until the server sends a notification and return it.

    Requires a connection opened with blocking=False and a prior
    servernotifyregister command.
    """
    query = _get_connection()
    try:
        event = query.wait_for_event()
    except ServerQueryError as e:
        return {"error": str(e), "code": e.code}
    return {
        "type": event.type,
        "data": event.data,
        "records": list(event.records),
        "message": event.message,
    }


# ─── FILE TRANSFER TOOLS ──────────────────────────────────────────────

def _open_transfer(host: str, port: int) -> FileTransfer:
    transport = TCPTransport(
        TransportConfig(host=host, port=port), bus=get_bus(), signal_prefix="filetransfer"
    )
    ft = FileTransfer(transport, bus=get_bus())
    ft.connect()
    return ft


@mcp.tool()
def upload_file(
    key: str,
    file_path: str,
    offset: int = 0,
    host: str = "127.0.0.1",
    port: int = DEFAULT_FILETRANSFER_PORT,
) -> dict[str, Any]:
    """Upload a local file using a key from ftinitupload.

    Args:
        key: File transfer key returned by ftinitupload.
        file_path: Local file to send.
        offset: Resume position; bytes before it are not sent.
        host: File transfer server address.
        port: File transfer port (default 30033).
    """
    path = Path(file_path)
    if not path.is_file():
        return {"error": f"File not found: {file_path}"}
    data = path.read_bytes()[offset:]

    with _open_transfer(host, port) as ft:
        try:
            cursor = ft.upload(key, offset, data)
        except ServerQueryError as e:
            return {"error": str(e), "code": e.code}
        return {"uploaded": True, "bytes": cursor, "runtime": round(ft.runtime, 6)}


@mcp.tool()
def download_file(
    key: str,
    size: int,
    output_path: str,
    host: str = "127.0.0.1",
    port: int = DEFAULT_FILETRANSFER_PORT,
) -> dict[str, Any]:
    """Download a file using a key from ftinitdownload.

    Args:
        key: File transfer key returned by ftinitdownload.
        size: File size reported by ftinitdownload.
        output_path: Where to write the file.
        host: File transfer server address.
        port: File transfer port (default 30033).
    """
    with _open_transfer(host, port) as ft:
        try:
            data = ft.download(key, size)
        except ServerQueryError as e:
            return {"error": str(e), "code": e.code}
        path = Path(output_path)
        path.write_bytes(data)
        return {"downloaded": True, "bytes": len(data), "path": str(path)}


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("serverquery://connection/status")
def resource_connection_status() -> str:
    """Current connection state, counters, and recent notifications."""
    status: dict[str, Any] = {
        "connected": _query is not None and _query.transport.is_connected(),
        "recent_events": list(_recent_events),
        "recent_errors": list(_recent_errors),
    }
    if _query is not None:
        status.update(
            host=_query.transport_host,
            port=_query.transport_port,
            query_count=_query.query_count,
        )
    return json.dumps(status, indent=2)


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

"""Publish/subscribe signal bus.

Components receive a :class:`SignalBus` instance and emit named signals
on it (connection lifecycle, command start/finish, notifications,
transfer progress, raw I/O, errors). Consumers subscribe callbacks to
the signal names they care about.

Usage::

    bus = SignalBus()
    handler = bus.subscribe(COMMAND_FINISHED, on_finished)
    bus.emit(COMMAND_FINISHED, "serverlist", reply)
    bus.unsubscribe(COMMAND_FINISHED, handler)

The bus does no locking. Handlers run synchronously in subscription
order, and a handler that subscribes or unsubscribes while a signal is
being emitted affects only later emissions.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

SERVERQUERY_CONNECTED = "serverqueryConnected"
SERVERQUERY_DISCONNECTED = "serverqueryDisconnected"
COMMAND_STARTED = "serverqueryCommandStarted"
COMMAND_FINISHED = "serverqueryCommandFinished"
NOTIFY_EVENT = "notifyEvent"

FILETRANSFER_CONNECTED = "filetransferConnected"
FILETRANSFER_DISCONNECTED = "filetransferDisconnected"
FILETRANSFER_HANDSHAKE = "filetransferHandshake"
UPLOAD_STARTED = "filetransferUploadStarted"
UPLOAD_PROGRESS = "filetransferUploadProgress"
UPLOAD_FINISHED = "filetransferUploadFinished"
DOWNLOAD_STARTED = "filetransferDownloadStarted"
DOWNLOAD_PROGRESS = "filetransferDownloadProgress"
DOWNLOAD_FINISHED = "filetransferDownloadFinished"

ERROR_EXCEPTION = "errorException"


def notify_signal(event_type: str) -> str:
    """Name of the type-specific signal for a notification type.

    ``cliententerview`` maps to ``notifyCliententerview``.
    """
    return "notify" + event_type[:1].upper() + event_type[1:]


@dataclass(frozen=True)
class SignalHandler:
    """Subscription token returned by :meth:`SignalBus.subscribe`.

    Equality is structural on ``(signal, token)``; the callback does not
    take part in comparison or hashing.
    """

    signal: str
    token: int
    callback: Callable[..., Any] = field(compare=False, repr=False)

    def __call__(self, *args: Any) -> Any:
        return self.callback(*args)


class SignalBus:
    """Registry of signal handlers."""

    def __init__(self) -> None:
        self._slots: dict[str, list[SignalHandler]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, signal: str, callback: Callable[..., Any]) -> SignalHandler:
        """Subscribe ``callback`` to ``signal``.

        Subscribing a callback that is already subscribed to the same
        signal returns the existing handler, so it is delivered once.
        """
        if not callable(callback):
            raise TypeError(f"invalid callback specified: {callback!r}")

        handlers = self._slots.setdefault(signal, [])
        for handler in handlers:
            if handler.callback == callback:
                return handler

        handler = SignalHandler(signal=signal, token=next(self._tokens), callback=callback)
        handlers.append(handler)
        return handler

    def unsubscribe(self, signal: str, handler: SignalHandler | None = None) -> None:
        """Remove one handler from ``signal``, or all of them if none given."""
        if not self.has_handlers(signal):
            return

        if handler is None:
            del self._slots[signal]
            return

        remaining = [h for h in self._slots[signal] if h != handler]
        if remaining:
            self._slots[signal] = remaining
        else:
            del self._slots[signal]

    def emit(self, signal: str, *args: Any) -> Any:
        """Deliver ``args`` to every handler of ``signal``.

        All handlers are called in subscription order; only the last
        handler's return value is returned (``None`` if there are no
        handlers). Use :meth:`emit_all` to collect every result.
        """
        result = None
        for handler in self.get_handlers(signal):
            result = handler(*args)
        return result

    def emit_all(self, signal: str, *args: Any) -> list[Any]:
        """Deliver ``args`` like :meth:`emit` and return every result."""
        return [handler(*args) for handler in self.get_handlers(signal)]

    def has_handlers(self, signal: str) -> bool:
        return bool(self._slots.get(signal))

    def get_handlers(self, signal: str) -> list[SignalHandler]:
        return list(self._slots.get(signal, ()))

    def get_signals(self) -> list[str]:
        return list(self._slots)

    def clear_handlers(self, signal: str) -> None:
        self._slots.pop(signal, None)

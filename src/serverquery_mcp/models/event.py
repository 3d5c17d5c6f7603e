"""Notification event model."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ..errors import InvalidParameterError, ReadOnlyError


class Event(Mapping[str, Any]):
    """An unsolicited server notification.

    Behaves as an immutable mapping over the decoded notification fields.
    Looking up a missing field raises :class:`InvalidParameterError`
    (which is also a ``KeyError``); any write raises
    :class:`ReadOnlyError`.

    A notification may batch several records separated by ``|``; the
    mapping covers the first one and :attr:`records` holds all of them.
    """

    __slots__ = ("_type", "_data", "_message", "_records")

    def __init__(
        self,
        event_type: str,
        data: Mapping[str, Any],
        message: str,
        records: Iterable[Mapping[str, Any]] | None = None,
    ) -> None:
        object.__setattr__(self, "_type", event_type)
        object.__setattr__(self, "_data", dict(data))
        object.__setattr__(self, "_message", message)
        rows = (data,) if records is None else records
        object.__setattr__(self, "_records", tuple(dict(row) for row in rows))

    @property
    def type(self) -> str:
        """Notification type without the ``notify`` prefix."""
        return self._type

    @property
    def data(self) -> dict[str, Any]:
        """A copy of the decoded fields."""
        return dict(self._data)

    @property
    def records(self) -> tuple[dict[str, Any], ...]:
        """Copies of every decoded record, in wire order."""
        return tuple(dict(row) for row in self._records)

    @property
    def message(self) -> str:
        """The undecoded payload as received."""
        return self._message

    def __getitem__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise InvalidParameterError() from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __setitem__(self, name: str, value: Any) -> None:
        raise ReadOnlyError(f"event '{self._type}' is read only")

    def __delitem__(self, name: str) -> None:
        raise ReadOnlyError(f"event '{self._type}' is read only")

    def __setattr__(self, name: str, value: Any) -> None:
        raise ReadOnlyError(f"event '{self._type}' is read only")

    def __repr__(self) -> str:
        return f"Event(type={self._type!r}, data={self._data!r})"

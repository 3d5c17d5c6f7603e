"""Reply model: payload records plus the terminal error record."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from ..errors import ServerError

Record = dict[str, Any]


@dataclass(frozen=True)
class ErrorRecord:
    """The ``error`` line that terminates every reply."""

    code: int = 0
    message: str = "ok"
    extra_msg: str | None = None
    failed_permid: int | None = None

    @property
    def ok(self) -> bool:
        return self.code == 0

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.code, "msg": self.message}
        if self.extra_msg is not None:
            result["extra_msg"] = self.extra_msg
        if self.failed_permid is not None:
            result["failed_permid"] = self.failed_permid
        return result


@dataclass(frozen=True)
class Reply:
    """Response to one command.

    ``records`` holds the payload in wire order; ``error`` is the terminal
    record whose code decides success.
    """

    command: str
    records: tuple[Record, ...] = ()
    error: ErrorRecord = field(default_factory=ErrorRecord)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __repr__(self) -> str:
        return (
            f"Reply(command={self.command!r}, records={len(self.records)}, "
            f"error={self.error.code}:{self.error.message!r})"
        )

    @property
    def ok(self) -> bool:
        return self.error.ok

    def to_list(self) -> Record:
        """Return the first payload record, or an empty dict."""
        return dict(self.records[0]) if self.records else {}

    def to_dicts(self) -> list[Record]:
        return [dict(record) for record in self.records]

    def to_assoc(self, ident: str) -> dict[Any, Record]:
        """Index the payload records by the value of field ``ident``.

        Records lacking the field are skipped.
        """
        ident = ident.lower()
        return {record[ident]: dict(record) for record in self.records if ident in record}

    def raise_for_error(self) -> Reply:
        """Raise :class:`ServerError` if the error code is non-zero."""
        if not self.ok:
            raise ServerError(
                self.error.message,
                self.error.code,
                command=self.command,
                reply=self,
                extra_msg=self.error.extra_msg,
                failed_permid=self.error.failed_permid,
            )
        return self

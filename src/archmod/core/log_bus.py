"""Process-wide bus that fans log records out to subscribers.

Publishing is fail-safe: a subscriber that raises is reported on stderr and
never interrupts the operation that produced the record.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable, Iterable
from dataclasses import dataclass

LogCallback = Callable[["LogRecord"], None]


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    message: str
    logger_name: str

    @property
    def plain(self) -> str:
        return f"[{self.level_name.lower()}] {self.message}"


class LogBus:
    def __init__(self) -> None:
        self._subscribers: list[tuple[frozenset[str] | None, LogCallback]] = []

    def subscribe(
        self, cb: LogCallback, levels: Iterable[str] | None = None
    ) -> Callable[[], None]:
        """Register cb for the given level names (all levels when None).

        Returns a callable that removes the subscription again.
        """
        wanted = None if levels is None else frozenset(lvl.upper() for lvl in levels)
        entry = (wanted, cb)
        self._subscribers.append(entry)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers.remove(entry)

        return _unsubscribe

    def publish(self, record: LogRecord) -> None:
        for wanted, cb in list(self._subscribers):
            if wanted is not None and record.level_name.upper() not in wanted:
                continue
            try:
                cb(record)
            except Exception:
                # Never route through the logger here; that would recurse.
                msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg)

    def clear(self) -> None:
        self._subscribers.clear()

    def __len__(self) -> int:
        return len(self._subscribers)


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS

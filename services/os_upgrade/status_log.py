"""Append-only status log shared by every phase of an upgrade run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from services.os_upgrade.models import LogEvent, UpgradePhase

_LOGGER = logging.getLogger(__name__)

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class LogSink(Protocol):
    """Anything that accepts status events."""

    def record(
        self, phase: UpgradePhase, message: str, *, level: str = "INFO", code: int | None = None
    ) -> LogEvent:
        """Append an event and return it."""


class StatusLog:
    """Collect :class:`LogEvent` records and append each one to ``path`` as it happens.

    The file is opened in append mode for every event so a crash mid-run never
    truncates earlier lines. When ``path`` is ``None`` the events are only kept
    in memory, which is what the tests rely on.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._events: list[LogEvent] = []

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def events(self) -> tuple[LogEvent, ...]:
        return tuple(self._events)

    def record(
        self, phase: UpgradePhase, message: str, *, level: str = "INFO", code: int | None = None
    ) -> LogEvent:
        event = LogEvent(phase=phase, message=message, level=level.upper(), code=code)
        self._events.append(event)
        _LOGGER.log(_LEVELS.get(event.level, logging.INFO), "[%s] %s", phase.value, message)
        if self._path is not None:
            self._append_line(event.render())
        return event

    def _append_line(self, line: str) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError:
            _LOGGER.warning("Unable to append to status log %s", self._path, exc_info=True)

    def messages(self, phase: UpgradePhase | None = None) -> list[str]:
        return [event.message for event in self._events if phase is None or event.phase is phase]


__all__ = ["LogSink", "StatusLog"]

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol


EventLevel = Literal["info", "success", "error"]

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "error": logging.ERROR,
}


class EventSink(Protocol):
    def emit(self, level: EventLevel, message: str) -> None: ...


@dataclass(frozen=True, slots=True)
class SyncEvent:
    level: EventLevel
    message: str


@dataclass(slots=True)
class RecordingSink:
    """Collects events in memory; handy for callers that render after the run."""

    events: list[SyncEvent] = field(default_factory=list)

    def emit(self, level: EventLevel, message: str) -> None:
        self.events.append(SyncEvent(level=level, message=message))

    def messages(self, level: EventLevel | None = None) -> list[str]:
        return [event.message for event in self.events if level is None or event.level == level]


class LoggingSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("cdnsync")

    def emit(self, level: EventLevel, message: str) -> None:
        self._logger.log(_LOG_LEVELS.get(level, logging.INFO), message)

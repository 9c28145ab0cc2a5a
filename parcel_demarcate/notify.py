"""User-facing notifications (the "toasts" of a capture session)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    Level.INFO: logging.INFO,
    Level.SUCCESS: logging.INFO,
    Level.WARNING: logging.WARNING,
    Level.ERROR: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class Notification:
    level: Level
    message: str


class Notifier(Protocol):
    def notify(self, level: Level, message: str) -> None: ...


class LoggingNotifier:
    """Send notifications to the standard logging system."""

    def __init__(self, name: str = "parcel_demarcate.notifications") -> None:
        self._logger = logging.getLogger(name)

    def notify(self, level: Level, message: str) -> None:
        self._logger.log(_LOG_LEVELS[level], message)


class CollectingNotifier:
    """Keep notifications in memory, e.g. for a UI to drain after each action."""

    def __init__(self) -> None:
        self.items: list[Notification] = []

    def notify(self, level: Level, message: str) -> None:
        logger.debug("%s: %s", level.value, message)
        self.items.append(Notification(level, message))

    def drain(self) -> list[Notification]:
        out, self.items = self.items, []
        return out

    def levels(self) -> list[Level]:
        return [n.level for n in self.items]

"""
User-facing notifications.

Services publish short messages (success, info, warning, error) through a
callback supplied by whoever drives them. `NotificationLog` is the default
sink: it keeps messages in memory until the caller drains them, for example
into an API response.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List


class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notification:
    message: str
    severity: Severity = Severity.SUCCESS


NotificationSink = Callable[[Notification], None]


class NotificationLog:
    """Collects notifications in publication order."""

    def __init__(self) -> None:
        self._items: List[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self._items.append(notification)

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    def drain(self) -> List[Notification]:
        items, self._items = self._items, []
        return items


__all__ = ["Notification", "NotificationLog", "NotificationSink", "Severity"]

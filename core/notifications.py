"""
User-facing notices.

Failures that stop at a pipeline boundary are turned into a Notice instead
of an exception. The web layer drains them into the JSON response.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional


logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str

    def to_dict(self) -> dict:
        return {"level": self.level.value, "message": self.message}


class Notifier:
    """Collects notices until drained. Optional listener sees each one as it arrives."""

    def __init__(self, listener: Optional[Callable[[Notice], None]] = None):
        self._listener = listener
        self._lock = threading.Lock()
        self._notices: List[Notice] = []

    def notify(self, level: NoticeLevel, message: str) -> Notice:
        notice = Notice(level=level, message=message)
        with self._lock:
            self._notices.append(notice)
        if self._listener is not None:
            self._listener(notice)
        return notice

    def info(self, message: str) -> Notice:
        return self.notify(NoticeLevel.INFO, message)

    def success(self, message: str) -> Notice:
        return self.notify(NoticeLevel.SUCCESS, message)

    def warning(self, message: str) -> Notice:
        return self.notify(NoticeLevel.WARNING, message)

    def error(self, message: str) -> Notice:
        return self.notify(NoticeLevel.ERROR, message)

    @property
    def notices(self) -> List[Notice]:
        with self._lock:
            return list(self._notices)

    def drain(self) -> List[Notice]:
        """Return and clear all collected notices."""
        with self._lock:
            notices, self._notices = self._notices, []
        return notices

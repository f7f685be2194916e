"""
In-process realtime hub.

Channels subscribe to change events on a table, optionally narrowed to rows
where one column equals a value. The repository publishes after each write,
so every pipeline attached to the hub refetches.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"

# Batch writes publish one event listing every affected id under this key
BATCH_IDS_KEY = "ids"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    record: dict


ChangeCallback = Callable[[ChangeEvent], Any]


class Channel:
    """One subscription point: a table and an optional column=value row filter."""

    def __init__(self, hub: "RealtimeHub", table: str, row_filter: Optional[tuple[str, Any]] = None):
        self.hub = hub
        self.table = table
        self.row_filter = row_filter
        self._callbacks: list[ChangeCallback] = []

    def on_change(self, callback: ChangeCallback) -> "Channel":
        self._callbacks.append(callback)
        return self

    def accepts(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.row_filter is None:
            return True
        column, value = self.row_filter
        if str(event.record.get(column)) == str(value):
            return True
        return column == "id" and str(value) in {str(i) for i in event.record.get(BATCH_IDS_KEY, ())}

    def deliver(self, event: ChangeEvent) -> None:
        for callback in list(self._callbacks):
            callback(event)

    def unsubscribe(self) -> None:
        self.hub.remove(self)


class RealtimeHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._channels: list[Channel] = []

    def channel(self, table: str, row_filter: Optional[tuple[str, Any]] = None) -> Channel:
        channel = Channel(self, table, row_filter)
        with self._lock:
            self._channels.append(channel)
        return channel

    def remove(self, channel: Channel) -> None:
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)

    @property
    def channel_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def publish(self, table: str, event: str, record: Optional[dict] = None) -> int:
        """
        Deliver a change to every matching channel.

        A failing subscriber is logged and does not stop delivery to the rest.

        Returns:
            Number of channels the event was delivered to.
        """
        change = ChangeEvent(table=table, event=event, record=dict(record or {}))
        with self._lock:
            targets = [c for c in self._channels if c.accepts(change)]
        for channel in targets:
            try:
                channel.deliver(change)
            except Exception:
                logger.exception("Realtime subscriber failed for %s %s", table, event)
        return len(targets)

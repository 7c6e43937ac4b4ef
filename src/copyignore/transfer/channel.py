"""Bounded multi-producer/multi-consumer stream of discovered entries."""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator
from typing import Generic, TypeVar

from copyignore.errors import ChannelClosed

T = TypeVar("T")

_POLL_SECONDS = 0.05


class EntryChannel(Generic[T]):
    """Queue with an explicit producer-side close.

    Consumers iterate until the channel is closed and drained. The shared
    ``cancelled`` event makes blocked producers and consumers give up
    instead of waiting for progress that will never come.
    """

    def __init__(
        self, capacity: int, *, cancelled: threading.Event | None = None
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._queue: queue.Queue[T] = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self.cancelled = cancelled or threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, item: T) -> None:
        while True:
            if self._closed.is_set():
                raise ChannelClosed("put() on a closed channel")
            if self.cancelled.is_set():
                raise ChannelClosed("channel cancelled")
            try:
                self._queue.put(item, timeout=_POLL_SECONDS)
                return
            except queue.Full:
                continue

    def close(self) -> None:
        """Signal that no more items will be produced; idempotent."""
        self._closed.set()

    def cancel(self) -> None:
        self.cancelled.set()
        self._closed.set()

    def get(self) -> T:
        """Return the next item, or raise ``ChannelClosed`` once drained."""
        while True:
            if self.cancelled.is_set():
                raise ChannelClosed("channel cancelled")
            try:
                return self._queue.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if self._closed.is_set() and self._queue.empty():
                    raise ChannelClosed("channel drained") from None

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except ChannelClosed:
                return

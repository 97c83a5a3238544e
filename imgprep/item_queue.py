"""
ItemQueue - Bounded work item queue with an explicit close.
"""

import queue
import threading
from typing import Optional

_CLOSED = object()


class ItemQueue:
    """
    Bounded FIFO shared by one producer and several consumers.

    put() blocks while the queue is full, which is what throttles the walker
    when the workers fall behind. After close(), consumers drain the remaining
    items and then every get() returns None.
    """

    # Granularity at which a blocked put() rechecks its stop event
    POLL_SECONDS = 0.1

    def __init__(self, maxsize: int = 100):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, item, stop_event: Optional[threading.Event] = None) -> bool:
        """
        Add an item, blocking while the queue is full.

        Returns:
            True if the item was queued, False if stop_event was set first
        """
        if self.closed:
            raise RuntimeError("put() on a closed ItemQueue")

        while True:
            if stop_event is not None and stop_event.is_set():
                return False
            try:
                self._queue.put(item, timeout=self.POLL_SECONDS)
                return True
            except queue.Full:
                continue

    def get(self):
        """
        Take the next item, blocking while the queue is empty and open.

        Returns:
            The next item, or None once the queue is closed and drained
        """
        item = self._queue.get()
        if item is _CLOSED:
            # Leave the marker for the other consumers
            self._queue.put(_CLOSED)
            return None
        return item

    def close(self) -> None:
        """Signal that no more items will be added."""
        if self.closed:
            return
        self._closed.set()
        self._queue.put(_CLOSED)

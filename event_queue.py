"""
Event Queue for the tab shelf service

Provides a thread-safe queue for inbound trigger events (tab lifecycle
changes, install events, shortcuts). Browser callbacks only enqueue; the
service drains the queue and handles events one at a time.
"""

import time
import threading
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, List
from collections import deque


@dataclass
class QueuedEvent:
    """Represents an event waiting to be handled"""
    event: Any
    priority: int = 0
    queued_at: float = field(default_factory=time.time)


class EventQueue:
    """Thread-safe queue for trigger events with priority support"""

    def __init__(self, max_size: int = 1000):
        self._queue = deque()
        self._lock = threading.Lock()
        self._max_size = max_size

    def enqueue(self, event: Any, priority: int = 0) -> None:
        """
        Add an event to the queue.

        Args:
            event: The trigger event
            priority: Priority level (higher = handled first, FIFO within a level)
        """
        with self._lock:
            if len(self._queue) >= self._max_size:
                raise RuntimeError(f"Event queue is full (max {self._max_size} events)")

            queued = QueuedEvent(event=event, priority=priority)

            inserted = False
            for i, existing in enumerate(self._queue):
                if priority > existing.priority:
                    self._queue.insert(i, queued)
                    inserted = True
                    break

            if not inserted:
                self._queue.append(queued)

    def dequeue(self) -> Optional[QueuedEvent]:
        """Get next event from queue"""
        with self._lock:
            if self._queue:
                return self._queue.popleft()
            return None

    def drain(self) -> Iterator[QueuedEvent]:
        """Yield queued events until the queue is empty, including ones added meanwhile"""
        while True:
            queued = self.dequeue()
            if queued is None:
                return
            yield queued

    def is_empty(self) -> bool:
        """Check if queue is empty"""
        with self._lock:
            return len(self._queue) == 0

    def size(self) -> int:
        """Get current queue size"""
        with self._lock:
            return len(self._queue)

    def clear(self) -> None:
        """Clear all queued events"""
        with self._lock:
            self._queue.clear()

    def inspect(self) -> List[QueuedEvent]:
        """Inspect queued events without processing (returns copy)"""
        with self._lock:
            return list(self._queue)

    def peek(self) -> Optional[QueuedEvent]:
        """Peek at next event without removing it"""
        with self._lock:
            return self._queue[0] if self._queue else None

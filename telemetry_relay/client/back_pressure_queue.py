import threading
from collections import deque
from typing import List, Tuple


class BackpressureQueue:
    """A bounded queue that evicts the oldest items when it overflows.

    put() and drain_latest() are mutually exclusive, so a drain never sees
    the queue half way through a truncation.
    """

    def __init__(self, max_queue_size: int = 50):
        self.max_queue_size = max_queue_size
        self._items = deque()
        self._lock = threading.Lock()
        self.dropped_items = 0

    def put(self, item) -> int:
        """Append an item, dropping the oldest entries beyond capacity.

        Returns the number of items evicted.
        """
        with self._lock:
            self._items.append(item)
            evicted = 0
            while len(self._items) > self.max_queue_size:
                self._items.popleft()
                evicted += 1
            self.dropped_items += evicted
            return evicted

    def drain_latest(self, batch_size: int) -> Tuple[List, int]:
        """Take up to batch_size of the most recent items and clear the queue.

        Returns the batch in arrival order and the number of items left out.
        """
        with self._lock:
            items = list(self._items)
            self._items.clear()
        batch = items[-batch_size:] if batch_size > 0 else []
        return batch, len(items) - len(batch)

    def clear(self):
        """Discard queued items. The eviction count is kept."""
        with self._lock:
            self._items.clear()

    def snapshot(self) -> List:
        with self._lock:
            return list(self._items)

    def __len__(self):
        with self._lock:
            return len(self._items)

    def empty(self):
        return len(self) == 0

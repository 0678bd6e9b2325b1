"""
In-memory record of webhook event ids already handled.

The processor delivers at least once, so the same event can arrive more
than once. Only the most recent ids are remembered; the oldest are evicted
first once the cache is full.
"""
import threading
from collections import OrderedDict


class WebhookEventCache:
    """
    Bounded, insertion-ordered set of event ids.

    Args:
        max_size: Number of ids remembered
    """
    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._ids: "OrderedDict[str, None]" = OrderedDict()
        self._lock = threading.Lock()

    def seen(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self._ids

    def add(self, event_id: str) -> bool:
        """
        Remember an id.

        Returns:
            bool: False when the id was already present
        """
        with self._lock:
            if event_id in self._ids:
                return False
            self._ids[event_id] = None
            while len(self._ids) > self.max_size:
                self._ids.popitem(last=False)
            return True

    def discard(self, event_id: str) -> None:
        """Forget an id so a retried delivery is processed again."""
        with self._lock:
            self._ids.pop(event_id, None)

    def clear(self) -> None:
        with self._lock:
            self._ids.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

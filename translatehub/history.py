import threading
from collections import deque
from typing import Deque, Generic, Iterator, List, TypeVar

T = TypeVar("T")


class BoundedHistory(Generic[T]):
    """Newest-first list that keeps only the ``cap`` most recent entries."""

    def __init__(self, cap: int = 10) -> None:
        if cap < 1:
            raise ValueError("cap must be at least 1")
        self.cap = cap
        self._items: Deque[T] = deque(maxlen=cap)
        self._lock = threading.Lock()

    def add(self, item: T) -> None:
        with self._lock:
            self._items.appendleft(item)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def items(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def latest(self):
        with self._lock:
            return self._items[0] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items())

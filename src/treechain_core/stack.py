from __future__ import annotations
from collections import deque
from typing import Deque, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class SubtreeStack(Generic[T]):
    """Insertion-ordered stack; the front is the most recently pushed entry.

    Iteration runs front to back, i.e. from newest to oldest.
    """

    def __init__(self) -> None:
        self._items: Deque[T] = deque()

    def push(self, item: T) -> None:
        self._items.appendleft(item)

    def pop(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items.popleft()

    def peek(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items[0]

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

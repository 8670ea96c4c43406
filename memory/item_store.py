"""In-memory item collection shared by every view."""
from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, List, Mapping, Optional

from models.clothing_item import ClothingItem, apply_changes
from models.errors import ItemNotFoundError

ItemListener = Callable[[List[ClothingItem]], None]


class ItemStore:
    """Ordered collection of clothing items with change listeners.

    The store never talks to persistence itself; the persistence adapter is
    its only writer and registers a listener to mirror guest-mode changes to
    local storage. Cloud stream and auth callbacks may arrive on library
    threads, so every mutation is serialised behind one re-entrant lock.
    """

    def __init__(self, items: Optional[Iterable[ClothingItem]] = None) -> None:
        self._items: List[ClothingItem] = list(items or [])
        self._lock = threading.RLock()
        self._listeners: List[ItemListener] = []

    def snapshot(self) -> List[ClothingItem]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[ClothingItem]:
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
        return None

    def require(self, item_id: str) -> ClothingItem:
        item = self.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"Unknown item {item_id}")
        return item

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def replace_all(self, items: Iterable[ClothingItem]) -> None:
        with self._lock:
            self._items = list(items)
        self._notify()

    def prepend(self, item: ClothingItem) -> None:
        with self._lock:
            self._items = [item] + [existing for existing in self._items if existing.id != item.id]
        self._notify()

    def update(self, item_id: str, changes: Mapping[str, Any]) -> ClothingItem:
        with self._lock:
            for index, item in enumerate(self._items):
                if item.id == item_id:
                    updated = apply_changes(item, changes)
                    self._items[index] = updated
                    break
            else:
                raise ItemNotFoundError(f"Unknown item {item_id}")
        self._notify()
        return updated

    def remove(self, item_id: str) -> bool:
        with self._lock:
            remaining = [item for item in self._items if item.id != item_id]
            removed = len(remaining) != len(self._items)
            self._items = remaining
        if removed:
            self._notify()
        return removed

    def add_listener(self, listener: ItemListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        current = self.snapshot()
        for listener in list(self._listeners):
            listener(current)


__all__ = ["ItemListener", "ItemStore"]

"""Append-only log of confirmed outfits."""
from __future__ import annotations

import threading
from datetime import date as dt_date
from typing import Callable, Iterable, List

from models.outfit import Outfit

OutfitListener = Callable[[List[Outfit]], None]


class OutfitArchive:
    """Confirmed outfits, newest first. There is no update or delete."""

    def __init__(self, outfits: Iterable[Outfit] | None = None) -> None:
        self._outfits: List[Outfit] = list(outfits or [])
        self._lock = threading.RLock()
        self._listeners: List[OutfitListener] = []

    def append(self, outfit: Outfit) -> Outfit:
        with self._lock:
            self._outfits.insert(0, outfit)
        self._notify()
        return outfit

    def for_date(self, day: str | dt_date) -> List[Outfit]:
        """Outfits whose calendar date equals ``day`` exactly."""

        key = day.isoformat() if isinstance(day, dt_date) else str(day)
        with self._lock:
            return [outfit for outfit in self._outfits if outfit.date == key]

    def all(self) -> List[Outfit]:
        with self._lock:
            return list(self._outfits)

    def load(self, outfits: Iterable[Outfit]) -> None:
        """Replace the archive wholesale; used only when a snapshot is restored."""

        with self._lock:
            self._outfits = list(outfits)
        self._notify()

    def __len__(self) -> int:
        with self._lock:
            return len(self._outfits)

    def add_listener(self, listener: OutfitListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        current = self.all()
        for listener in list(self._listeners):
            listener(current)


__all__ = ["OutfitArchive", "OutfitListener"]

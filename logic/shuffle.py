"""Session-scoped shuffle state: mode, slot locks and the current candidate."""
from __future__ import annotations

import logging
import random
import threading
from datetime import date as dt_date
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from logic.outfit_generator import (
    LOCKABLE_SLOTS,
    MODE_SLOTS,
    GenerationMode,
    OutfitAssignment,
    OutfitGenerationResult,
    generate_outfit,
    resolved_items,
)
from memory.outfit_archive import OutfitArchive
from models.clothing_item import ClothingItem, copy_item
from models.errors import OutfitPolicyError
from models.outfit import Outfit
from models.taxonomy import CategoryL1, parse_category

logger = logging.getLogger(__name__)

MIN_OUTFIT_PIECES = 2


class LockState:
    """Pinned item id per lockable slot.

    Locks survive mode switches: a lock on a slot the active mode does not use
    is inert until that mode is selected again.
    """

    def __init__(self) -> None:
        self._pins: Dict[CategoryL1, Optional[str]] = {slot: None for slot in LOCKABLE_SLOTS}

    def toggle(self, slot: CategoryL1 | str, item_id: Optional[str]) -> bool:
        """Pin ``item_id`` on ``slot``, or unpin it if already pinned.

        Returns whether the slot is locked afterwards. Without an item nothing
        changes.
        """

        key = _lockable(slot)
        if not item_id:
            return self._pins[key] is not None
        self._pins[key] = None if self._pins[key] == item_id else item_id
        return self._pins[key] is not None

    def get(self, slot: CategoryL1 | str) -> Optional[str]:
        return self._pins[_lockable(slot)]

    def active_for(self, mode: GenerationMode) -> Dict[CategoryL1, Optional[str]]:
        return {slot: self._pins[slot] for slot in MODE_SLOTS[mode]}

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {slot.value: item_id for slot, item_id in self._pins.items()}


def _lockable(slot: CategoryL1 | str) -> CategoryL1:
    key = parse_category(slot)
    if key not in LOCKABLE_SLOTS:
        raise ValueError(f"Slot '{key.value}' cannot be locked")
    return key


class ShuffleSession:
    """Holds the mood board between shuffles.

    HTTP handlers run on worker threads, so every state change goes through one
    re-entrant lock.
    """

    def __init__(
        self,
        items_provider: Callable[[], List[ClothingItem]],
        rng: random.Random | None = None,
        today: Callable[[], dt_date] = dt_date.today,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
    ) -> None:
        self._items_provider = items_provider
        self._rng = rng or random.Random()
        self._today = today
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self.mode = GenerationMode.STANDARD
        self.locks = LockState()
        self.current: OutfitAssignment = {}
        self.last_result: Optional[OutfitGenerationResult] = None

    def shuffle(self) -> OutfitAssignment:
        with self._lock:
            result = generate_outfit(
                self._items_provider(), self.locks.active_for(self.mode), self.mode, rng=self._rng
            )
            self.last_result = result
            self.current = dict(result.outfit)
            return dict(self.current)

    def switch_mode(self, mode: GenerationMode | str) -> OutfitAssignment:
        """Select ``mode`` and regenerate immediately."""

        with self._lock:
            self.mode = GenerationMode(mode)
            logger.info("Switched shuffle mode to %s", self.mode.value)
            return self.shuffle()

    def toggle_lock(self, slot: CategoryL1 | str) -> bool:
        """Lock or unlock the item currently shown in ``slot``."""

        key = _lockable(slot)
        with self._lock:
            displayed = self.current.get(key)
            return self.locks.toggle(key, displayed.id if displayed else None)

    def confirm(
        self,
        archive: OutfitArchive,
        rating: Optional[int] = None,
    ) -> Outfit:
        """Archive the current candidate stamped with today's date.

        Raises :class:`OutfitPolicyError` when fewer than two slots hold an item;
        nothing is written in that case.
        """

        with self._lock:
            pieces = resolved_items(self.current)
        if len(pieces) < MIN_OUTFIT_PIECES:
            raise OutfitPolicyError("Pick at least two pieces before saving an outfit.")
        outfit = Outfit(
            id=self._id_factory(),
            date=self._today().isoformat(),
            items=[copy_item(item) for item in pieces],
            rating=rating,
        )
        archive.append(outfit)
        logger.info("Archived outfit %s with %s pieces", outfit.id, len(pieces))
        return outfit

    def state(self) -> Dict[str, Any]:
        """Consistent view of mode, candidate, locks and last diagnostics."""

        with self._lock:
            return {
                "mode": self.mode,
                "outfit": dict(self.current),
                "locks": self.locks.as_dict(),
                "diagnostics": self.last_result.diagnostics if self.last_result else {},
            }


__all__ = ["LockState", "MIN_OUTFIT_PIECES", "ShuffleSession"]

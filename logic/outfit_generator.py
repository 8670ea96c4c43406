"""Randomised outfit assembly with per-slot locks and seasonal bias."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from models.clothing_item import ClothingItem
from models.taxonomy import CategoryL1, Season, opposing_season

logger = logging.getLogger(__name__)


class GenerationMode(str, Enum):
    STANDARD = "Standard"
    ONE_PIECE = "OnePiece"


# Evaluation order matters: the first definite season found becomes the
# primary season for every later slot in the same pass.
MODE_SLOTS: Dict[GenerationMode, Tuple[CategoryL1, ...]] = {
    GenerationMode.STANDARD: (CategoryL1.TOP, CategoryL1.BOTTOM, CategoryL1.SHOES),
    GenerationMode.ONE_PIECE: (CategoryL1.DRESS, CategoryL1.SHOES),
}
LOCKABLE_SLOTS: Tuple[CategoryL1, ...] = (
    CategoryL1.TOP,
    CategoryL1.BOTTOM,
    CategoryL1.SHOES,
    CategoryL1.DRESS,
)

TIER_LOCKED = "locked"
TIER_SEASONAL = "season_filtered"
TIER_UNFILTERED = "unfiltered"
TIER_EMPTY = "empty"

OutfitAssignment = Dict[CategoryL1, Optional[ClothingItem]]


@dataclass(frozen=True)
class SlotResolution:
    pool: List[ClothingItem]
    tier: str


@dataclass(frozen=True)
class OutfitGenerationResult:
    outfit: OutfitAssignment
    primary_season: Optional[Season]
    diagnostics: Dict[str, object] = field(default_factory=dict)


def slot_pool(items: Iterable[ClothingItem], slot: CategoryL1, exclude: Season | None = None) -> List[ClothingItem]:
    """Live items of ``slot``, dropping those whose season is ``exclude``."""

    return [
        item
        for item in items
        if not item.is_deleted
        and item.category_l1 is slot
        and (exclude is None or item.season is not exclude)
    ]


def resolve_slot_candidates(
    items: Sequence[ClothingItem], slot: CategoryL1, primary_season: Season | None
) -> SlotResolution:
    """Season-filtered pool, else the unfiltered pool, else nothing."""

    excluded = opposing_season(primary_season)
    if excluded is not None:
        seasonal = slot_pool(items, slot, exclude=excluded)
        if seasonal:
            return SlotResolution(pool=seasonal, tier=TIER_SEASONAL)
    unfiltered = slot_pool(items, slot)
    if unfiltered:
        return SlotResolution(pool=unfiltered, tier=TIER_UNFILTERED)
    return SlotResolution(pool=[], tier=TIER_EMPTY)


def resolve_locked_items(
    items: Sequence[ClothingItem],
    locks: Mapping[CategoryL1, Optional[str]],
    slots: Sequence[CategoryL1],
) -> Tuple[Dict[CategoryL1, ClothingItem], List[str]]:
    """Resolve pinned ids for ``slots``.

    A pin whose item is gone or soft-deleted is reported back as ignored and the
    slot is left to the random pass.
    """

    by_id = {item.id: item for item in items}
    resolved: Dict[CategoryL1, ClothingItem] = {}
    ignored: List[str] = []
    for slot in slots:
        item_id = locks.get(slot)
        if not item_id:
            continue
        item = by_id.get(item_id)
        if item is None or item.is_deleted:
            ignored.append(item_id)
            continue
        resolved[slot] = item
    return resolved, ignored


def generate_outfit(
    items: Sequence[ClothingItem],
    locks: Mapping[CategoryL1, Optional[str]],
    mode: GenerationMode,
    rng: random.Random | None = None,
) -> OutfitGenerationResult:
    """Pick one item per slot of ``mode``.

    Locked slots keep their item; the first locked item with a definite season
    sets the primary season, otherwise the first randomly drawn one does. The
    result only carries the slots of ``mode``.
    """

    chooser = rng or random
    slots = MODE_SLOTS[GenerationMode(mode)]
    locked, ignored = resolve_locked_items(items, locks, slots)

    primary_season: Optional[Season] = None
    for slot in slots:
        item = locked.get(slot)
        if item is not None and item.season is not Season.ALL_YEAR:
            primary_season = item.season
            break

    outfit: OutfitAssignment = {}
    tiers: Dict[str, str] = {}
    for slot in slots:
        if slot in locked:
            outfit[slot] = locked[slot]
            tiers[slot.value] = TIER_LOCKED
            continue
        resolution = resolve_slot_candidates(items, slot, primary_season)
        tiers[slot.value] = resolution.tier
        if not resolution.pool:
            outfit[slot] = None
            continue
        choice = chooser.choice(resolution.pool)
        outfit[slot] = choice
        if primary_season is None and choice.season is not Season.ALL_YEAR:
            primary_season = choice.season

    diagnostics: Dict[str, object] = {
        "mode": GenerationMode(mode).value,
        "primary_season": primary_season.value if primary_season else None,
        "tiers": tiers,
        "ignored_locks": ignored,
        "chosen_ids": {slot.value: item.id if item else None for slot, item in outfit.items()},
    }
    logger.info("Generated %s outfit with tiers %s", diagnostics["mode"], tiers)
    return OutfitGenerationResult(outfit=outfit, primary_season=primary_season, diagnostics=diagnostics)


def resolved_items(outfit: Mapping[CategoryL1, Optional[ClothingItem]]) -> List[ClothingItem]:
    return [item for item in outfit.values() if item is not None]


__all__ = [
    "GenerationMode",
    "LOCKABLE_SLOTS",
    "MODE_SLOTS",
    "OutfitAssignment",
    "OutfitGenerationResult",
    "SlotResolution",
    "TIER_EMPTY",
    "TIER_LOCKED",
    "TIER_SEASONAL",
    "TIER_UNFILTERED",
    "generate_outfit",
    "resolve_locked_items",
    "resolve_slot_candidates",
    "resolved_items",
    "slot_pool",
]

"""Closet browsing and trash listing filters."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from models.clothing_item import ClothingItem
from models.taxonomy import CategoryL1, Season, normalize_color_name


@dataclass(frozen=True)
class ClosetFilter:
    category_l1: Optional[CategoryL1] = None
    season: Optional[Season] = None
    color: Optional[str] = None
    search: str = ""


def _matches(item: ClothingItem, closet_filter: ClosetFilter) -> bool:
    if item.is_deleted:
        return False
    if closet_filter.category_l1 is not None and item.category_l1 is not closet_filter.category_l1:
        return False
    # All-year pieces belong to every season.
    if (
        closet_filter.season is not None
        and item.season is not closet_filter.season
        and item.season is not Season.ALL_YEAR
    ):
        return False
    if closet_filter.color and item.color != normalize_color_name(closet_filter.color):
        return False
    search = closet_filter.search.strip().lower()
    if search and search not in item.category_l2.lower():
        return False
    return True


def filter_closet(items: Iterable[ClothingItem], closet_filter: ClosetFilter | None = None) -> List[ClothingItem]:
    """Live items matching ``closet_filter``, newest first."""

    active = closet_filter or ClosetFilter()
    matched = [item for item in items if _matches(item, active)]
    return sorted(matched, key=lambda item: item.created_at, reverse=True)


def trash_items(items: Iterable[ClothingItem]) -> List[ClothingItem]:
    """Soft-deleted items, most recently trashed first."""

    deleted = [item for item in items if item.is_deleted]
    return sorted(deleted, key=lambda item: item.trash_date or 0, reverse=True)


__all__ = ["ClosetFilter", "filter_closet", "trash_items"]

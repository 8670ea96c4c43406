"""Add/edit flow: merging tag suggestions and turning drafts into items."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from models.categories import AddCategory, CategoryStructure
from models.clothing_item import ClothingItem
from models.errors import PolicyViolationError
from models.taxonomy import COLORS, CategoryL1, Season, normalize_color_name, parse_category, parse_season

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AutoTagResult:
    """Best-effort guess returned by the tagging capability."""

    category_l1: str
    category_l2: str
    color: str
    season: str


@dataclass(frozen=True)
class ItemDraft:
    """Editable form state before an item is saved."""

    image_data: str
    category_l1: CategoryL1 = CategoryL1.TOP
    category_l2: str = ""
    custom_l2: str = ""
    color: str = COLORS[0]
    season: Season = Season.ALL_YEAR


def draft_from_item(item: ClothingItem) -> ItemDraft:
    return ItemDraft(
        image_data=item.image_data,
        category_l1=item.category_l1,
        category_l2=item.category_l2,
        color=item.color,
        season=item.season,
    )


def apply_tag_suggestion(draft: ItemDraft, tags: Optional[AutoTagResult]) -> ItemDraft:
    """Merge a suggestion into ``draft``.

    Category, colour and season are only taken when they belong to the fixed
    vocabularies; the subtype is taken as suggested.
    """

    if tags is None:
        return draft
    changes: Dict[str, Any] = {"category_l2": tags.category_l2 or ""}
    try:
        changes["category_l1"] = parse_category(tags.category_l1)
    except ValueError:
        logger.debug("Ignoring suggested category %s", tags.category_l1)
    color = normalize_color_name(tags.color or "")
    if color:
        changes["color"] = color
    try:
        changes["season"] = parse_season(tags.season)
    except ValueError:
        logger.debug("Ignoring suggested season %s", tags.season)
    return replace(draft, **changes)


def _final_subtype(draft: ItemDraft, categories: CategoryStructure, add_category: AddCategory) -> str:
    custom = draft.custom_l2.strip()
    if custom:
        add_category(draft.category_l1, custom)
        return custom
    if draft.category_l2:
        return draft.category_l2
    known = categories.subtypes(draft.category_l1)
    return known[0] if known else ""


def finalize_draft(
    draft: ItemDraft,
    categories: CategoryStructure,
    add_category: AddCategory,
    now_ms: Callable[[], int],
    id_factory: Callable[[], str] = lambda: uuid4().hex,
) -> ClothingItem:
    """Build a new item from a draft.

    A custom subtype is appended to the category structure through
    ``add_category``; an empty subtype falls back to the first known one.
    Ids are random so creates within the same millisecond never collide.
    """

    if not draft.image_data:
        raise PolicyViolationError("Add a photo before saving the item.")
    created_at = now_ms()
    return ClothingItem(
        id=id_factory(),
        image_data=draft.image_data,
        category_l1=draft.category_l1,
        category_l2=_final_subtype(draft, categories, add_category),
        color=draft.color,
        season=draft.season,
        created_at=created_at,
        is_deleted=False,
    )


def draft_updates(draft: ItemDraft, categories: CategoryStructure, add_category: AddCategory) -> Dict[str, Any]:
    """Partial update for an existing item edited through the form."""

    return {
        "image_data": draft.image_data,
        "category_l1": draft.category_l1,
        "category_l2": _final_subtype(draft, categories, add_category),
        "color": draft.color,
        "season": draft.season,
    }


__all__ = [
    "AutoTagResult",
    "ItemDraft",
    "apply_tag_suggestion",
    "draft_from_item",
    "draft_updates",
    "finalize_draft",
]

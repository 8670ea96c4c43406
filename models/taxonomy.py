"""Canonical taxonomy definitions for closet items.

Categories, seasons and the colour palette are fixed enumerations; only the
second-level subtypes are user-extensible (see :mod:`models.categories`).
Helper functions keep coercion consistent across the item model, the tagging
tool and the HTTP layer.
"""

from enum import Enum
from typing import Dict, List, Optional


class Season(str, Enum):
    WARM = "Warm (Summer/Spring)"
    COLD = "Cold (Winter/Fall)"
    ALL_YEAR = "All Year"


class CategoryL1(str, Enum):
    TOP = "Top"
    BOTTOM = "Bottom"
    SHOES = "Shoes"
    DRESS = "Dress"
    HAT = "Hat"


COLORS: List[str] = [
    "Black",
    "White",
    "Gray",
    "Red",
    "Blue",
    "Yellow",
    "Green",
    "Purple",
    "Pink",
    "Brown",
    "Beige",
    "Orange",
]

DEFAULT_CATEGORIES: Dict[CategoryL1, List[str]] = {
    CategoryL1.TOP: ["T-Shirt", "Hoodie", "Shirt", "Jacket", "Coat"],
    CategoryL1.BOTTOM: ["Jeans", "Shorts", "Sweatpants", "Skirt"],
    CategoryL1.SHOES: ["Sneakers", "Boots", "Sandals", "Formal"],
    CategoryL1.DRESS: ["Casual", "Evening", "Sundress"],
    CategoryL1.HAT: ["Cap", "Beanie", "Bucket Hat"],
}

_SEASON_ALIASES: Dict[str, Season] = {
    "warm": Season.WARM,
    "cold": Season.COLD,
    "all": Season.ALL_YEAR,
    "all year": Season.ALL_YEAR,
    "all_year": Season.ALL_YEAR,
    "allyear": Season.ALL_YEAR,
}


def _normalize_key(value: str) -> str:
    return value.strip().lower()


def parse_season(value: object) -> Season:
    """Coerce a wire value, enum name or short alias into a :class:`Season`.

    Raises a :class:`ValueError` for anything else.
    """

    if isinstance(value, Season):
        return value
    raw = str(value)
    for season in Season:
        if raw == season.value or raw.upper() == season.name:
            return season
    key = _normalize_key(raw)
    if key in _SEASON_ALIASES:
        return _SEASON_ALIASES[key]
    raise ValueError(f"Unsupported season '{value}'. Allowed: {[s.value for s in Season]}")


def parse_category(value: object) -> CategoryL1:
    """Validate and normalise a first-level category."""

    if isinstance(value, CategoryL1):
        return value
    key = _normalize_key(str(value))
    for category in CategoryL1:
        if category.value.lower() == key:
            return category
    raise ValueError(f"Unsupported category '{value}'. Allowed: {[c.value for c in CategoryL1]}")


def normalize_color_name(raw_string: str) -> Optional[str]:
    """Map a raw color string onto the palette, or ``None`` if it is not in it."""

    key = _normalize_key(raw_string)
    if key == "grey":
        key = "gray"
    for color in COLORS:
        if color.lower() == key:
            return color
    return None


def opposing_season(season: Season | None) -> Season | None:
    """Return the season excluded by ``season``; All Year opposes nothing."""

    if season is Season.WARM:
        return Season.COLD
    if season is Season.COLD:
        return Season.WARM
    return None


__all__ = [
    "Season",
    "CategoryL1",
    "COLORS",
    "DEFAULT_CATEGORIES",
    "parse_season",
    "parse_category",
    "normalize_color_name",
    "opposing_season",
]

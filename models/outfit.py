"""Confirmed outfit records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as dt_date
from typing import Any, Dict, List, Mapping, Optional

from models.clothing_item import ClothingItem, item_from_dict, item_to_dict


@dataclass(frozen=True)
class Outfit:
    """A user-confirmed outfit.

    ``items`` are copies taken at confirmation time so later edits or deletes
    of the closet do not rewrite history. ``date`` is a calendar day in ISO
    form, not a timestamp; several outfits may share it.
    """

    id: str
    date: str
    items: List[ClothingItem] = field(default_factory=list)
    rating: Optional[int] = None

    def __post_init__(self) -> None:
        dt_date.fromisoformat(self.date)
        if self.rating is not None and not 1 <= int(self.rating) <= 5:
            raise ValueError("rating must be between 1 and 5")


def outfit_to_dict(outfit: Outfit) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": outfit.id,
        "date": outfit.date,
        "items": [item_to_dict(item) for item in outfit.items],
    }
    if outfit.rating is not None:
        payload["rating"] = outfit.rating
    return payload


def outfit_from_dict(payload: Mapping[str, Any]) -> Outfit:
    if not payload.get("id") or not payload.get("date"):
        raise ValueError("Outfit requires id and date")
    return Outfit(
        id=str(payload["id"]),
        date=str(payload["date"]),
        items=[item_from_dict(raw) for raw in payload.get("items") or []],
        rating=payload.get("rating"),
    )


__all__ = ["Outfit", "outfit_from_dict", "outfit_to_dict"]

"""Clothing item data model and (de)serialisation helpers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from models.taxonomy import CategoryL1, Season, normalize_color_name, parse_category, parse_season

# Snapshot rows and cloud documents use camelCase keys.
_WIRE_KEYS: Dict[str, str] = {
    "id": "id",
    "image_data": "imageData",
    "category_l1": "categoryL1",
    "category_l2": "categoryL2",
    "color": "color",
    "season": "season",
    "created_at": "createdAt",
    "is_deleted": "isDeleted",
    "trash_date": "trashDate",
}
_FIELD_FOR_WIRE = {wire: name for name, wire in _WIRE_KEYS.items()}
IMMUTABLE_FIELDS = {"id", "created_at"}


@dataclass
class ClothingItem:
    """A photographed, tagged garment in the closet."""

    id: str
    image_data: str
    category_l1: CategoryL1
    category_l2: str
    color: str
    season: Season
    created_at: int
    is_deleted: bool = False
    trash_date: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ClothingItem requires a non-empty id")
        self.category_l1 = parse_category(self.category_l1)
        self.category_l2 = str(self.category_l2 or "").strip()
        color = normalize_color_name(str(self.color))
        if color is None:
            raise ValueError(f"Unsupported color '{self.color}'")
        self.color = color
        self.season = parse_season(self.season)
        self.created_at = int(self.created_at)
        self.is_deleted = bool(self.is_deleted)
        if self.trash_date is not None:
            self.trash_date = int(self.trash_date)
        if self.is_deleted != (self.trash_date is not None):
            raise ValueError("trash_date must be set exactly when the item is deleted")


def normalise_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Map wire or attribute keys onto attribute names, dropping unknown keys."""

    valid = {f.name for f in fields(ClothingItem)}
    normalised: Dict[str, Any] = {}
    for key, value in changes.items():
        name = _FIELD_FOR_WIRE.get(key, key)
        if name in valid and name not in IMMUTABLE_FIELDS:
            normalised[name] = value
    return normalised


def apply_changes(item: ClothingItem, changes: Mapping[str, Any]) -> ClothingItem:
    """Return a validated copy of ``item`` with ``changes`` merged in."""

    return replace(item, **normalise_changes(changes))


def changes_to_wire(changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert attribute-keyed partial updates into wire keys and primitive values."""

    wire: Dict[str, Any] = {}
    for name, value in normalise_changes(changes).items():
        if isinstance(value, (Season, CategoryL1)):
            value = value.value
        wire[_WIRE_KEYS[name]] = value
    return wire


def item_to_dict(item: ClothingItem) -> Dict[str, Any]:
    """Serialise an item with wire keys; ``trashDate`` is omitted when unset."""

    raw = asdict(item)
    payload: Dict[str, Any] = {}
    for name, wire in _WIRE_KEYS.items():
        value = raw[name]
        if name == "trash_date" and value is None:
            continue
        if isinstance(value, (Season, CategoryL1)):
            value = value.value
        payload[wire] = value
    return payload


def item_from_dict(payload: Mapping[str, Any], item_id: Optional[str] = None) -> ClothingItem:
    """Build an item from a snapshot row or cloud document.

    ``item_id`` overrides any id stored inside the payload, matching how cloud
    documents carry their id outside the document body.
    """

    values = {_FIELD_FOR_WIRE.get(key, key): value for key, value in payload.items()}
    required = ["image_data", "category_l1", "color", "season", "created_at"]
    missing = [name for name in required if values.get(name) in (None, "")]
    if missing:
        raise ValueError(f"Missing required fields for ClothingItem: {missing}")

    return ClothingItem(
        id=str(item_id or values.get("id") or ""),
        image_data=str(values["image_data"]),
        category_l1=values["category_l1"],
        category_l2=values.get("category_l2") or "",
        color=values["color"],
        season=values["season"],
        created_at=values["created_at"],
        is_deleted=bool(values.get("is_deleted", False)),
        trash_date=values.get("trash_date"),
    )


def copy_item(item: ClothingItem) -> ClothingItem:
    """Detached copy used when an item is denormalised into an outfit."""

    return replace(item)


__all__ = [
    "ClothingItem",
    "IMMUTABLE_FIELDS",
    "apply_changes",
    "changes_to_wire",
    "copy_item",
    "item_from_dict",
    "item_to_dict",
    "normalise_changes",
]

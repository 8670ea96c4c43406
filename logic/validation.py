"""Pydantic schemas for validating HTTP payloads and shaping responses."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from logic.outfit_generator import GenerationMode
from logic.item_form import ItemDraft
from models.clothing_item import ClothingItem, item_to_dict
from models.outfit import Outfit, outfit_to_dict
from models.taxonomy import COLORS, CategoryL1, Season, normalize_color_name, parse_category, parse_season


def _coerce_color(value: Any) -> Any:
    if value is None:
        return None
    color = normalize_color_name(str(value))
    if color is None:
        raise ValueError(f"color must be one of {COLORS}")
    return color


class ItemDraftRequest(BaseModel):
    """Add/edit form payload."""

    image_data: str = Field(min_length=1)
    category_l1: CategoryL1 = CategoryL1.TOP
    category_l2: str = ""
    custom_l2: str = ""
    color: str = COLORS[0]
    season: Season = Season.ALL_YEAR

    @field_validator("category_l1", mode="before")
    @classmethod
    def _validate_category(cls, value: Any) -> CategoryL1:
        return parse_category(value)

    @field_validator("season", mode="before")
    @classmethod
    def _validate_season(cls, value: Any) -> Season:
        return parse_season(value)

    @field_validator("color", mode="before")
    @classmethod
    def _validate_color(cls, value: Any) -> Any:
        return _coerce_color(value)

    def to_draft(self) -> ItemDraft:
        return ItemDraft(
            image_data=self.image_data,
            category_l1=self.category_l1,
            category_l2=self.category_l2,
            custom_l2=self.custom_l2,
            color=self.color,
            season=self.season,
        )


class ItemUpdateRequest(BaseModel):
    """Partial update; omitted fields are left alone."""

    image_data: Optional[str] = Field(default=None, min_length=1)
    category_l1: Optional[CategoryL1] = None
    category_l2: Optional[str] = None
    color: Optional[str] = None
    season: Optional[Season] = None

    @field_validator("category_l1", mode="before")
    @classmethod
    def _validate_category(cls, value: Any) -> Optional[CategoryL1]:
        return None if value is None else parse_category(value)

    @field_validator("season", mode="before")
    @classmethod
    def _validate_season(cls, value: Any) -> Optional[Season]:
        return None if value is None else parse_season(value)

    @field_validator("color", mode="before")
    @classmethod
    def _validate_color(cls, value: Any) -> Any:
        return _coerce_color(value)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CategoryRequest(BaseModel):
    category_l1: CategoryL1
    subtype: str = Field(min_length=1)

    @field_validator("category_l1", mode="before")
    @classmethod
    def _validate_category(cls, value: Any) -> CategoryL1:
        return parse_category(value)


class ModeRequest(BaseModel):
    mode: GenerationMode


class OutfitConfirmRequest(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)


class SignInRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    sign_up: bool = False


class ImageRequest(BaseModel):
    image_data: str = Field(min_length=1)


def items_payload(items: List[ClothingItem]) -> List[Dict[str, Any]]:
    return [item_to_dict(item) for item in items]


def assignment_payload(outfit: Mapping[CategoryL1, Optional[ClothingItem]]) -> Dict[str, Any]:
    return {slot.value: item_to_dict(item) if item else None for slot, item in outfit.items()}


def outfits_payload(outfits: List[Outfit]) -> List[Dict[str, Any]]:
    return [outfit_to_dict(outfit) for outfit in outfits]


__all__ = [
    "CategoryRequest",
    "ImageRequest",
    "ItemDraftRequest",
    "ItemUpdateRequest",
    "ModeRequest",
    "OutfitConfirmRequest",
    "SignInRequest",
    "assignment_payload",
    "items_payload",
    "outfits_payload",
]

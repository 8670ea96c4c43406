"""Model package exports."""

from models.categories import CategoryStructure
from models.clothing_item import ClothingItem, item_from_dict, item_to_dict
from models.outfit import Outfit, outfit_from_dict, outfit_to_dict
from models.taxonomy import *  # noqa: F401,F403

__all__ = [
    "CategoryStructure",
    "ClothingItem",
    "Outfit",
    "item_from_dict",
    "item_to_dict",
    "outfit_from_dict",
    "outfit_to_dict",
]

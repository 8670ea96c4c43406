"""Taxonomy, item and category structure tests."""

from __future__ import annotations

import pytest

from conftest import PNG_DATA_URL, make_item
from models import taxonomy
from models.categories import CategoryStructure
from models.clothing_item import ClothingItem, apply_changes, changes_to_wire, item_from_dict, item_to_dict
from models.outfit import Outfit, outfit_from_dict, outfit_to_dict
from models.taxonomy import CategoryL1, Season


def test_parse_season_accepts_wire_values_and_short_forms() -> None:
    assert taxonomy.parse_season("Warm (Summer/Spring)") is Season.WARM
    assert taxonomy.parse_season("Cold") is Season.COLD
    assert taxonomy.parse_season("All") is Season.ALL_YEAR
    assert taxonomy.parse_season("ALL_YEAR") is Season.ALL_YEAR
    with pytest.raises(ValueError):
        taxonomy.parse_season("Monsoon")


def test_parse_category_is_case_insensitive() -> None:
    assert taxonomy.parse_category("shoes") is CategoryL1.SHOES
    with pytest.raises(ValueError):
        taxonomy.parse_category("Scarf")


def test_normalize_color_name_maps_onto_palette() -> None:
    assert taxonomy.normalize_color_name("grey") == "Gray"
    assert taxonomy.normalize_color_name(" blue ") == "Blue"
    assert taxonomy.normalize_color_name("navy") is None


def test_opposing_season() -> None:
    assert taxonomy.opposing_season(Season.WARM) is Season.COLD
    assert taxonomy.opposing_season(Season.COLD) is Season.WARM
    assert taxonomy.opposing_season(Season.ALL_YEAR) is None
    assert taxonomy.opposing_season(None) is None


def test_item_requires_trash_date_exactly_when_deleted() -> None:
    with pytest.raises(ValueError):
        ClothingItem(
            id="1",
            image_data=PNG_DATA_URL,
            category_l1="Top",
            category_l2="Shirt",
            color="Red",
            season="Warm",
            created_at=1,
            is_deleted=True,
        )
    with pytest.raises(ValueError):
        ClothingItem(
            id="1",
            image_data=PNG_DATA_URL,
            category_l1="Top",
            category_l2="Shirt",
            color="Red",
            season="Warm",
            created_at=1,
            trash_date=5,
        )


def test_item_rejects_colors_outside_palette() -> None:
    with pytest.raises(ValueError):
        make_item("1", color="Turquoise")


def test_item_snapshot_uses_camel_case_and_omits_unset_trash_date() -> None:
    item = make_item("42", CategoryL1.BOTTOM, Season.COLD, sub="Jeans")
    payload = item_to_dict(item)

    assert payload["categoryL1"] == "Bottom"
    assert payload["season"] == "Cold (Winter/Fall)"
    assert payload["isDeleted"] is False
    assert "trashDate" not in payload
    assert item_from_dict(payload) == item


def test_item_from_dict_prefers_external_document_id() -> None:
    payload = item_to_dict(make_item("local-id"))
    payload.pop("id")
    assert item_from_dict(payload, item_id="doc-id").id == "doc-id"


def test_item_from_dict_reports_missing_fields() -> None:
    with pytest.raises(ValueError, match="season"):
        item_from_dict({"id": "1", "imageData": "x", "categoryL1": "Top", "color": "Red", "createdAt": 1})


def test_apply_changes_keeps_identity_and_validates() -> None:
    item = make_item("1")
    updated = apply_changes(item, {"color": "white", "id": "other", "createdAt": 5})
    assert updated.color == "White"
    assert updated.id == "1"
    assert updated.created_at == item.created_at
    with pytest.raises(ValueError):
        apply_changes(item, {"is_deleted": True})


def test_changes_to_wire_converts_enums() -> None:
    wire = changes_to_wire({"season": Season.WARM, "trash_date": None, "unknown": 1})
    assert wire == {"season": "Warm (Summer/Spring)", "trashDate": None}


def test_category_structure_appends_without_duplicates() -> None:
    categories = CategoryStructure()
    assert categories.subtypes("Top")[:2] == ["T-Shirt", "Hoodie"]

    assert categories.add(CategoryL1.TOP, "  Blazer ") is True
    assert categories.add(CategoryL1.TOP, "blazer") is False
    assert categories.subtypes(CategoryL1.TOP)[-1] == "Blazer"
    with pytest.raises(ValueError):
        categories.add(CategoryL1.TOP, "   ")


def test_category_structure_from_dict_seeds_missing_and_ignores_unknown() -> None:
    categories = CategoryStructure.from_dict({"Hat": ["Cap", "Cap", "Fedora"], "Gloves": ["Mittens"]})
    assert categories.subtypes(CategoryL1.HAT) == ["Cap", "Fedora"]
    assert categories.subtypes(CategoryL1.DRESS) == ["Casual", "Evening", "Sundress"]
    assert "Gloves" not in categories.to_dict()


def test_category_listeners_fire_on_append() -> None:
    categories = CategoryStructure()
    seen = []
    categories.add_listener(lambda structure: seen.append(structure.subtypes("Shoes")[-1]))
    categories.add("Shoes", "Loafers")
    assert seen == ["Loafers"]


def test_outfit_validates_date_and_rating() -> None:
    with pytest.raises(ValueError):
        Outfit(id="o1", date="2024-13-01")
    with pytest.raises(ValueError):
        Outfit(id="o1", date="2024-05-01", rating=7)

    outfit = Outfit(id="o1", date="2024-05-01", items=[make_item("1")], rating=4)
    assert outfit_from_dict(outfit_to_dict(outfit)) == outfit

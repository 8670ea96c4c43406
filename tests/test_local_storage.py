"""Local slot storage backends."""

import pytest

from tools.local_storage import (
    SLOT_CATEGORIES,
    SLOT_ITEMS,
    JSONFileStorage,
    SQLiteLocalStorage,
    build_local_storage,
)


@pytest.fixture(params=["json", "sqlite"])
def storage(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteLocalStorage(tmp_path / "closet.db")
    return JSONFileStorage(tmp_path / "closet")


def test_slots_are_independent(storage) -> None:
    assert storage.get(SLOT_ITEMS) is None
    storage.set(SLOT_ITEMS, "[1]")
    storage.set(SLOT_CATEGORIES, "{}")
    storage.set(SLOT_ITEMS, "[2]")

    assert storage.get(SLOT_ITEMS) == "[2]"
    assert storage.get(SLOT_CATEGORIES) == "{}"

    storage.remove(SLOT_ITEMS)
    assert storage.get(SLOT_ITEMS) is None
    assert storage.get(SLOT_CATEGORIES) == "{}"


def test_unknown_slot_is_rejected(storage) -> None:
    with pytest.raises(ValueError):
        storage.set("laundry", "[]")


def test_json_backend_uses_prefixed_files(tmp_path) -> None:
    storage = JSONFileStorage(tmp_path)
    storage.set(SLOT_ITEMS, "[]")
    assert (tmp_path / "smartCloset_items.json").read_text() == "[]"


def test_build_local_storage_selects_backend(tmp_path) -> None:
    assert isinstance(build_local_storage("SQLite", str(tmp_path / "c.db")), SQLiteLocalStorage)
    assert isinstance(build_local_storage("json", str(tmp_path / "dir")), JSONFileStorage)

"""Cloud configuration parsing and snapshot document conversion."""

import json
from types import SimpleNamespace

import pytest

from conftest import make_item
from models.clothing_item import item_to_dict
from models.errors import CloudConfigError
from tools.cloud_store import (
    clear_cloud_config,
    documents_to_items,
    load_cloud_config,
    parse_cloud_config,
    save_cloud_config,
)
from tools.local_storage import SLOT_CLOUD_CONFIG, JSONFileStorage


def test_parse_accepts_camel_case_keys() -> None:
    config = parse_cloud_config('{"projectId": "closet-dev", "apiKey": "k", "authDomain": "ignored"}')
    assert config.project_id == "closet-dev"
    assert config.api_key == "k"


@pytest.mark.parametrize(
    "raw",
    ["{not json", "[1, 2]", '{"apiKey": "k"}', '{"projectId": "p"}', '{"projectId": "p", "apiKey": ""}'],
)
def test_parse_rejects_malformed_config(raw) -> None:
    with pytest.raises(CloudConfigError):
        parse_cloud_config(raw)


def test_saved_config_is_used_when_no_file_is_given(tmp_path) -> None:
    storage = JSONFileStorage(tmp_path)
    assert load_cloud_config(None, storage) is None

    save_cloud_config(storage, json.dumps({"project_id": "closet-dev", "api_key": "web-key"}))
    assert json.loads(storage.get(SLOT_CLOUD_CONFIG))["projectId"] == "closet-dev"
    assert load_cloud_config(None, storage).project_id == "closet-dev"

    clear_cloud_config(storage)
    assert load_cloud_config(None, storage) is None


def test_invalid_config_is_not_saved(tmp_path) -> None:
    storage = JSONFileStorage(tmp_path)
    with pytest.raises(CloudConfigError):
        save_cloud_config(storage, "{}")
    assert storage.get(SLOT_CLOUD_CONFIG) is None


def test_missing_config_file_is_a_config_error(tmp_path) -> None:
    with pytest.raises(CloudConfigError):
        load_cloud_config(str(tmp_path / "absent.json"), JSONFileStorage(tmp_path))


def test_documents_to_items_uses_document_ids_and_skips_bad_rows() -> None:
    good = item_to_dict(make_item("ignored"))
    good.pop("id")
    documents = [
        SimpleNamespace(id="doc-1", to_dict=lambda: good),
        SimpleNamespace(id="doc-2", to_dict=lambda: {"color": "Red"}),
    ]

    items = documents_to_items(documents)

    assert [item.id for item in items] == ["doc-1"]

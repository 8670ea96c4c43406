"""Configuration loading, logging helpers and composition-root wiring."""

import json
import logging

from conftest import PNG_DATA_URL, FakeCloudStore
from closet_app.app import ClosetApp
from closet_app.config import DEFAULT_TAGGING_MODEL, ClosetConfig
from closet_app.logging_config import JsonFormatter, correlation_context, redact_for_log
from logic.item_form import ItemDraft
from models.taxonomy import CategoryL1
from tools.auth_provider import GuestAuthProvider, IdentityToolkitAuthProvider
from tools.local_storage import SLOT_ITEMS, JSONFileStorage, SQLiteLocalStorage
from tools.tagging import GeminiClothingTagger

_ENV_KEYS = [
    "APP_ENV",
    "APP_CONFIG_PATH",
    "CLOSET_CONFIG_DIR",
    "GOOGLE_API_KEY",
    "FIREBASE_API_KEY",
    "CLOUD_CONFIG_PATH",
    "LOCAL_STORAGE_BACKEND",
    "LOCAL_STORAGE_PATH",
    "LOG_LEVEL",
    "TAGGING_MODEL",
]


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_from_env_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)
    config = ClosetConfig.from_env()
    assert config.google_api_key is None
    assert config.tagging_model == DEFAULT_TAGGING_MODEL
    assert config.local_storage_backend == "json"
    assert config.environment is None


def test_yaml_file_is_overridden_by_environment(monkeypatch, tmp_path) -> None:
    _clear_env(monkeypatch)
    (tmp_path / "dev.yaml").write_text(
        "# local development\n"
        "local_storage_backend: sqlite\n"
        "local_storage_path: 'data/dev.db'\n"
        "log_level: DEBUG\n"
    )
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("CLOSET_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    config = ClosetConfig.from_env()

    assert config.environment == "dev"
    assert config.local_storage_backend == "sqlite"
    assert config.local_storage_path == "data/dev.db"
    assert config.log_level == "WARNING"


def test_redact_for_log_masks_secrets_and_images() -> None:
    scrubbed = redact_for_log(
        {
            "password": "hunter2",
            "note": "mail me at a@example.com",
            "image": "data:image/png;base64,AAAA",
            "nested": [{"apiKey": "k"}],
            "count": 3,
        }
    )
    assert scrubbed["password"] == "[redacted]"
    assert scrubbed["note"] == "mail me at [redacted-email]"
    assert scrubbed["image"].startswith("[redacted-blob")
    assert scrubbed["nested"] == [{"apiKey": "[redacted]"}]
    assert scrubbed["count"] == 3


def test_json_formatter_includes_correlation_and_extras() -> None:
    record = logging.LogRecord("closet", logging.INFO, __file__, 1, "item_saved", None, None)
    record.event = "item_saved"
    record.item_id = "42"
    with correlation_context("corr-1"):
        payload = json.loads(JsonFormatter().format(record))

    assert payload["event"] == "item_saved"
    assert payload["correlation_id"] == "corr-1"
    assert payload["item_id"] == "42"


def test_bad_cloud_config_keeps_app_in_guest_mode(tmp_path) -> None:
    bad = tmp_path / "cloud.json"
    bad.write_text("{oops")
    closet = ClosetApp(
        ClosetConfig(cloud_config_path=str(bad), firebase_api_key="web-key"),
        storage=JSONFileStorage(tmp_path / "slots"),
        tagger=GeminiClothingTagger(None),
    )

    assert closet.cloud is None
    assert "not valid JSON" in closet.config_error
    assert isinstance(closet.auth, GuestAuthProvider)

    closet.start()
    assert closet.mode == "guest"
    assert closet.persistence.data_loaded is True
    closet.close()


def test_storage_backend_follows_config(tmp_path) -> None:
    closet = ClosetApp(
        ClosetConfig(local_storage_backend="sqlite", local_storage_path=str(tmp_path / "closet.db")),
        tagger=GeminiClothingTagger(None),
    )
    assert isinstance(closet.storage, SQLiteLocalStorage)


def test_items_created_in_the_same_millisecond_are_all_kept(tmp_path) -> None:
    storage = JSONFileStorage(tmp_path / "slots")
    closet = ClosetApp(
        ClosetConfig(),
        storage=storage,
        tagger=GeminiClothingTagger(None),
        clock_ms=lambda: 1_700_000_000_000,
    )
    closet.start()

    top = closet.create_item(ItemDraft(image_data=PNG_DATA_URL, category_l1=CategoryL1.TOP))
    bottom = closet.create_item(ItemDraft(image_data=PNG_DATA_URL, category_l1=CategoryL1.BOTTOM))

    assert {item.id for item in closet.items.snapshot()} == {top.id, bottom.id}
    saved = json.loads(storage.get(SLOT_ITEMS))
    assert sorted(row["categoryL1"] for row in saved) == ["Bottom", "Top"]
    closet.close()


def test_runtime_cloud_config_switches_auth_provider(tmp_path) -> None:
    cloud = FakeCloudStore()
    closet = ClosetApp(
        ClosetConfig(),
        storage=JSONFileStorage(tmp_path / "slots"),
        tagger=GeminiClothingTagger(None),
        cloud_factory=lambda _config: cloud,
    )
    closet.start()
    assert isinstance(closet.auth, GuestAuthProvider)

    closet.configure_cloud({"projectId": "closet-dev", "apiKey": "web-key"})
    assert closet.cloud is cloud
    assert isinstance(closet.auth, IdentityToolkitAuthProvider)
    assert closet.auth.api_key == "web-key"
    assert closet.mode == "guest"

    closet.clear_cloud()
    assert closet.cloud is None
    assert isinstance(closet.auth, GuestAuthProvider)
    closet.close()

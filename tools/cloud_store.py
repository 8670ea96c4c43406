"""Cloud document store for signed-in users, backed by Firestore.

Items live under ``users/{uid}/items`` keyed by item id. The core only needs a
push subscription, create and partial update; deletes are always soft.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from google.cloud import firestore
from google.oauth2 import service_account
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from closet_app.logging_config import get_logger, log_event
from models.clothing_item import ClothingItem, changes_to_wire, item_from_dict, item_to_dict
from models.errors import CloudConfigError
from tools.local_storage import SLOT_CLOUD_CONFIG, LocalStorage

LOGGER = get_logger(__name__)

ItemsCallback = Callable[[List[ClothingItem]], None]
Unsubscribe = Callable[[], None]


class CloudConfig(BaseModel):
    """Connection settings; accepts the web client's camelCase keys too."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_id: str = Field(alias="projectId", min_length=1)
    api_key: str = Field(alias="apiKey", min_length=1)
    credentials_path: Optional[str] = Field(default=None, alias="credentialsPath")
    service_account_info: Optional[Dict[str, Any]] = Field(default=None, alias="serviceAccount")


def parse_cloud_config(raw: str | Mapping[str, Any]) -> CloudConfig:
    """Parse cloud settings, raising :class:`CloudConfigError` with a readable message."""

    try:
        payload = json.loads(raw) if isinstance(raw, str) else dict(raw)
    except json.JSONDecodeError as exc:
        raise CloudConfigError(f"Cloud configuration is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise CloudConfigError("Cloud configuration must be a JSON object")
    try:
        return CloudConfig.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
        raise CloudConfigError(f"Cloud configuration is missing or has invalid fields: {fields}") from exc


def save_cloud_config(storage: LocalStorage, raw: str | Mapping[str, Any]) -> CloudConfig:
    """Validate and store cloud settings entered at runtime."""

    config = parse_cloud_config(raw)
    storage.set(SLOT_CLOUD_CONFIG, config.model_dump_json(by_alias=True))
    return config


def clear_cloud_config(storage: LocalStorage) -> None:
    storage.remove(SLOT_CLOUD_CONFIG)


def load_cloud_config(config_path: Optional[str], storage: LocalStorage) -> Optional[CloudConfig]:
    """Resolve settings: the deployment file wins over runtime-saved settings."""

    if config_path:
        try:
            with open(config_path, encoding="utf-8") as handle:
                raw = handle.read()
        except OSError as exc:
            raise CloudConfigError(f"Cannot read cloud configuration at {config_path}: {exc}") from exc
        return parse_cloud_config(raw)
    stored = storage.get(SLOT_CLOUD_CONFIG)
    return parse_cloud_config(stored) if stored else None


class CloudItemStore:
    """Interface for per-user cloud item collections."""

    def subscribe_items(self, uid: str, callback: ItemsCallback) -> Unsubscribe:
        raise NotImplementedError

    def create_item(self, uid: str, item: ClothingItem) -> None:
        raise NotImplementedError

    def update_item(self, uid: str, item_id: str, changes: Mapping[str, Any]) -> None:
        raise NotImplementedError


def documents_to_items(documents: List[Any]) -> List[ClothingItem]:
    """Convert snapshot documents, skipping ones that fail validation."""

    items: List[ClothingItem] = []
    for document in documents:
        try:
            items.append(item_from_dict(document.to_dict() or {}, item_id=document.id))
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Skipping cloud item %s due to validation error: %s", document.id, exc)
    return items


class FirestoreCloudStore(CloudItemStore):
    """Firestore implementation using a service account or ADC."""

    def __init__(self, client: firestore.Client) -> None:
        self.client = client

    @classmethod
    def from_config(cls, config: CloudConfig) -> "FirestoreCloudStore":
        credentials = None
        if config.service_account_info:
            credentials = service_account.Credentials.from_service_account_info(config.service_account_info)
        elif config.credentials_path:
            credentials = service_account.Credentials.from_service_account_file(config.credentials_path)
        return cls(firestore.Client(project=config.project_id, credentials=credentials))

    def _collection(self, uid: str):
        return self.client.collection("users").document(uid).collection("items")

    def subscribe_items(self, uid: str, callback: ItemsCallback) -> Unsubscribe:
        query = self._collection(uid).order_by("createdAt", direction=firestore.Query.DESCENDING)

        def on_snapshot(documents, _changes, _read_time) -> None:
            callback(documents_to_items(list(documents)))

        watch = query.on_snapshot(on_snapshot)
        return watch.unsubscribe

    def create_item(self, uid: str, item: ClothingItem) -> None:
        payload = item_to_dict(item)
        item_id = payload.pop("id")
        self._collection(uid).document(item_id).set(payload)

    def update_item(self, uid: str, item_id: str, changes: Mapping[str, Any]) -> None:
        wire = changes_to_wire(changes)
        updates = {key: firestore.DELETE_FIELD if value is None else value for key, value in wire.items()}
        self._collection(uid).document(item_id).update(updates)


def build_cloud_store(config: Optional[CloudConfig]) -> Optional[CloudItemStore]:
    """Create the cloud store, or ``None`` when it is not configured or fails to start."""

    if config is None:
        return None
    try:
        store = FirestoreCloudStore.from_config(config)
    except Exception as exc:  # noqa: BLE001
        log_event(
            LOGGER,
            logging.ERROR,
            "cloud_init_failed",
            project_id=config.project_id,
            error=str(exc),
        )
        return None
    log_event(LOGGER, logging.INFO, "cloud_init_completed", project_id=config.project_id)
    return store


__all__ = [
    "CloudConfig",
    "CloudItemStore",
    "FirestoreCloudStore",
    "build_cloud_store",
    "clear_cloud_config",
    "documents_to_items",
    "load_cloud_config",
    "parse_cloud_config",
    "save_cloud_config",
]

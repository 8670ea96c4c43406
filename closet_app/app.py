"""Composition root wiring the closet state, persistence and capabilities."""

from __future__ import annotations

import logging
import random
import time
from datetime import date as dt_date
from typing import Any, Callable, List, Mapping, Optional

from closet_app.config import ClosetConfig
from closet_app.logging_config import configure_logging, get_logger, log_event
from logic.closet_queries import ClosetFilter, filter_closet, trash_items
from logic.item_form import AutoTagResult, ItemDraft, draft_updates, finalize_draft
from logic.shuffle import ShuffleSession
from memory.item_store import ItemStore
from memory.outfit_archive import OutfitArchive
from models.categories import CategoryStructure
from models.clothing_item import ClothingItem
from models.errors import CloudConfigError
from models.taxonomy import CategoryL1
from tools.auth_provider import AuthProvider, GuestAuthProvider, IdentityToolkitAuthProvider, Principal
from tools.cloud_store import (
    CloudConfig,
    CloudItemStore,
    build_cloud_store,
    clear_cloud_config,
    load_cloud_config,
    save_cloud_config,
)
from tools.local_storage import LocalStorage, build_local_storage
from tools.persistence import PersistenceAdapter, SyncReport
from tools.tagging import GeminiClothingTagger

LOGGER = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ClosetApp:
    """Owns the item store, categories, outfit archive and shuffle session.

    Collaborators can be injected for tests; otherwise they are built from
    :class:`ClosetConfig`. A cloud configuration problem is recorded in
    ``config_error`` and the app carries on in guest mode.
    """

    def __init__(
        self,
        config: ClosetConfig | None = None,
        *,
        storage: LocalStorage | None = None,
        cloud: CloudItemStore | None = None,
        auth: AuthProvider | None = None,
        tagger: GeminiClothingTagger | None = None,
        rng: random.Random | None = None,
        clock_ms: Callable[[], int] = _now_ms,
        today: Callable[[], dt_date] = dt_date.today,
        cloud_factory: Callable[[CloudConfig], Optional[CloudItemStore]] = build_cloud_store,
    ) -> None:
        self.config = config or ClosetConfig.from_env()
        configure_logging(self.config.log_level)
        self.config_error: Optional[str] = None
        self.clock_ms = clock_ms
        self._cloud_factory = cloud_factory
        self._cloud_api_key: Optional[str] = None
        self._auth_injected = auth is not None

        self.storage = storage or build_local_storage(
            self.config.local_storage_backend, self.config.local_storage_path
        )
        self.cloud = cloud if cloud is not None else self._build_cloud()
        self.auth = auth or self._build_auth()
        self.tagger = tagger or GeminiClothingTagger(
            api_key=self.config.google_api_key,
            tagging_model=self.config.tagging_model,
            background_model=self.config.background_model,
        )

        self.items = ItemStore()
        self.categories = CategoryStructure()
        self.archive = OutfitArchive()
        self.persistence = PersistenceAdapter(
            self.items,
            self.archive,
            self.categories,
            self.storage,
            cloud=self.cloud,
            clock_ms=clock_ms,
        )
        self.shuffle = ShuffleSession(self.items.snapshot, rng=rng, today=today)
        self._auth_unsubscribe: Optional[Callable[[], None]] = None

    def _build_cloud(self) -> Optional[CloudItemStore]:
        try:
            cloud_config = load_cloud_config(self.config.cloud_config_path, self.storage)
        except CloudConfigError as exc:
            self.config_error = str(exc)
            log_event(LOGGER, logging.WARNING, "cloud_config_invalid", error=str(exc))
            return None
        if cloud_config is None:
            return None
        self._cloud_api_key = cloud_config.api_key
        return self._cloud_factory(cloud_config)

    def _build_auth(self) -> AuthProvider:
        api_key = self.config.firebase_api_key or self._cloud_api_key
        if self.cloud is not None and api_key:
            return IdentityToolkitAuthProvider(api_key)
        return GuestAuthProvider()

    def start(self) -> None:
        """Begin listening for auth state; persistence stays idle until it resolves."""

        if self._auth_unsubscribe is None:
            self._auth_unsubscribe = self.auth.subscribe(self.persistence.on_auth_changed)

    def close(self) -> None:
        if self._auth_unsubscribe is not None:
            self._auth_unsubscribe()
            self._auth_unsubscribe = None
        self.persistence.close()

    def configure_cloud(self, raw: str | Mapping[str, Any]) -> CloudConfig:
        """Validate and save cloud settings, then switch to the new backend.

        An invalid configuration raises :class:`CloudConfigError` and nothing is
        written.
        """

        cloud_config = save_cloud_config(self.storage, raw)
        self._cloud_api_key = cloud_config.api_key
        cloud = self._cloud_factory(cloud_config)
        self.config_error = None if cloud is not None else "Cloud backend could not be started."
        self._attach_cloud(cloud)
        return cloud_config

    def clear_cloud(self) -> None:
        """Forget saved cloud settings and fall back to guest mode."""

        clear_cloud_config(self.storage)
        self._cloud_api_key = None
        self.config_error = None
        self._attach_cloud(None)

    def _attach_cloud(self, cloud: Optional[CloudItemStore]) -> None:
        self.cloud = cloud
        self.persistence.cloud = cloud
        started = self._auth_unsubscribe is not None
        if started:
            self._auth_unsubscribe()
            self._auth_unsubscribe = None
        if not self._auth_injected:
            self.auth = self._build_auth()
        log_event(LOGGER, logging.INFO, "cloud_backend_changed", configured=cloud is not None)
        # Re-subscribing replays the current auth state against the new backend.
        if started:
            self.start()

    @property
    def principal(self) -> Optional[Principal]:
        return self.persistence.principal

    @property
    def mode(self) -> str:
        return self.persistence.mode

    def add_category(self, category: CategoryL1 | str, subtype: str) -> bool:
        return self.categories.add(category, subtype)

    def create_item(self, draft: ItemDraft) -> ClothingItem:
        item = finalize_draft(draft, self.categories, self.add_category, self.clock_ms)
        self.persistence.add(item)
        return item

    def edit_item(self, item_id: str, draft: ItemDraft) -> None:
        self.persistence.update(item_id, draft_updates(draft, self.categories, self.add_category))

    def update_item(self, item_id: str, changes: Mapping[str, Any]) -> None:
        self.persistence.update(item_id, changes)

    def soft_delete(self, item_id: str) -> None:
        self.persistence.soft_delete(item_id)

    def restore(self, item_id: str) -> None:
        self.persistence.restore(item_id)

    def hard_delete(self, item_id: str) -> None:
        self.persistence.hard_delete(item_id)

    def closet(self, closet_filter: ClosetFilter | None = None) -> List[ClothingItem]:
        return filter_closet(self.items.snapshot(), closet_filter)

    def trash(self) -> List[ClothingItem]:
        return trash_items(self.items.snapshot())

    def analyze_image(self, image: str) -> Optional[AutoTagResult]:
        return self.tagger.analyze_clothing_image(image)

    def remove_background(self, image: str) -> Optional[str]:
        return self.tagger.remove_background(image)

    def sync_local_to_cloud(self) -> SyncReport:
        return self.persistence.sync_local_to_cloud()


__all__ = ["ClosetApp"]

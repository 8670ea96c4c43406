"""Reconciles the in-memory closet with exactly one backing store.

Guest sessions read a local snapshot once and write every later change back to
it. Signed-in sessions treat the cloud change stream as the only source of
truth: writes go to the cloud and become visible when the stream echoes them.
The adapter picks one strategy per auth transition and never mixes them.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional

from closet_app.logging_config import get_logger, log_event
from memory.item_store import ItemStore
from memory.outfit_archive import OutfitArchive
from models.categories import CategoryStructure
from models.clothing_item import ClothingItem, item_from_dict, item_to_dict
from models.errors import (
    CloudWriteError,
    ItemNotFoundError,
    NothingToSyncError,
    NotAuthenticatedError,
    StoreNotReadyError,
)
from models.outfit import outfit_from_dict, outfit_to_dict
from tools.auth_provider import Principal
from tools.cloud_store import CloudItemStore
from tools.local_storage import SLOT_CATEGORIES, SLOT_ITEMS, SLOT_OUTFITS, LocalStorage
from tools.observability import instrument_operation

LOGGER = get_logger(__name__)

MODE_LOADING = "loading"
MODE_GUEST = "guest"
MODE_CLOUD = "cloud"

Unsubscribe = Callable[[], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _noop() -> None:
    return None


def _read_rows(storage: LocalStorage, slot: str) -> Optional[List[Any]]:
    """Decode a snapshot slot; ``None`` when absent or unreadable."""

    raw = storage.get(slot)
    if raw is None:
        return None
    try:
        rows = json.loads(raw)
    except json.JSONDecodeError as exc:
        log_event(LOGGER, logging.ERROR, "local_snapshot_unreadable", slot=slot, error=exc.msg)
        return None
    return rows


def parse_item_rows(rows: List[Any]) -> List[ClothingItem]:
    items: List[ClothingItem] = []
    for row in rows:
        try:
            items.append(item_from_dict(row))
        except (TypeError, ValueError, AttributeError) as exc:
            LOGGER.warning("Skipping local item due to validation error: %s", exc)
    return items


class PersistenceStrategy(ABC):
    """One backing store behind the operations the closet needs."""

    mode: str

    @abstractmethod
    def initialize(self) -> None:
        """Perform the one-off load, if the backend has one."""

    @abstractmethod
    def subscribe(self, on_delivery: Callable[[Callable[[], None]], None]) -> Unsubscribe:
        """Start delivery.

        ``on_delivery`` is handed a thunk that refreshes the store; the adapter
        decides whether the delivery is still current before running it.
        """

    @abstractmethod
    def add(self, item: ClothingItem) -> None:
        """Create ``item``."""

    @abstractmethod
    def update(self, item_id: str, changes: Mapping[str, Any]) -> None:
        """Apply a partial update."""

    def soft_delete(self, item_id: str, now_ms: int) -> None:
        self.update(item_id, {"is_deleted": True, "trash_date": now_ms})

    def restore(self, item_id: str) -> None:
        self.update(item_id, {"is_deleted": False, "trash_date": None})

    @abstractmethod
    def hard_delete(self, item_id: str, now_ms: int) -> None:
        """Remove the item as far as the backend allows."""


class LocalPersistence(PersistenceStrategy):
    """Guest mode: the in-memory store is mutated directly and snapshotted."""

    mode = MODE_GUEST

    def __init__(
        self,
        store: ItemStore,
        archive: OutfitArchive,
        categories: CategoryStructure,
        storage: LocalStorage,
    ) -> None:
        self.store = store
        self.archive = archive
        self.categories = categories
        self.storage = storage

    def initialize(self) -> None:
        item_rows = _read_rows(self.storage, SLOT_ITEMS)
        outfit_rows = _read_rows(self.storage, SLOT_OUTFITS)
        category_payload = _read_rows(self.storage, SLOT_CATEGORIES)

        self.store.replace_all(parse_item_rows(item_rows or []))
        outfits = []
        for row in outfit_rows or []:
            try:
                outfits.append(outfit_from_dict(row))
            except (TypeError, ValueError, AttributeError) as exc:
                LOGGER.warning("Skipping local outfit due to validation error: %s", exc)
        self.archive.load(outfits)
        if isinstance(category_payload, dict):
            self.categories.replace_all(CategoryStructure.from_dict(category_payload))
        else:
            self.categories.replace_all(CategoryStructure())
        log_event(
            LOGGER,
            logging.INFO,
            "local_snapshot_loaded",
            items=len(self.store),
            outfits=len(self.archive),
            had_snapshot=item_rows is not None,
        )

    def subscribe(self, on_delivery: Callable[[Callable[[], None]], None]) -> Unsubscribe:
        on_delivery(_noop)
        return _noop

    def add(self, item: ClothingItem) -> None:
        self.store.prepend(item)

    def update(self, item_id: str, changes: Mapping[str, Any]) -> None:
        self.store.update(item_id, changes)

    def hard_delete(self, item_id: str, now_ms: int) -> None:
        if not self.store.remove(item_id):
            raise ItemNotFoundError(f"Unknown item {item_id}")

    def persist(self) -> None:
        """Write all three snapshots."""

        self.storage.set(SLOT_ITEMS, json.dumps([item_to_dict(item) for item in self.store.snapshot()]))
        self.storage.set(SLOT_OUTFITS, json.dumps([outfit_to_dict(outfit) for outfit in self.archive.all()]))
        self.storage.set(SLOT_CATEGORIES, json.dumps(self.categories.to_dict()))


class CloudPersistence(PersistenceStrategy):
    """Signed-in mode: writes go to the cloud, reads come from its stream."""

    mode = MODE_CLOUD

    def __init__(self, store: ItemStore, cloud: CloudItemStore, uid: str) -> None:
        self.store = store
        self.cloud = cloud
        self.uid = uid

    def initialize(self) -> None:
        log_event(LOGGER, logging.INFO, "cloud_session_started")

    def subscribe(self, on_delivery: Callable[[Callable[[], None]], None]) -> Unsubscribe:
        def deliver(items: List[ClothingItem]) -> None:
            on_delivery(lambda: self.store.replace_all(items))

        return self.cloud.subscribe_items(self.uid, deliver)

    def add(self, item: ClothingItem) -> None:
        self._write("create", lambda: self.cloud.create_item(self.uid, item), item.id)

    def update(self, item_id: str, changes: Mapping[str, Any]) -> None:
        self.store.require(item_id)
        self._write("update", lambda: self.cloud.update_item(self.uid, item_id, changes), item_id)

    def hard_delete(self, item_id: str, now_ms: int) -> None:
        # No hard delete against the cloud: repeat the soft delete instead.
        current = self.store.require(item_id)
        self.update(item_id, {"is_deleted": True, "trash_date": current.trash_date or now_ms})

    def _write(self, action: str, call: Callable[[], None], item_id: str) -> None:
        try:
            call()
        except Exception as exc:  # noqa: BLE001
            log_event(LOGGER, logging.ERROR, "cloud_write_failed", action=action, item_id=item_id, error=str(exc))
            raise CloudWriteError("Could not save to the cloud. Please try again.") from exc


@dataclass
class SyncFailure:
    item_id: str
    reason: str


@dataclass
class SyncReport:
    """Per-item outcome of a guest-to-cloud upload."""

    succeeded: List[str] = field(default_factory=list)
    failed: List[SyncFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


class PersistenceAdapter:
    """Chooses the backing store on every auth transition and routes mutations.

    Until the first auth resolution arrives the adapter is ``loading``: nothing
    is read or written. The write guard (``data_loaded``) is cleared on every
    transition and set once the new backend has delivered its first load, so an
    empty in-memory closet can never overwrite a saved snapshot.
    """

    def __init__(
        self,
        store: ItemStore,
        archive: OutfitArchive,
        categories: CategoryStructure,
        storage: LocalStorage,
        cloud: Optional[CloudItemStore] = None,
        clock_ms: Callable[[], int] = _now_ms,
        sync_workers: int = 8,
    ) -> None:
        self.store = store
        self.archive = archive
        self.categories = categories
        self.storage = storage
        self.cloud = cloud
        self.clock_ms = clock_ms
        self.sync_workers = sync_workers
        self.principal: Optional[Principal] = None
        self.data_loaded = False
        self._strategy: Optional[PersistenceStrategy] = None
        self._unsubscribe: Unsubscribe = _noop
        self._generation = 0
        self._lock = threading.RLock()
        self._detach = [
            store.add_listener(self._on_state_changed),
            archive.add_listener(self._on_state_changed),
            categories.add_listener(self._on_state_changed),
        ]

    @property
    def mode(self) -> str:
        return self._strategy.mode if self._strategy else MODE_LOADING

    def on_auth_changed(self, principal: Optional[Principal]) -> None:
        """Tear down the previous backend and bring up the one ``principal`` implies."""

        with self._lock:
            self._unsubscribe()
            self._unsubscribe = _noop
            self._generation += 1
            generation = self._generation
            self.data_loaded = False
            self.principal = principal

            if principal is not None and self.cloud is not None:
                strategy: PersistenceStrategy = CloudPersistence(self.store, self.cloud, principal.uid)
            else:
                if principal is not None:
                    LOGGER.warning("Cloud backend unavailable; continuing in guest mode")
                strategy = LocalPersistence(self.store, self.archive, self.categories, self.storage)
            self._strategy = strategy
            log_event(LOGGER, logging.INFO, "persistence_mode_selected", mode=strategy.mode)

            strategy.initialize()
            self._unsubscribe = strategy.subscribe(self._delivery_for(generation))

    def _delivery_for(self, generation: int) -> Callable[[Callable[[], None]], None]:
        # Deliveries from a torn-down subscription must not touch the current session.
        def on_delivery(refresh: Callable[[], None]) -> None:
            with self._lock:
                if generation != self._generation:
                    LOGGER.debug("Dropping delivery from a previous auth session")
                    return
                refresh()
                self.data_loaded = True

        return on_delivery

    def _on_state_changed(self, _current: object) -> None:
        with self._lock:
            strategy = self._strategy
            if not self.data_loaded or not isinstance(strategy, LocalPersistence):
                return
            strategy.persist()

    def _require_strategy(self) -> PersistenceStrategy:
        # Until the new backend delivers, the store may still hold the previous session's items.
        with self._lock:
            if self._strategy is None or not self.data_loaded:
                raise StoreNotReadyError("Your closet is still loading.")
            return self._strategy

    @instrument_operation("add_item")
    def add(self, item: ClothingItem) -> None:
        self._require_strategy().add(item)

    @instrument_operation("update_item")
    def update(self, item_id: str, changes: Mapping[str, Any]) -> None:
        self._require_strategy().update(item_id, changes)

    @instrument_operation("soft_delete_item")
    def soft_delete(self, item_id: str) -> None:
        self._require_strategy().soft_delete(item_id, self.clock_ms())

    @instrument_operation("restore_item")
    def restore(self, item_id: str) -> None:
        self._require_strategy().restore(item_id)

    @instrument_operation("hard_delete_item")
    def hard_delete(self, item_id: str) -> None:
        self._require_strategy().hard_delete(item_id, self.clock_ms())

    @instrument_operation("sync_local_to_cloud")
    def sync_local_to_cloud(self) -> SyncReport:
        """Upload every item of the last guest snapshot as a cloud create.

        The snapshot is left in place and nothing is de-duplicated against the
        cloud. Each item is written independently; the report lists which ones
        failed so they can be retried.
        """

        strategy = self._strategy
        if not isinstance(strategy, CloudPersistence):
            raise NotAuthenticatedError("Sign in to sync your guest closet.")
        rows = _read_rows(self.storage, SLOT_ITEMS)
        if not rows:
            raise NothingToSyncError("No guest items found to sync.")

        report = SyncReport()
        items: List[ClothingItem] = []
        for row in rows:
            try:
                items.append(item_from_dict(row))
            except (TypeError, ValueError, AttributeError) as exc:
                row_id = str(row.get("id", "?")) if isinstance(row, dict) else "?"
                report.failed.append(SyncFailure(item_id=row_id, reason=str(exc)))

        with ThreadPoolExecutor(max_workers=max(1, self.sync_workers)) as executor:
            futures = [
                (item, executor.submit(strategy.cloud.create_item, strategy.uid, item)) for item in items
            ]
            for item, future in futures:
                try:
                    future.result()
                except Exception as exc:  # noqa: BLE001
                    report.failed.append(SyncFailure(item_id=item.id, reason=str(exc)))
                else:
                    report.succeeded.append(item.id)

        log_event(
            LOGGER,
            logging.INFO,
            "sync_completed",
            succeeded=len(report.succeeded),
            failed=len(report.failed),
        )
        return report

    def close(self) -> None:
        with self._lock:
            self._unsubscribe()
            self._unsubscribe = _noop
            self._generation += 1
            for detach in self._detach:
                detach()
            self._detach = []


__all__ = [
    "CloudPersistence",
    "LocalPersistence",
    "MODE_CLOUD",
    "MODE_GUEST",
    "MODE_LOADING",
    "PersistenceAdapter",
    "PersistenceStrategy",
    "SyncFailure",
    "SyncReport",
    "parse_item_rows",
]

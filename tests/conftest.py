"""Shared fakes for the closet test-suite."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from models.clothing_item import ClothingItem, apply_changes
from models.taxonomy import CategoryL1, Season
from tools.auth_provider import AuthProvider, Principal
from tools.cloud_store import CloudItemStore

PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


def make_item(
    item_id: str,
    category: CategoryL1 = CategoryL1.TOP,
    season: Season = Season.ALL_YEAR,
    *,
    color: str = "Black",
    sub: str = "T-Shirt",
    created_at: int = 1_700_000_000_000,
    deleted: bool = False,
) -> ClothingItem:
    return ClothingItem(
        id=item_id,
        image_data=PNG_DATA_URL,
        category_l1=category,
        category_l2=sub,
        color=color,
        season=season,
        created_at=created_at,
        is_deleted=deleted,
        trash_date=created_at + 1 if deleted else None,
    )


class FakeCloudStore(CloudItemStore):
    """In-memory cloud that only delivers when the test says so."""

    def __init__(self) -> None:
        self.documents: Dict[str, Dict[str, ClothingItem]] = {}
        self.subscribers: Dict[str, List[Callable[[List[ClothingItem]], None]]] = {}
        self.created: List[ClothingItem] = []
        self.updates: List[tuple] = []
        self.fail_ids: set = set()

    def subscribe_items(self, uid: str, callback: Callable[[List[ClothingItem]], None]):
        self.subscribers.setdefault(uid, []).append(callback)

        def unsubscribe() -> None:
            self.subscribers[uid].remove(callback)

        return unsubscribe

    def create_item(self, uid: str, item: ClothingItem) -> None:
        if item.id in self.fail_ids:
            raise RuntimeError("network down")
        self.created.append(item)
        self.documents.setdefault(uid, {})[item.id] = item

    def update_item(self, uid: str, item_id: str, changes: Mapping[str, Any]) -> None:
        self.updates.append((uid, item_id, dict(changes)))
        docs = self.documents.setdefault(uid, {})
        if item_id in docs:
            docs[item_id] = apply_changes(docs[item_id], changes)

    def push(self, uid: str, items: Optional[List[ClothingItem]] = None) -> None:
        """Deliver ``items`` (or the current documents) newest first."""

        if items is None:
            items = sorted(self.documents.get(uid, {}).values(), key=lambda i: i.created_at, reverse=True)
        for callback in list(self.subscribers.get(uid, [])):
            callback(list(items))


class ManualAuthProvider(AuthProvider):
    """Auth whose resolution is driven explicitly by the test."""

    def __init__(self) -> None:
        super().__init__()
        self._principal: Optional[Principal] = None
        self.resolved = False

    @property
    def current(self) -> Optional[Principal]:
        return self._principal

    def subscribe(self, callback):
        with self._lock:
            self._listeners.append(callback)
        if self.resolved:
            callback(self._principal)
        return lambda: self._listeners.remove(callback)

    def resolve(self, principal: Optional[Principal]) -> None:
        self.resolved = True
        self._principal = principal
        self._notify(principal)

    def sign_in(self, email: str, password: str) -> Principal:
        principal = Principal(uid=f"uid-{email}", email=email)
        self.resolve(principal)
        return principal

    def sign_up(self, email: str, password: str) -> Principal:
        return self.sign_in(email, password)

    def sign_out(self) -> None:
        self.resolve(None)


@pytest.fixture()
def cloud() -> FakeCloudStore:
    return FakeCloudStore()


@pytest.fixture()
def auth() -> ManualAuthProvider:
    return ManualAuthProvider()

"""Durable local storage with independent named slots.

Each slot holds one serialised snapshot (a JSON string). The JSON backend
keeps one file per slot; the SQLite backend keeps a key/value table.
"""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

SLOT_ITEMS = "items"
SLOT_OUTFITS = "outfits"
SLOT_CATEGORIES = "categories"
SLOT_CLOUD_CONFIG = "cloud_config"
SLOTS = (SLOT_ITEMS, SLOT_OUTFITS, SLOT_CATEGORIES, SLOT_CLOUD_CONFIG)

_KEY_PREFIX = "smartCloset_"


def _check_slot(slot: str) -> str:
    if slot not in SLOTS:
        raise ValueError(f"Unknown storage slot '{slot}'. Allowed: {list(SLOTS)}")
    return slot


class LocalStorage:
    """Interface for get/set on named slots."""

    def get(self, slot: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, slot: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, slot: str) -> None:
        raise NotImplementedError


class JSONFileStorage(LocalStorage):
    """One ``smartCloset_<slot>.json`` file per slot under ``base_dir``."""

    def __init__(self, base_dir: str | Path = "data/closet") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, slot: str) -> Path:
        return self.base_dir / f"{_KEY_PREFIX}{_check_slot(slot)}.json"

    def get(self, slot: str) -> Optional[str]:
        path = self._path(slot)
        if not path.exists():
            return None
        return path.read_text()

    def set(self, slot: str, value: str) -> None:
        path = self._path(slot)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value)
        tmp_path.replace(path)

    def remove(self, slot: str) -> None:
        self._path(slot).unlink(missing_ok=True)


class SQLiteLocalStorage(LocalStorage):
    """SQLite-backed key/value slots."""

    def __init__(self, database_path: str | Path = "data/closet.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS local_slots (
                    slot TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

    def get(self, slot: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM local_slots WHERE slot = ?", (_KEY_PREFIX + _check_slot(slot),)
            ).fetchone()
        return row["value"] if row else None

    def set(self, slot: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO local_slots(slot, value) VALUES (?, ?)\n"
                "ON CONFLICT(slot) DO UPDATE SET value=excluded.value",
                (_KEY_PREFIX + _check_slot(slot), value),
            )

    def remove(self, slot: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM local_slots WHERE slot = ?", (_KEY_PREFIX + _check_slot(slot),))


def build_local_storage(backend: str, path: str | None = None) -> LocalStorage:
    if backend.lower() == "sqlite":
        return SQLiteLocalStorage(path or "data/closet.db")
    return JSONFileStorage(path or "data/closet")


__all__ = [
    "JSONFileStorage",
    "LocalStorage",
    "SLOTS",
    "SLOT_CATEGORIES",
    "SLOT_CLOUD_CONFIG",
    "SLOT_ITEMS",
    "SLOT_OUTFITS",
    "SQLiteLocalStorage",
    "build_local_storage",
]

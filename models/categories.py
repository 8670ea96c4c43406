"""User-extensible second-level category structure."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Mapping, Optional

from models.taxonomy import DEFAULT_CATEGORIES, CategoryL1, parse_category

CategoryListener = Callable[["CategoryStructure"], None]
AddCategory = Callable[[CategoryL1, str], bool]


class CategoryStructure:
    """Ordered, de-duplicated subtypes per first-level category.

    Subtypes can be appended but never removed. The structure is an owned
    value: components that need to extend it receive :meth:`add` as a
    callback instead of reaching for a global.
    """

    def __init__(self, initial: Optional[Mapping[CategoryL1, List[str]]] = None) -> None:
        self._lock = threading.RLock()
        self._listeners: List[CategoryListener] = []
        self._subtypes: Dict[CategoryL1, List[str]] = {
            category: list(DEFAULT_CATEGORIES[category]) for category in CategoryL1
        }
        if initial:
            for category, values in initial.items():
                self._subtypes[parse_category(category)] = _dedupe(values)

    def subtypes(self, category: CategoryL1 | str) -> List[str]:
        with self._lock:
            return list(self._subtypes[parse_category(category)])

    def add(self, category: CategoryL1 | str, subtype: str) -> bool:
        """Append ``subtype`` under ``category``; returns ``False`` if already known."""

        key = parse_category(category)
        value = subtype.strip()
        if not value:
            raise ValueError("subtype must not be empty")
        with self._lock:
            existing = self._subtypes[key]
            if value.lower() in {entry.lower() for entry in existing}:
                return False
            existing.append(value)
        self._notify()
        return True

    def replace_all(self, other: "CategoryStructure") -> None:
        with self._lock:
            self._subtypes = {category: other.subtypes(category) for category in CategoryL1}
        self._notify()

    def add_listener(self, listener: CategoryListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def to_dict(self) -> Dict[str, List[str]]:
        with self._lock:
            return {category.value: list(values) for category, values in self._subtypes.items()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, List[str]]) -> "CategoryStructure":
        """Rebuild from a snapshot; unknown first-level keys are ignored."""

        initial: Dict[CategoryL1, List[str]] = {}
        for key, values in payload.items():
            try:
                category = parse_category(key)
            except ValueError:
                continue
            initial[category] = list(values or [])
        return cls(initial)


def _dedupe(values: List[str]) -> List[str]:
    result: List[str] = []
    seen = set()
    for value in values:
        cleaned = str(value).strip()
        if cleaned and cleaned.lower() not in seen:
            result.append(cleaned)
            seen.add(cleaned.lower())
    return result


__all__ = ["AddCategory", "CategoryStructure"]

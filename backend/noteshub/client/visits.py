"""
NotesHub Client — Page Visit Tracker
=====================================

What:  Remembers which pages a user has visited, as a deduplicated set
       persisted under the key "visitedPages".
How:   The set is stored as a JSON array string in a KeyValueStore, the
       same shape browser localStorage holds. JsonFileKeyValueStore keeps
       those string values in one JSON object on disk.

A missing, unreadable or corrupt value reads as an empty set. The tracker
logs storage failures and never raises to its caller.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Set, Union

logger = logging.getLogger(__name__)

VISITED_PAGES_KEY = "visitedPages"


class KeyValueStore(ABC):
    """String key/value storage in the style of localStorage."""

    @abstractmethod
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """
    File-backed KeyValueStore: one JSON object mapping keys to string values.

    Reads the file on every get so several processes see each other's
    writes. Writes go to a temporary file that replaces the original.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._load().get(key, default)
        return value if value is None or isinstance(value, str) else json.dumps(value)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except ValueError:
            logger.warning("Replacing corrupt key-value file %s", self.path)
            data = {}
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)


class PageVisitTracker:
    """Deduplicated, persisted set of visited page names."""

    def __init__(self, store: KeyValueStore, key: str = VISITED_PAGES_KEY):
        self.store = store
        self.key = key

    def visited(self) -> Set[str]:
        try:
            raw = self.store.get(self.key)
            if raw is None:
                return set()
            pages = json.loads(raw)
            if not isinstance(pages, list):
                raise ValueError(f"expected a JSON array, got {type(pages).__name__}")
            return {page for page in pages if isinstance(page, str)}
        except (OSError, ValueError) as e:
            logger.error("Error loading visited pages: %s", str(e))
            return set()

    def has_visited(self, page_name: str) -> bool:
        return page_name in self.visited()

    def record(self, page_name: str) -> bool:
        """
        Add a page to the visited set.

        Returns:
            True when the page was newly recorded, False when it was already
            present or the store could not be written.
        """
        pages = self.visited()
        if page_name in pages:
            return False

        pages.add(page_name)
        try:
            self.store.set(self.key, json.dumps(sorted(pages)))
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving visited page %r: %s", page_name, str(e))
            return False
        return True

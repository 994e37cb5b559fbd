"""Visitor-scoped persistent key/value storage.

The banner keeps all of its state (visitor id, assignments, logged flags) in a
string-keyed store with get/set semantics, the way a browser keeps it in
``localStorage``. The store is injected so the banner runs the same against
an in-memory dict, a SQL table, or anything else implementing
:class:`KeyValueStore`.
"""

from __future__ import annotations

import abc
from typing import Dict, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from abbanner.repositories.storage_repo import StorageRepository

logger = structlog.get_logger(__name__)

STORAGE_KEY_ASSIGNMENT = "AB_TEST_ASSIGNMENT_"
STORAGE_KEY_LOGGED = "AB_LOGGED_"
STORAGE_KEY_VISITOR = "DXFORCE_VISITOR_ID"


def assignment_key(test_id: str) -> str:
    return f"{STORAGE_KEY_ASSIGNMENT}{test_id}"


def logged_key(test_id: str, action_type: str) -> str:
    return f"{STORAGE_KEY_LOGGED}{test_id}_{action_type}"


class StorageError(RuntimeError):
    """Raised by a store whose backend could not be read or written."""


class KeyValueStore(abc.ABC):
    @abc.abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Returns the stored value, or None when the key is absent."""

    @abc.abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abc.abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the ``storage_entries`` table, one namespace per visitor."""

    def __init__(self, db: Session, namespace: str):
        self.repo = StorageRepository(db)
        self.namespace = namespace

    def get_item(self, key: str) -> Optional[str]:
        try:
            entry = self.repo.get_entry(self.namespace, key)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read {key!r}: {e}") from e
        return entry.value if entry is not None else None

    def set_item(self, key: str, value: str) -> None:
        try:
            self.repo.upsert_entry(self.namespace, key, value)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self.repo.delete_entry(self.namespace, key)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to remove {key!r}: {e}") from e


class DegradingKeyValueStore(KeyValueStore):
    """
    Wraps a store and falls back to in-memory state when it fails.

    After the first StorageError every read and write goes to the in-memory
    overlay for the lifetime of this wrapper (one page view / request).
    Values written before the failure are not copied over.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.overlay = InMemoryKeyValueStore()
        self.degraded = False

    def _degrade(self, operation: str, key: str, error: StorageError) -> None:
        if not self.degraded:
            logger.warning("storage.degraded", operation=operation, key=key, error=str(error))
        self.degraded = True

    def get_item(self, key: str) -> Optional[str]:
        if not self.degraded:
            try:
                return self.store.get_item(key)
            except StorageError as e:
                self._degrade("get", key, e)
        return self.overlay.get_item(key)

    def set_item(self, key: str, value: str) -> None:
        if not self.degraded:
            try:
                self.store.set_item(key, value)
                return
            except StorageError as e:
                self._degrade("set", key, e)
        self.overlay.set_item(key, value)

    def remove_item(self, key: str) -> None:
        if not self.degraded:
            try:
                self.store.remove_item(key)
                return
            except StorageError as e:
                self._degrade("remove", key, e)
        self.overlay.remove_item(key)

# services/visitor_service.py
import uuid
from typing import Callable

import structlog

from abbanner.core.storage import KeyValueStore, StorageError, STORAGE_KEY_VISITOR

logger = structlog.get_logger(__name__)


def generate_visitor_id() -> str:
    return str(uuid.uuid4())


class VisitorIdentityService:
    def __init__(self, store: KeyValueStore, id_factory: Callable[[], str] = generate_visitor_id):
        self.store = store
        self.id_factory = id_factory

    def ensure_visitor_id(self) -> str:
        """
        Returns the stored visitor id, generating and storing one on first use.
        The id is never changed once stored. A store that cannot be read counts
        as empty; a failed write still returns the new id for this visit.
        """
        try:
            visitor_id = self.store.get_item(STORAGE_KEY_VISITOR)
        except StorageError as e:
            logger.warning("visitor.read_failed", error=str(e))
            visitor_id = None
        if visitor_id:
            return visitor_id

        visitor_id = self.id_factory()
        try:
            self.store.set_item(STORAGE_KEY_VISITOR, visitor_id)
        except StorageError as e:
            logger.warning("visitor.write_failed", visitor_id=visitor_id, error=str(e))
        logger.info("visitor.created", visitor_id=visitor_id)
        return visitor_id

# services/assignment_service.py

import random
from typing import Optional

import structlog

from abbanner.core.storage import KeyValueStore, assignment_key
from abbanner.models.schemas.banner import PreviewMode, Variant

logger = structlog.get_logger(__name__)


class AssignmentResolver:
    def __init__(self, store: KeyValueStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def _draw_variant(self) -> Variant:
        """Fair coin between A and B."""
        return Variant.A if self.rng.random() < 0.5 else Variant.B

    def _stored_variant(self, test_id: str) -> Optional[Variant]:
        stored = self.store.get_item(assignment_key(test_id))
        if not stored:
            return None
        try:
            return Variant(stored)
        except ValueError:
            logger.warning("ab_test.invalid_stored_assignment", test_id=test_id, stored=stored)
            return None

    def resolve(self, test_id: Optional[str], preview_mode: PreviewMode = PreviewMode.AUTO) -> Variant:
        """
        Resolves which variant applies, in priority order:

        1. Forced preview modes win and are never persisted.
        2. Without a test id the banner always shows A (not persisted).
        3. Otherwise an existing assignment is kept (idempotency rule);
           a new visitor gets a random draw which is persisted first.
        """
        # 1. Builder preview overrides
        if preview_mode == PreviewMode.FORCE_A:
            return Variant.A
        if preview_mode == PreviewMode.FORCE_B:
            return Variant.B

        # 2. No test configured
        if not test_id:
            return Variant.A

        # 3. Existing assignment (idempotency)
        existing = self._stored_variant(test_id)
        if existing is not None:
            return existing

        # 4. Draw and persist
        variant = self._draw_variant()
        self.store.set_item(assignment_key(test_id), variant.value)
        logger.info("ab_test.assigned", test_id=test_id, variant=variant.value)
        return variant

import random
from concurrent.futures import Executor
from typing import Callable, Optional

import structlog

from abbanner.core.storage import DegradingKeyValueStore, KeyValueStore
from abbanner.models.schemas.banner import (
    ActionType,
    BannerConfigModel,
    BannerDisplayModel,
    PreviewMode,
    Variant,
)
from abbanner.services.action_logger import ActionLogger
from abbanner.services.assignment_service import AssignmentResolver
from abbanner.services.content_service import current_variant_data
from abbanner.services.metric_service import MetricReporter
from abbanner.services.visitor_service import VisitorIdentityService, generate_visitor_id

logger = structlog.get_logger(__name__)


class HeroBanner:
    """
    A/B tested hero banner.

    The host drives it through its lifecycle: ``connect()`` once, ``render()``
    on every render pass, ``handle_button_click()`` on every click, and
    ``set_preview_mode()`` / ``update_config()`` whenever the authored
    configuration changes.
    """

    def __init__(
        self,
        config: BannerConfigModel,
        store: KeyValueStore,
        action_logger: ActionLogger,
        executor: Optional[Executor] = None,
        site_prefix: Optional[str] = None,
        rng: Optional[random.Random] = None,
        id_factory: Callable[[], str] = generate_visitor_id,
    ):
        self.config = config
        self.store = DegradingKeyValueStore(store)
        self.reporter = MetricReporter(self.store, action_logger, executor=executor)
        self.site_prefix = site_prefix

        self.visitor_service = VisitorIdentityService(self.store, id_factory=id_factory)
        self.resolver = AssignmentResolver(self.store, rng=rng)

        self.visitor_id: Optional[str] = None
        self.assigned_variant: Optional[Variant] = None

    @property
    def preview_mode(self) -> PreviewMode:
        return self.config.preview_mode

    def connect(self) -> None:
        self.visitor_id = self.visitor_service.ensure_visitor_id()
        self.initialize_assignment()
        logger.debug(
            "banner.connected",
            visitor_id=self.visitor_id,
            test_id=self.config.test_id,
            variant=self.assigned_variant.value,
            preview_mode=self.config.preview_mode.value,
        )

    def initialize_assignment(self) -> Variant:
        self.assigned_variant = self.resolver.resolve(self.config.test_id, self.config.preview_mode)
        return self.assigned_variant

    def set_preview_mode(self, preview_mode: PreviewMode) -> Variant:
        """Switches preview mode and re-resolves without a page reload."""
        self.config = self.config.model_copy(update={"preview_mode": PreviewMode(preview_mode)})
        return self.initialize_assignment()

    def update_config(self, config: BannerConfigModel) -> Variant:
        self.config = config
        return self.initialize_assignment()

    @property
    def current_data(self) -> BannerDisplayModel:
        variant = self.assigned_variant or Variant.A
        return current_variant_data(variant, self.config, self.site_prefix)

    def _reporting_enabled(self) -> bool:
        # Builder previews never report
        return bool(
            self.assigned_variant
            and self.visitor_id
            and self.config.test_id
            and self.config.preview_mode == PreviewMode.AUTO
        )

    def _try_log_metric(self, action_type: ActionType) -> bool:
        if not self._reporting_enabled():
            return False
        return self.reporter.report_if_needed(
            test_id=self.config.test_id,
            variant=self.assigned_variant,
            action_type=action_type,
            visitor_id=self.visitor_id,
        )

    def render(self) -> BannerDisplayModel:
        """Produces the display bundle, then reports a View if one is still owed."""
        display = self.current_data
        self._try_log_metric(ActionType.VIEW)
        return display

    def report_click(self) -> bool:
        return self._try_log_metric(ActionType.CLICK)

    def handle_button_click(self) -> str:
        """Reports a Click if one is still owed and returns the link to follow."""
        self.report_click()
        return self.current_data.button_url

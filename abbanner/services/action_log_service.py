# services/action_log_service.py
from typing import List, Optional

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from abbanner.models.orm.action_log import ActionLogORM
from abbanner.models.schemas.action_log import (
    ActionLogCreateModel,
    ActionLogModel,
    ActionLogResponseModel,
    AbTestResultsModel,
    VariantResultModel,
)
from abbanner.models.schemas.banner import ActionType, Variant
from abbanner.repositories.action_log_repo import ActionLogRepository

logger = structlog.get_logger(__name__)


class ActionLogService:
    def __init__(self, db: Session):
        """Initializes the service with the repositories it needs."""
        self.action_log_repo = ActionLogRepository(db)

    def record_action(self, log_data: ActionLogCreateModel) -> ActionLogResponseModel:
        """Persists one View/Click action reported by a banner."""
        try:
            recorded: ActionLogORM = self.action_log_repo.create_log(log_data)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        logger.info(
            "ab_test.action_recorded",
            test_id=recorded.test_id,
            variant=recorded.variant,
            action_type=recorded.action_type,
            visitor_id=recorded.visitor_id,
        )
        return ActionLogResponseModel(success=True, log_id=recorded.log_id)

    def list_actions(
        self, test_id: str, filter_params: Optional[dict] = None
    ) -> List[ActionLogModel]:
        """Recorded actions of one test, oldest first."""
        logs = self.action_log_repo.get_logs_for_test(test_id, **(filter_params or {}))
        return [ActionLogModel.model_validate(log) for log in logs]

    def get_test_results(
        self, test_id: str, filter_params: Optional[dict] = None
    ) -> AbTestResultsModel:
        """
        Aggregates the logs of one test per variant.

        Views and clicks count distinct visitors, so a visitor whose dedup
        flag was cleared and who reported again is still counted once.
        Click-through rate is clicks / views (0.0 without views).
        """
        logs = self.action_log_repo.get_logs_for_test(test_id, **(filter_params or {}))

        visitors = {variant.value: {ActionType.VIEW.value: set(), ActionType.CLICK.value: set()} for variant in Variant}
        all_visitors = set()
        for log in logs:
            visitors[log.variant][log.action_type].add(log.visitor_id)
            all_visitors.add(log.visitor_id)

        variants = {}
        for variant_name, by_action in visitors.items():
            views = len(by_action[ActionType.VIEW.value])
            clicks = len(by_action[ActionType.CLICK.value])
            variants[variant_name] = VariantResultModel(
                views=views,
                clicks=clicks,
                click_through_rate=clicks / views if views else 0.0,
            )

        return AbTestResultsModel(
            test_id=test_id,
            total_visitors=len(all_visitors),
            variants=variants,
        )

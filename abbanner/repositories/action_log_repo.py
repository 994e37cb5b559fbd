import uuid
from datetime import datetime

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import select

from abbanner.models.orm.action_log import ActionLogORM
from abbanner.models.schemas.action_log import ActionLogCreateModel

logger = structlog.get_logger(__name__)


class ActionLogRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def get_logs_for_test(self, test_id: str, **kwargs) -> list[ActionLogORM]:
        """
        Retrieves action logs for a test, applying optional filters
        for action type and time range.
        """
        stmt = select(ActionLogORM).where(ActionLogORM.test_id == test_id)

        if action_type := kwargs.get("action_type"):
            stmt = stmt.where(ActionLogORM.action_type == action_type)

        if start_date := kwargs.get("start_date"):
            stmt = stmt.where(ActionLogORM.timestamp >= start_date)

        if end_date := kwargs.get("end_date"):
            stmt = stmt.where(ActionLogORM.timestamp <= end_date)

        return self.db.scalars(stmt.order_by(ActionLogORM.timestamp)).all()

    def create_log(self, log_data: ActionLogCreateModel) -> ActionLogORM:
        """
        Creates a new action log record.

        Args:
            log_data: The validated logging payload.

        Returns:
            The created ActionLogORM object.
        """
        db_log = ActionLogORM(
            log_id=str(uuid.uuid4()),
            test_id=log_data.test_id,
            variant=log_data.variant.value,
            action_type=log_data.action_type.value,
            visitor_id=log_data.visitor_id,
            timestamp=datetime.utcnow(),
        )
        try:
            self.db.add(db_log)
            self.db.commit()
            self.db.refresh(db_log)

        except IntegrityError as e:
            self.db.rollback()
            logger.warning("action_log.integrity_error", error=str(e).splitlines()[0])
            raise ValueError(f"Invalid action log: {str(e).splitlines()[0]}")

        except OperationalError as e:
            self.db.rollback()
            logger.error("action_log.database_unavailable", error=str(e))

            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database connection failed. Please try again shortly.",
            )

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("action_log.database_error", error=str(e))

            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An unexpected database error occurred.",
            )

        return db_log

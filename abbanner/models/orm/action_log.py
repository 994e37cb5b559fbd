from sqlalchemy import Column, String, DateTime
from datetime import datetime

from .base import Base


class ActionLogORM(Base):
    __tablename__ = "ab_test_action_logs"

    log_id = Column(String, primary_key=True, index=True)

    test_id = Column(String, nullable=False, index=True)
    variant = Column(String(1), nullable=False)

    # "View" or "Click"
    action_type = Column(String, nullable=False, index=True)

    visitor_id = Column(String, nullable=False, index=True)

    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

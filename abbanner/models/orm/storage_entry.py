from sqlalchemy import Column, String, Text, DateTime, PrimaryKeyConstraint
from datetime import datetime

from .base import Base


class StorageEntryORM(Base):
    """One key/value pair of a visitor's persistent storage.

    ``namespace`` plays the role of the browser storage origin: every visitor
    cookie maps to its own namespace.
    """

    __tablename__ = "storage_entries"

    namespace = Column(String, nullable=False, index=True)
    key = Column(String, nullable=False)
    value = Column(Text, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("namespace", "key", name="storage_entry_pk"),
    )

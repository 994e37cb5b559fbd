# repositories/storage_repo.py
from datetime import datetime
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from abbanner.models.orm.storage_entry import StorageEntryORM


class StorageRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def get_entry(self, namespace: str, key: str) -> Optional[StorageEntryORM]:
        stmt = select(StorageEntryORM).where(
            StorageEntryORM.namespace == namespace,
            StorageEntryORM.key == key,
        )
        return self.db.scalars(stmt).one_or_none()

    def upsert_entry(self, namespace: str, key: str, value: str) -> StorageEntryORM:
        """
        Writes ``value`` under ``key``, replacing any previous value.

        Last write wins: two writers racing on the same key both succeed and
        the later commit is what the next read observes.
        """
        try:
            entry = self.get_entry(namespace, key)
            if entry is None:
                entry = StorageEntryORM(
                    namespace=namespace,
                    key=key,
                    value=value,
                    updated_at=datetime.utcnow(),
                )
                self.db.add(entry)
            else:
                entry.value = value

            self.db.commit()
            self.db.refresh(entry)
            return entry

        except SQLAlchemyError:
            self.db.rollback()
            raise

    def delete_entry(self, namespace: str, key: str) -> None:
        try:
            self.db.execute(
                delete(StorageEntryORM).where(
                    StorageEntryORM.namespace == namespace,
                    StorageEntryORM.key == key,
                )
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

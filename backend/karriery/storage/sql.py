"""SQLAlchemy-backed substrate: one row per collection blob."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..exceptions import PersistenceUnavailable
from ..models import Base, KeyValueEntry
from .base import KeyValueSubstrate

logger = logging.getLogger(__name__)


class SqlSubstrate(KeyValueSubstrate):
    """Key-value storage on top of the `kv_entries` table."""

    def __init__(self, database_url: str) -> None:
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(
            database_url,
            connect_args=connect_args,
            pool_pre_ping=True,
            future=True,
        )
        self._session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, future=True
        )
        Base.metadata.create_all(bind=self.engine)

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                row = session.get(KeyValueEntry, key)
                return row.value if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"Could not read '{key}'") from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._session_factory.begin() as session:
                row = session.get(KeyValueEntry, key)
                if row is None:
                    session.add(KeyValueEntry(key=key, value=value))
                else:
                    row.value = value
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"Could not write '{key}'") from exc

    def remove_item(self, key: str) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"Could not remove '{key}'") from exc

    def keys(self) -> Iterable[str]:
        try:
            with self._session_factory() as session:
                return list(session.scalars(select(KeyValueEntry.key)).all())
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable("Could not list keys") from exc

    def close(self) -> None:
        try:
            self.engine.dispose()
        except SQLAlchemyError:
            logger.exception("Failed to dispose storage engine")

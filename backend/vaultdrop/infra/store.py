"""
Message store.

Defines the persistence contract the lifecycle and the reaper rely on,
and its SQLAlchemy implementation (PostgreSQL in production, SQLite for
local runs and tests).

Every removal goes through a single DELETE statement. Whoever's DELETE
matches the row owns the outcome; everyone else sees zero rows. Reads
never decide who gets a message.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable

from sqlalchemy import select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from vaultdrop.core.errors import BackendUnavailableError, ConflictError, UnauthorizedError
from vaultdrop.core.message import Message
from vaultdrop.infra.postgres import db_session, make_session_factory
from vaultdrop.models.message import MessageRecord

logger = logging.getLogger(__name__)

Authorizer = Callable[[Message], bool]


@runtime_checkable
class PersistentStore(Protocol):
    """Storage backend contract for one-time messages."""

    def insert(self, message: Message) -> None:
        """Store a new message. Raises ConflictError on a duplicate handle."""
        ...

    def take_by_handle(self, handle: str, authorize: Optional[Authorizer] = None) -> Optional[Message]:
        """
        Atomically remove and return the message for handle.

        Returns None if there is no such message or a concurrent caller
        removed it first. Raises UnauthorizedError, without removing
        anything, when authorize rejects the message.
        """
        ...

    def delete_by_handle(self, handle: str) -> bool:
        """Remove the message without returning it. True if this call removed it."""
        ...

    def delete_older_than(self, cutoff: datetime) -> int:
        """Remove every message created before cutoff; return how many."""
        ...

    def health_check(self) -> None:
        """Raise BackendUnavailableError if the backend does not answer."""
        ...


def _to_message(source) -> Message:
    return Message(
        handle=source.handle,
        payload=source.payload,
        notify_address=source.notify_address,
        reference_label=source.reference_label,
        access_secret=source.access_secret,
        created_at=source.created_at,
    )


class SQLMessageStore:
    """PersistentStore backed by the ``messages`` table."""

    def __init__(self, engine: Engine, session_factory: Optional[sessionmaker] = None):
        self.engine = engine
        self.session_factory = session_factory or make_session_factory(engine)
        self._table = MessageRecord.__table__

    def insert(self, message: Message) -> None:
        record = MessageRecord(
            handle=message.handle,
            payload=message.payload,
            notify_address=message.notify_address,
            reference_label=message.reference_label,
            access_secret=message.access_secret,
            created_at=message.created_at,
        )
        try:
            with db_session(self.session_factory) as session:
                session.add(record)
        except IntegrityError as e:
            raise ConflictError(message.handle) from e
        except SQLAlchemyError as e:
            logger.error("insert failed for %s: %s", message.handle, e)
            raise BackendUnavailableError("Could not store message") from e

    def take_by_handle(self, handle: str, authorize: Optional[Authorizer] = None) -> Optional[Message]:
        try:
            with db_session(self.session_factory) as session:
                record = session.execute(
                    select(MessageRecord).where(MessageRecord.handle == handle)
                ).scalar_one_or_none()
                if record is None:
                    return None
                record_id = record.id
                candidate = _to_message(record)

            # The secret is immutable, so checking it outside the delete is safe
            if authorize is not None and not authorize(candidate):
                raise UnauthorizedError(handle)

            # Keyed on the row id so a later message reusing the handle is never taken
            stmt = (
                self._table.delete()
                .where(self._table.c.id == record_id)
                .returning(*self._table.c)
            )
            with db_session(self.session_factory) as session:
                row = session.execute(stmt).first()
        except SQLAlchemyError as e:
            logger.error("take failed for %s: %s", handle, e)
            raise BackendUnavailableError("Could not read message") from e

        if row is None:
            # Lost the race to another reader or to the reaper
            return None
        return _to_message(row)

    def delete_by_handle(self, handle: str) -> bool:
        stmt = self._table.delete().where(self._table.c.handle == handle)
        try:
            with db_session(self.session_factory) as session:
                result = session.execute(stmt)
                return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error("delete failed for %s: %s", handle, e)
            raise BackendUnavailableError("Could not delete message") from e

    def delete_older_than(self, cutoff: datetime) -> int:
        stmt = self._table.delete().where(self._table.c.created_at < cutoff)
        try:
            with db_session(self.session_factory) as session:
                result = session.execute(stmt)
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error("stale message purge failed: %s", e)
            raise BackendUnavailableError("Could not purge stale messages") from e

    def health_check(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise BackendUnavailableError("Database is not reachable") from e

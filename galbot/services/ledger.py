"""Persistent per-user credit ledger backed by SQLAlchemy."""

import asyncio
import logging
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import create_engine, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from galbot.database.models import Base, UserCredits
from galbot.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

IN_MEMORY_DATABASE_URL = "sqlite://"


@dataclass(frozen=True)
class CreditBalance:
    """Detached snapshot of a user's balance."""

    user_id: str
    credits: int
    last_updated: datetime


class CreditLedger(ABC):
    """Data-access interface for per-user balances.

    Implementations own the persisted balances exclusively. They do not
    apply business rules; those live in CreditManager.
    """

    async def __aenter__(self) -> "CreditLedger":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @abstractmethod
    async def open(self) -> None:
        """Acquire the underlying connection/handle."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection/handle."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[CreditBalance]:
        """Return the stored balance, or None if the user has no record."""

    @abstractmethod
    async def set(self, user_id: str, credits: int) -> CreditBalance:
        """Create or overwrite the user's balance."""

    @abstractmethod
    async def try_decrement(self, user_id: str, amount: int) -> Optional[CreditBalance]:
        """Atomically subtract ``amount`` if the balance covers it.

        Returns the new balance, or None when the balance was too low (or
        the record is missing). Never leaves a negative balance behind.
        """

    @abstractmethod
    async def increment(self, user_id: str, amount: int) -> CreditBalance:
        """Atomically add ``amount`` to an existing record."""


class SQLCreditLedger(CreditLedger):
    """CreditLedger stored in a relational database.

    Blocking SQLAlchemy calls run in a worker thread so the event loop is
    never stalled. Decrements are a single conditional UPDATE, so they stay
    correct when several processes share the database.
    """

    def __init__(self, database_url: str = "sqlite:///data/credits.db"):
        self.database_url = database_url
        self.engine = None
        self.SessionLocal: Optional[sessionmaker] = None
        # SQLite allows one writer; serialize our own threads on it.
        self._sqlite_lock = threading.Lock() if database_url.startswith("sqlite") else None

    @classmethod
    def from_path(cls, database_path: str) -> "SQLCreditLedger":
        directory = os.path.dirname(database_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return cls(f"sqlite:///{database_path}")

    @classmethod
    def in_memory(cls) -> "SQLCreditLedger":
        return cls(IN_MEMORY_DATABASE_URL)

    def _create_engine(self):
        if self.database_url in (IN_MEMORY_DATABASE_URL, "sqlite:///:memory:"):
            return create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        connect_args = {"check_same_thread": False} if self.database_url.startswith("sqlite") else {}
        return create_engine(
            self.database_url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args=connect_args,
        )

    def _open_sync(self) -> None:
        try:
            self.engine = self._create_engine()
            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error("Failed to open credit ledger at %s: %s", self.database_url, e)
            raise StoreUnavailable("Failed to open credit ledger") from e
        logger.info("Credit ledger opened")

    async def open(self) -> None:
        if self.engine is not None:
            return
        await asyncio.to_thread(self._open_sync)

    async def close(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        logger.info("Credit ledger closed")

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        if self.SessionLocal is None:
            raise StoreUnavailable("Credit ledger is not open")
        with self._sqlite_lock or nullcontext():
            session = self.SessionLocal()
            try:
                yield session
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Credit ledger operation failed: %s", e)
                raise StoreUnavailable(
                    "Credit ledger operation failed", {"error": type(e).__name__}
                ) from e
            finally:
                session.close()

    @staticmethod
    def _snapshot(row: UserCredits) -> CreditBalance:
        return CreditBalance(
            user_id=row.user_id,
            credits=row.credits,
            last_updated=row.last_updated,
        )

    def _select_row(self, session: Session, user_id: str) -> Optional[UserCredits]:
        return session.execute(
            select(UserCredits).where(UserCredits.user_id == user_id)
        ).scalar_one_or_none()

    # --- Sync operations (run in a worker thread) ---

    def _get_sync(self, user_id: str) -> Optional[CreditBalance]:
        with self._session_scope() as session:
            row = self._select_row(session, user_id)
            return self._snapshot(row) if row else None

    def _set_sync(self, user_id: str, credits: int) -> CreditBalance:
        with self._session_scope() as session:
            now = datetime.utcnow()
            row = self._select_row(session, user_id)
            if row is None:
                row = UserCredits(user_id=user_id, credits=credits, last_updated=now)
                session.add(row)
                try:
                    session.commit()
                except IntegrityError:
                    # Another process created the record first.
                    session.rollback()
                    row = self._select_row(session, user_id)
                    if row is None:
                        raise
                    row.credits = credits
                    row.last_updated = now
                    session.commit()
            else:
                row.credits = credits
                row.last_updated = now
                session.commit()
            return self._snapshot(row)

    def _try_decrement_sync(self, user_id: str, amount: int) -> Optional[CreditBalance]:
        with self._session_scope() as session:
            result = session.execute(
                update(UserCredits)
                .where(UserCredits.user_id == user_id, UserCredits.credits >= amount)
                .values(credits=UserCredits.credits - amount, last_updated=datetime.utcnow())
            )
            session.commit()
            if result.rowcount == 0:
                return None
            row = self._select_row(session, user_id)
            return self._snapshot(row)

    def _increment_sync(self, user_id: str, amount: int) -> CreditBalance:
        with self._session_scope() as session:
            result = session.execute(
                update(UserCredits)
                .where(UserCredits.user_id == user_id)
                .values(credits=UserCredits.credits + amount, last_updated=datetime.utcnow())
            )
            session.commit()
            if result.rowcount == 0:
                raise StoreUnavailable("No credit record to increment", {"user_id": user_id})
            row = self._select_row(session, user_id)
            return self._snapshot(row)

    # --- Async interface ---

    async def get(self, user_id: str) -> Optional[CreditBalance]:
        return await asyncio.to_thread(self._get_sync, str(user_id))

    async def set(self, user_id: str, credits: int) -> CreditBalance:
        return await asyncio.to_thread(self._set_sync, str(user_id), credits)

    async def try_decrement(self, user_id: str, amount: int) -> Optional[CreditBalance]:
        return await asyncio.to_thread(self._try_decrement_sync, str(user_id), amount)

    async def increment(self, user_id: str, amount: int) -> CreditBalance:
        return await asyncio.to_thread(self._increment_sync, str(user_id), amount)

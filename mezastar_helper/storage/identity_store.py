"""SQLite-backed store of trainer identities.

The uniqueness of ``trainer_id`` is enforced by a lookup followed by an
insert. The two statements are not one transaction, so the guarantee only
holds while a single writer (one open helper session) talks to the file.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from ..core.errors import DuplicateIdentity, StoreError, ValidationError
from ..core.logging_utils import get_module_logger, redact_token

logger = get_module_logger("IdentityStore")

T = TypeVar("T")

MEMORY_DB = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS identities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        trainer_id TEXT NOT NULL,
        alias TEXT NOT NULL,
        created_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_identities_trainer_id ON identities(trainer_id)",
    "CREATE INDEX IF NOT EXISTS idx_identities_alias ON identities(alias)",
    # Reserved for cached support metadata; the identity flows never write it.
    """
    CREATE TABLE IF NOT EXISTS support_cache (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL,
        pokemon TEXT NOT NULL,
        move TEXT NOT NULL,
        type TEXT NOT NULL,
        added_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_support_cache_code ON support_cache(code)",
)

_COLUMNS = "id, trainer_id, alias, created_at"


@dataclass(frozen=True)
class TrainerIdentity:
    id: int
    trainer_id: str
    alias: str
    created_at: int  # epoch milliseconds

    @property
    def short_token(self) -> str:
        """Token preview used in dialogs (first 16 characters)."""
        return f"{self.trainer_id[:16]}..."

    @classmethod
    def from_row(cls, row: tuple) -> "TrainerIdentity":
        return cls(id=row[0], trainer_id=row[1], alias=row[2], created_at=row[3])


class IdentityStore:
    """Durable collection of :class:`TrainerIdentity` records.

    All public operations are coroutines; the blocking sqlite calls run in a
    worker thread behind a lock so the event loop never stalls on disk I/O.
    """

    def __init__(
        self,
        path: Union[str, Path] = MEMORY_DB,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = path
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    # ------------------------------------------------------------------
    # Lifecycle

    def open(self) -> "IdentityStore":
        if self._conn is not None:
            return self
        try:
            if self.path != MEMORY_DB:
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
        except (sqlite3.Error, OSError) as exc:
            logger.error("Failed to open identity store %s: %s", self.path, exc)
            raise StoreError(f"Could not open identity store: {exc}") from exc
        self._conn = conn
        logger.debug("Opened identity store at %s", self.path)
        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    async def __aenter__(self) -> "IdentityStore":
        return self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal helpers

    def _run_locked(self, operation: Callable[[sqlite3.Connection], T]) -> T:
        with self._lock:
            if self._conn is None:
                raise StoreError("Identity store is not open")
            try:
                return operation(self._conn)
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StoreError(f"Storage operation failed: {exc}") from exc

    async def _run(self, operation: Callable[[sqlite3.Connection], T]) -> T:
        return await asyncio.to_thread(self._run_locked, operation)

    # ------------------------------------------------------------------
    # Operations

    async def add(self, trainer_id: str, alias: str) -> TrainerIdentity:
        """Insert a new identity after trimming both fields.

        Raises:
            ValidationError: either field is blank after trimming.
            DuplicateIdentity: an identity with this token already exists.
            StoreError: the underlying storage failed.
        """
        token = trainer_id.strip()
        label = alias.strip()
        if not token or not label:
            raise ValidationError()

        existing = await self.lookup(token)
        if existing is not None:
            logger.info("Rejected duplicate trainer ID %s", redact_token(token))
            raise DuplicateIdentity(token)

        created_at = int(self._clock() * 1000)

        def _insert(conn: sqlite3.Connection) -> TrainerIdentity:
            cursor = conn.execute(
                "INSERT INTO identities (trainer_id, alias, created_at) VALUES (?, ?, ?)",
                (token, label, created_at),
            )
            conn.commit()
            return TrainerIdentity(
                id=cursor.lastrowid,
                trainer_id=token,
                alias=label,
                created_at=created_at,
            )

        identity = await self._run(_insert)
        logger.info("Stored trainer %r (id=%d, token=%s)", label, identity.id, redact_token(token))
        return identity

    async def list(self) -> list[TrainerIdentity]:
        """Snapshot of every identity in insertion order."""

        def _select(conn: sqlite3.Connection) -> list[TrainerIdentity]:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM identities ORDER BY id").fetchall()
            return [TrainerIdentity.from_row(row) for row in rows]

        return await self._run(_select)

    async def lookup(self, trainer_id: str) -> Optional[TrainerIdentity]:
        def _select(conn: sqlite3.Connection) -> Optional[TrainerIdentity]:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM identities WHERE trainer_id = ? ORDER BY id LIMIT 1",
                (trainer_id,),
            ).fetchone()
            return TrainerIdentity.from_row(row) if row else None

        return await self._run(_select)

    async def get(self, identity_id: int) -> Optional[TrainerIdentity]:
        def _select(conn: sqlite3.Connection) -> Optional[TrainerIdentity]:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM identities WHERE id = ?",
                (identity_id,),
            ).fetchone()
            return TrainerIdentity.from_row(row) if row else None

        return await self._run(_select)

    async def delete(self, identity_id: int) -> None:
        """Remove an identity by surrogate key; a missing key is a no-op."""

        def _delete(conn: sqlite3.Connection) -> int:
            cursor = conn.execute("DELETE FROM identities WHERE id = ?", (identity_id,))
            conn.commit()
            return cursor.rowcount

        removed = await self._run(_delete)
        if removed:
            logger.info("Deleted trainer id=%d", identity_id)
        else:
            logger.debug("Delete of missing trainer id=%d ignored", identity_id)


__all__ = ["IdentityStore", "TrainerIdentity", "MEMORY_DB"]

import logging
import sqlite3
from contextlib import asynccontextmanager

import aiosqlite

from finflow.config import settings
from finflow.errors import InvalidRecord, StoreUnavailable

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY,
    owner_id TEXT NOT NULL,
    kind TEXT NOT NULL CHECK(kind IN ('income', 'expense')),
    amount REAL NOT NULL,
    category TEXT NOT NULL CHECK(length(trim(category)) > 0),
    description TEXT NOT NULL DEFAULT '',
    occurred_at TIMESTAMP NOT NULL,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    CHECK((kind = 'income' AND amount >= 0) OR (kind = 'expense' AND amount <= 0))
);

CREATE TABLE IF NOT EXISTS chat_bindings (
    external_chat_id INTEGER PRIMARY KEY,
    owner_id TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS link_tokens (
    token TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_transactions_owner_occurred
    ON transactions(owner_id, occurred_at DESC, created_at DESC, id);
CREATE INDEX IF NOT EXISTS idx_chat_bindings_owner ON chat_bindings(owner_id);
"""

_db: aiosqlite.Connection | None = None


async def get_db() -> aiosqlite.Connection:
    global _db
    if _db is None:
        _db = await aiosqlite.connect(settings.db_path)
        _db.row_factory = aiosqlite.Row
        await _db.execute("PRAGMA journal_mode=WAL")
    return _db


async def close_db():
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def init_db():
    db = await get_db()
    await db.executescript(SCHEMA)
    await db.commit()


@asynccontextmanager
async def connection():
    """Yield the shared connection, translating sqlite errors.

    Constraint violations become ``InvalidRecord``; any other backend failure
    is reported as ``StoreUnavailable``.
    """
    try:
        yield await get_db()
    except sqlite3.IntegrityError as exc:
        logger.error("Store rejected record: %s", exc)
        raise InvalidRecord(str(exc)) from exc
    except sqlite3.Error as exc:
        logger.error("Store failure: %s", exc)
        raise StoreUnavailable(str(exc)) from exc

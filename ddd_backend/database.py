"""
DDD Service Backend - SQLite Access Helpers
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-19): busy_timeout so concurrent finishes wait on the reception
                      counter instead of failing; path read at call time
v1.0.0 (2026-09-28): Connection helpers for customers, employees, solutions,
                      lucrari and the reception counter

One short-lived aiosqlite connection per request or submission step. The
management routers run their own SQL through these helpers; the submission
path goes through services.data_store, which wraps the same helpers.

Customer job lists are the only structured column and are stored as JSON
TEXT (see json_col / from_json).
"""

import os
import json
import aiosqlite
from contextlib import asynccontextmanager

from ddd_backend.config import settings

# ms a writer waits for the lock held by another finish in progress
BUSY_TIMEOUT_MS = 5000


def get_db_path() -> str:
    """Current SQLITE_DB_PATH, with its directory created on first use"""
    db_path = settings.SQLITE_DB_PATH
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    return db_path


@asynccontextmanager
async def get_db():
    """
    Connection to the service database.

    Rows come back as aiosqlite.Row so the helpers below can turn them into
    plain dicts for the pydantic models (Customer, Employee, Solution).
    """
    db = await aiosqlite.connect(get_db_path())
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    try:
        yield db
    finally:
        await db.close()


async def execute_one(db, sql: str, params=()) -> dict | None:
    cursor = await db.execute(sql, params)
    row = await cursor.fetchone()
    return dict(row) if row else None


async def execute_all(db, sql: str, params=()) -> list[dict]:
    cursor = await db.execute(sql, params)
    return [dict(row) for row in await cursor.fetchall()]


async def execute_insert(db, sql: str, params=()) -> int:
    """INSERT and commit; returns the new row id (customer, lucrare, ...)"""
    cursor = await db.execute(sql, params)
    await db.commit()
    return cursor.lastrowid


async def execute_update(db, sql: str, params=()) -> int:
    """UPDATE/DELETE and commit; returns the affected row count (0 = not found)"""
    cursor = await db.execute(sql, params)
    await db.commit()
    return cursor.rowcount


def json_col(data) -> str:
    """Customer jobs list as JSON TEXT; None is stored as an empty list"""
    if data is None:
        return "[]"
    return json.dumps(data, default=str)


def from_json(text: str | None):
    """Parsed JSON column, or None when empty or unreadable"""
    if not text:
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None

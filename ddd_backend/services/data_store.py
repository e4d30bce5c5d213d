"""
DDD Service Backend - Data Store Client
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-12): increment_reception_number uses UPDATE ... RETURNING
v1.0.0 (2026-09-28): Initial table gateway for the submission workflow

Table-oriented read/write/delete by equality filter. Every aiosqlite failure
is raised as ExternalCallError so callers see one failure type for the store.
"""

import logging
from typing import Optional, Dict, Any, List

import aiosqlite

from ddd_backend.database import (
    get_db, execute_one, execute_all, execute_insert, execute_update,
    json_col, from_json
)
from ddd_backend.errors import ExternalCallError

logger = logging.getLogger(__name__)

TABLES = {"customers", "employees", "solutions", "lucrari", "reception_number"}
JSON_COLUMNS = {"customers": {"jobs"}}


def _check_table(table: str):
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")


def _where(filters: Optional[Dict[str, Any]]):
    if not filters:
        return "", []
    clauses = [f"{column} = ?" for column in filters]
    return " WHERE " + " AND ".join(clauses), list(filters.values())


def _encode(table: str, values: Dict[str, Any]) -> Dict[str, Any]:
    json_cols = JSON_COLUMNS.get(table, set())
    return {k: json_col(v) if k in json_cols else v for k, v in values.items()}


def _decode(table: str, row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    for column in JSON_COLUMNS.get(table, set()):
        if column in row:
            row[column] = from_json(row[column]) or []
    return row


class DataStore:
    """Gateway to the SQLite tables used by the workflow"""

    async def select(self, table: str, filters: Optional[Dict[str, Any]] = None,
                     order_by: Optional[str] = None) -> List[dict]:
        _check_table(table)
        where, params = _where(filters)
        sql = f"SELECT * FROM {table}{where}"
        if order_by:
            sql += f" ORDER BY {order_by}"
        try:
            async with get_db() as db:
                rows = await execute_all(db, sql, params)
        except aiosqlite.Error as e:
            raise ExternalCallError(f"select from {table} failed: {e}") from e
        return [_decode(table, row) for row in rows]

    async def select_one(self, table: str, filters: Dict[str, Any]) -> Optional[dict]:
        _check_table(table)
        where, params = _where(filters)
        try:
            async with get_db() as db:
                row = await execute_one(db, f"SELECT * FROM {table}{where} LIMIT 1", params)
        except aiosqlite.Error as e:
            raise ExternalCallError(f"select from {table} failed: {e}") from e
        return _decode(table, row)

    async def insert(self, table: str, values: Dict[str, Any]) -> int:
        _check_table(table)
        values = _encode(table, values)
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        try:
            async with get_db() as db:
                return await execute_insert(
                    db, f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    list(values.values())
                )
        except aiosqlite.Error as e:
            raise ExternalCallError(f"insert into {table} failed: {e}") from e

    async def update(self, table: str, values: Dict[str, Any],
                     filters: Dict[str, Any]) -> int:
        _check_table(table)
        if not filters:
            raise ValueError("update requires a filter")
        values = _encode(table, values)
        assignments = ", ".join(f"{column} = ?" for column in values)
        where, params = _where(filters)
        try:
            async with get_db() as db:
                return await execute_update(
                    db, f"UPDATE {table} SET {assignments}{where}",
                    list(values.values()) + params
                )
        except aiosqlite.Error as e:
            raise ExternalCallError(f"update of {table} failed: {e}") from e

    async def delete(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        _check_table(table)
        where, params = _where(filters)
        try:
            async with get_db() as db:
                return await execute_update(db, f"DELETE FROM {table}{where}", params)
        except aiosqlite.Error as e:
            raise ExternalCallError(f"delete from {table} failed: {e}") from e

    async def fetch_reception_number(self) -> int:
        row = await self.select_one("reception_number", {"id": 1})
        if row is None:
            raise ExternalCallError("reception_number row is missing")
        return row["current_number"]

    async def increment_reception_number(self) -> int:
        """Atomic server-side increment; returns the new value"""
        try:
            async with get_db() as db:
                cursor = await db.execute(
                    "UPDATE reception_number SET current_number = current_number + 1 "
                    "WHERE id = 1 RETURNING current_number"
                )
                row = await cursor.fetchone()
                await db.commit()
        except aiosqlite.Error as e:
            raise ExternalCallError(f"reception number increment failed: {e}") from e
        if row is None:
            raise ExternalCallError("reception_number row is missing")
        return row[0]

    async def deduct_solution_stock(self, solution_id: int, quantity: float) -> Optional[float]:
        """Subtract quantity from remaining stock; returns the new remaining value"""
        try:
            async with get_db() as db:
                cursor = await db.execute(
                    "UPDATE solutions SET remaining_quantity = remaining_quantity - ? "
                    "WHERE id = ? RETURNING remaining_quantity",
                    (quantity, solution_id)
                )
                row = await cursor.fetchone()
                await db.commit()
        except aiosqlite.Error as e:
            raise ExternalCallError(f"stock deduction for solution {solution_id} failed: {e}") from e
        return row[0] if row else None

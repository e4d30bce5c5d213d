"""
DDD Service Backend - Database Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): product{n}_concentration columns on lucrari;
                      client_representative column; seed on empty database
v1.0.0 (2026-09-28): Initial schema: customers, employees, solutions,
                      lucrari, reception_number
"""

from .customer import Customer, Job, default_jobs
from .employee import Employee
from .solution import Solution
from .lucrare import Lucrare, ProcedureSlot, PROCEDURE_SLOTS
from .workflow import (
    Operation, WorkflowStep, DraftRecord, ProcesVerbal
)

import aiosqlite
import logging

logger = logging.getLogger(__name__)


async def _add_column_if_missing(db, table, column, col_type, default=None):
    """Idempotent ALTER TABLE ADD COLUMN"""
    cursor = await db.execute(f"PRAGMA table_info({table})")
    existing = {row[1] for row in await cursor.fetchall()}
    if column not in existing:
        default_clause = f" DEFAULT {default}" if default is not None else ""
        await db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}{default_clause}")


async def init_db(seed: bool = False):
    """Initialize SQLite database with the DDD service schema"""
    from ddd_backend.database import get_db_path
    db_path = get_db_path()
    logger.info(f"Initializing database: {db_path}")

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA foreign_keys=ON")

        # ================================================================
        # CUSTOMERS (jobs = JSON list of {label, value, active, surface})
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS customers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT,
                phone TEXT,
                contract_number TEXT,
                location TEXT,
                surface REAL,
                jobs TEXT NOT NULL DEFAULT '[]',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # ================================================================
        # EMPLOYEES
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS employees (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                id_series TEXT,
                id_number TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # ================================================================
        # SOLUTIONS (chemical stock)
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS solutions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                lot TEXT,
                concentration TEXT,
                unit_of_measure TEXT DEFAULT 'ml',
                quantity_per_sqm REAL NOT NULL DEFAULT 0,
                initial_stock REAL NOT NULL DEFAULT 0,
                total_quantity REAL NOT NULL DEFAULT 0,
                remaining_quantity REAL NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # ================================================================
        # LUCRARI (service records, fixed procedure1..4 layout)
        # ================================================================
        slot_columns = ",\n".join(
            f"""                procedure{n} TEXT,
                product{n}_name TEXT,
                product{n}_lot TEXT,
                product{n}_quantity TEXT"""
            for n in range(1, PROCEDURE_SLOTS + 1)
        )
        await db.execute(f"""
            CREATE TABLE IF NOT EXISTS lucrari (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                numar_ordine INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                customer_id INTEGER,
                client_name TEXT NOT NULL,
                client_contract TEXT,
                client_location TEXT,
                client_surface REAL,
                employee_id INTEGER,
                employee_name TEXT NOT NULL,
{slot_columns}
            )
        """)
        await _add_column_if_missing(db, "lucrari", "client_representative", "TEXT")
        for n in range(1, PROCEDURE_SLOTS + 1):
            await _add_column_if_missing(db, "lucrari", f"product{n}_concentration", "TEXT")

        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_lucrari_created ON lucrari(created_at)"
        )

        # ================================================================
        # RECEPTION NUMBER (single row)
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS reception_number (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                current_number INTEGER NOT NULL DEFAULT 1
            )
        """)
        await db.execute(
            "INSERT OR IGNORE INTO reception_number (id, current_number) VALUES (1, 1)"
        )

        if seed:
            from ddd_backend.seed import seed_if_empty
            await seed_if_empty(db)

        await db.commit()

    logger.info("Database initialized")

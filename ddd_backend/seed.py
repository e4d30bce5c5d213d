"""
DDD Service Backend - Database Seed Data
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial seed data: 3 customers, 3 employees, 5 solutions
"""

import json
import logging

log = logging.getLogger(__name__)


def _jobs(dezinfectie=None, dezinsectie=None, dezinsectie2=None, deratizare=None):
    """Job list with a surface per contracted service (None = not contracted)"""
    surfaces = [
        ("Dezinfectie", "dezinfectie", dezinfectie),
        ("Dezinsectie", "dezinsectie", dezinsectie),
        ("Dezinsectie2", "dezinsectie2", dezinsectie2),
        ("Deratizare", "deratizare", deratizare),
    ]
    return [
        {"label": label, "value": value, "active": surface is not None, "surface": surface}
        for label, value, surface in surfaces
    ]


# =============================================================================
# CUSTOMERS (3 records)
# =============================================================================

SEED_CUSTOMERS = [
    {"id": 1, "name": "SC Panificatia Dorna SRL", "email": "office@panificatia-dorna.ro",
     "phone": "0230 521 114", "contract_number": "C-2026-014",
     "location": "Str. Garii 12, Vatra Dornei", "surface": 850,
     "jobs": _jobs(dezinfectie=850, dezinsectie=850, deratizare=400)},
    {"id": 2, "name": "Scoala Gimnaziala nr. 3", "email": "secretariat@scoala3.ro",
     "phone": "0230 522 310", "contract_number": "C-2026-021",
     "location": "Bd. Unirii 5, Suceava", "surface": 1200,
     "jobs": _jobs(dezinsectie=1200, dezinsectie2=600)},
    {"id": 3, "name": "Hotel Bucovina", "email": "receptie@hotelbucovina.ro",
     "phone": "0230 511 887", "contract_number": "C-2026-030",
     "location": "Str. Stefan cel Mare 44, Gura Humorului", "surface": 2300,
     "jobs": _jobs(dezinfectie=1500, deratizare=2300)},
]


# =============================================================================
# EMPLOYEES (3 records)
# =============================================================================

SEED_EMPLOYEES = [
    {"id": 1, "name": "Ionut Popescu", "id_series": "SV", "id_number": "481209"},
    {"id": 2, "name": "Maria Ciobanu", "id_series": "SV", "id_number": "513377"},
    {"id": 3, "name": "Andrei Rusu", "id_series": "XV", "id_number": "102845"},
]


# =============================================================================
# SOLUTIONS (5 records)
# =============================================================================

SEED_SOLUTIONS = [
    {"id": 1, "name": "Biocid Dezinfect 20", "lot": "RO/2024/0112",
     "concentration": "2", "unit_of_measure": "ml", "quantity_per_sqm": 0.05,
     "stock": 25000},
    {"id": 2, "name": "K-Othrine SC 25", "lot": "RO/2023/0874",
     "concentration": "0.5", "unit_of_measure": "ml", "quantity_per_sqm": 0.02,
     "stock": 10000},
    {"id": 3, "name": "Cyperkill Plus", "lot": "RO/2024/0301",
     "concentration": "1", "unit_of_measure": "ml", "quantity_per_sqm": 0.03,
     "stock": 8000},
    {"id": 4, "name": "Brodifacoum Pasta", "lot": "RO/2022/1190",
     "concentration": "0.005", "unit_of_measure": "g", "quantity_per_sqm": 0.2,
     "stock": 15000},
    {"id": 5, "name": "Virkon S", "lot": "RO/2024/0055",
     "concentration": "1", "unit_of_measure": "g", "quantity_per_sqm": 0.01,
     "stock": 5000},
]


# =============================================================================
# seed_if_empty(db): populate tables when they are empty
# =============================================================================

async def seed_if_empty(db):
    """Populate customers, employees and solutions if the tables are empty.

    The reception counter and lucrari are never seeded.
    """

    async def _count(table: str) -> int:
        row = await db.execute(f"SELECT COUNT(*) FROM {table}")
        result = await row.fetchone()
        return result[0] if result else 0

    # ------------------------------------------------------------------
    # 1. CUSTOMERS
    # ------------------------------------------------------------------
    if await _count("customers") == 0:
        log.info("Seeding customers (%d records)...", len(SEED_CUSTOMERS))
        for c in SEED_CUSTOMERS:
            await db.execute(
                """INSERT INTO customers
                   (id, name, email, phone, contract_number, location, surface, jobs)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (c["id"], c["name"], c["email"], c["phone"], c["contract_number"],
                 c["location"], c["surface"], json.dumps(c["jobs"])),
            )

    # ------------------------------------------------------------------
    # 2. EMPLOYEES
    # ------------------------------------------------------------------
    if await _count("employees") == 0:
        log.info("Seeding employees (%d records)...", len(SEED_EMPLOYEES))
        for e in SEED_EMPLOYEES:
            await db.execute(
                "INSERT INTO employees (id, name, id_series, id_number) VALUES (?, ?, ?, ?)",
                (e["id"], e["name"], e["id_series"], e["id_number"]),
            )

    # ------------------------------------------------------------------
    # 3. SOLUTIONS (stock sets initial, total and remaining quantity)
    # ------------------------------------------------------------------
    if await _count("solutions") == 0:
        log.info("Seeding solutions (%d records)...", len(SEED_SOLUTIONS))
        for s in SEED_SOLUTIONS:
            await db.execute(
                """INSERT INTO solutions
                   (id, name, lot, concentration, unit_of_measure, quantity_per_sqm,
                    initial_stock, total_quantity, remaining_quantity)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (s["id"], s["name"], s["lot"], s["concentration"], s["unit_of_measure"],
                 s["quantity_per_sqm"], s["stock"], s["stock"], s["stock"]),
            )

    await db.commit()

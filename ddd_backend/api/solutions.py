"""
DDD Service Backend - Solution (Chemical Stock) API Endpoints
Version: 1.0.2

Changelog:
v1.0.2 (2026-10-19): Updates rejected when stock levels become inconsistent
v1.0.1 (2026-10-05): remaining_percentage in listings
v1.0.0 (2026-09-28): Initial solution CRUD
"""

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field
from typing import Optional
import logging

from ddd_backend.api.auth import require_admin
from ddd_backend.database import get_db, execute_one, execute_all, execute_insert, execute_update
from ddd_backend.models.solution import Solution, Concentration

router = APIRouter(prefix="/solutions", tags=["solutions"],
                   dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class SolutionCreate(BaseModel):
    name: str
    lot: Optional[str] = None
    concentration: Concentration = None
    unit_of_measure: str = "ml"
    quantity_per_sqm: float = Field(0.0, ge=0)
    stock: float = Field(0.0, ge=0, description="Sets initial, total and remaining quantity")


class SolutionUpdate(BaseModel):
    name: Optional[str] = None
    lot: Optional[str] = None
    concentration: Concentration = None
    unit_of_measure: Optional[str] = None
    quantity_per_sqm: Optional[float] = Field(None, ge=0)
    initial_stock: Optional[float] = None
    total_quantity: Optional[float] = None
    remaining_quantity: Optional[float] = None


def _with_percentage(row: dict) -> dict:
    row["remaining_percentage"] = Solution(**row).remaining_percentage
    return row


@router.get("")
async def list_solutions(search: Optional[str] = None):
    """List solutions with remaining stock percentage"""
    async with get_db() as db:
        if search:
            term = f"%{search.lower()}%"
            rows = await execute_all(db, """
                SELECT * FROM solutions
                WHERE LOWER(name) LIKE ? OR LOWER(COALESCE(lot, '')) LIKE ?
                ORDER BY name
            """, (term, term))
        else:
            rows = await execute_all(db, "SELECT * FROM solutions ORDER BY name")
    return [_with_percentage(row) for row in rows]


@router.get("/{solution_id}")
async def get_solution(solution_id: int):
    async with get_db() as db:
        row = await execute_one(db, "SELECT * FROM solutions WHERE id = ?", (solution_id,))
    if not row:
        raise HTTPException(status_code=404, detail="Solution not found")
    return _with_percentage(row)


@router.post("")
async def create_solution(data: SolutionCreate):
    async with get_db() as db:
        solution_id = await execute_insert(db, """
            INSERT INTO solutions
                (name, lot, concentration, unit_of_measure, quantity_per_sqm,
                 initial_stock, total_quantity, remaining_quantity)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            data.name, data.lot, data.concentration, data.unit_of_measure,
            data.quantity_per_sqm, data.stock, data.stock, data.stock
        ))
    logger.info(f"Solution '{data.name}' created with stock {data.stock}")
    return {"id": solution_id, "message": f"Solution '{data.name}' created"}


def check_stock_levels(row: dict):
    """remaining <= total <= initial; only stock deduction may break it"""
    initial = row.get("initial_stock") or 0.0
    total = row.get("total_quantity") or 0.0
    remaining = row.get("remaining_quantity") or 0.0
    if not remaining <= total <= initial:
        raise HTTPException(
            status_code=400,
            detail=f"Stock levels must satisfy remaining ({remaining:g}) <= "
                   f"total ({total:g}) <= initial ({initial:g})"
        )


@router.put("/{solution_id}")
async def update_solution(solution_id: int, data: SolutionUpdate):
    fields = data.model_dump(exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    updates = ", ".join(f"{name} = ?" for name in fields)
    async with get_db() as db:
        row = await execute_one(db, "SELECT * FROM solutions WHERE id = ?", (solution_id,))
        if not row:
            raise HTTPException(status_code=404, detail="Solution not found")
        check_stock_levels({**row, **fields})

        await execute_update(
            db, f"UPDATE solutions SET {updates} WHERE id = ?",
            list(fields.values()) + [solution_id]
        )
    return {"success": True, "message": f"Solution {solution_id} updated"}


@router.delete("/{solution_id}")
async def delete_solution(solution_id: int):
    async with get_db() as db:
        count = await execute_update(db, "DELETE FROM solutions WHERE id = ?", (solution_id,))
    if count == 0:
        raise HTTPException(status_code=404, detail="Solution not found")
    return {"success": True, "message": f"Solution {solution_id} deleted"}

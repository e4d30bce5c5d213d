"""
DDD Service Backend - Employee API Endpoints
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial employee CRUD
"""

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from typing import Optional
import logging

from ddd_backend.api.auth import require_admin
from ddd_backend.database import get_db, execute_one, execute_all, execute_insert, execute_update

router = APIRouter(prefix="/employees", tags=["employees"],
                   dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class EmployeeCreate(BaseModel):
    name: str
    id_series: Optional[str] = None
    id_number: Optional[str] = None


class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    id_series: Optional[str] = None
    id_number: Optional[str] = None


@router.get("")
async def list_employees(search: Optional[str] = None):
    """List employees, optionally filtered by name or ID series"""
    async with get_db() as db:
        if search:
            term = f"%{search.lower()}%"
            return await execute_all(db, """
                SELECT * FROM employees
                WHERE LOWER(name) LIKE ? OR LOWER(COALESCE(id_series, '')) LIKE ?
                ORDER BY name
            """, (term, term))
        return await execute_all(db, "SELECT * FROM employees ORDER BY name")


@router.get("/{employee_id}")
async def get_employee(employee_id: int):
    async with get_db() as db:
        row = await execute_one(db, "SELECT * FROM employees WHERE id = ?", (employee_id,))
    if not row:
        raise HTTPException(status_code=404, detail="Employee not found")
    return row


@router.post("")
async def create_employee(data: EmployeeCreate):
    async with get_db() as db:
        employee_id = await execute_insert(
            db, "INSERT INTO employees (name, id_series, id_number) VALUES (?, ?, ?)",
            (data.name, data.id_series, data.id_number)
        )
    logger.info(f"Employee '{data.name}' created (id {employee_id})")
    return {"id": employee_id, "message": f"Employee '{data.name}' created"}


@router.put("/{employee_id}")
async def update_employee(employee_id: int, data: EmployeeUpdate):
    fields = data.model_dump(exclude_none=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    updates = ", ".join(f"{name} = ?" for name in fields)
    async with get_db() as db:
        count = await execute_update(
            db, f"UPDATE employees SET {updates} WHERE id = ?",
            list(fields.values()) + [employee_id]
        )
    if count == 0:
        raise HTTPException(status_code=404, detail="Employee not found")
    return {"success": True, "message": f"Employee {employee_id} updated"}


@router.delete("/{employee_id}")
async def delete_employee(employee_id: int):
    async with get_db() as db:
        count = await execute_update(db, "DELETE FROM employees WHERE id = ?", (employee_id,))
    if count == 0:
        raise HTTPException(status_code=404, detail="Employee not found")
    return {"success": True, "message": f"Employee {employee_id} deleted"}

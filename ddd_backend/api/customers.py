"""
DDD Service Backend - Customer API Endpoints
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Surface editor endpoint (PUT /customers/{id}/jobs)
v1.0.0 (2026-09-28): Initial customer CRUD
"""

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime
import logging

from ddd_backend.api.auth import require_admin
from ddd_backend.database import (
    get_db, execute_one, execute_all, execute_insert, execute_update,
    json_col, from_json
)
from ddd_backend.models.customer import Job, default_jobs, parse_surface

router = APIRouter(prefix="/customers", tags=["customers"],
                   dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


class CustomerCreate(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    contract_number: Optional[str] = None
    location: Optional[str] = None
    surface: Optional[float] = None
    jobs: Optional[List[Job]] = None

    @field_validator("surface", mode="before")
    @classmethod
    def _surface(cls, v):
        return parse_surface(v)


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contract_number: Optional[str] = None
    location: Optional[str] = None
    surface: Optional[float] = None
    jobs: Optional[List[Job]] = None

    @field_validator("surface", mode="before")
    @classmethod
    def _surface(cls, v):
        return parse_surface(v)


class JobSurfaceUpdate(BaseModel):
    value: str
    surface: Optional[float] = None
    active: Optional[bool] = None

    @field_validator("surface", mode="before")
    @classmethod
    def _surface(cls, v):
        return parse_surface(v)


class JobsUpdate(BaseModel):
    jobs: List[JobSurfaceUpdate]


def _check_unique(jobs: List[Job]):
    values = [job.value for job in jobs]
    if len(values) != len(set(values)):
        raise HTTPException(status_code=400, detail="Job values must be unique")


def _customer_row(row: dict) -> dict:
    row["jobs"] = from_json(row.get("jobs")) or []
    return row


@router.get("")
async def list_customers(search: Optional[str] = None, limit: int = 500):
    """List customers, optionally filtered by name or email"""
    async with get_db() as db:
        if search:
            term = f"%{search.lower()}%"
            rows = await execute_all(db, """
                SELECT * FROM customers
                WHERE LOWER(name) LIKE ? OR LOWER(COALESCE(email, '')) LIKE ?
                ORDER BY name LIMIT ?
            """, (term, term, limit))
        else:
            rows = await execute_all(
                db, "SELECT * FROM customers ORDER BY name LIMIT ?", (limit,)
            )
    return [_customer_row(row) for row in rows]


@router.get("/{customer_id}")
async def get_customer(customer_id: int):
    async with get_db() as db:
        row = await execute_one(db, "SELECT * FROM customers WHERE id = ?", (customer_id,))
    if not row:
        raise HTTPException(status_code=404, detail="Customer not found")
    return _customer_row(row)


@router.post("")
async def create_customer(data: CustomerCreate):
    """Create a new customer; the job list defaults to the four service types"""
    jobs = data.jobs if data.jobs is not None else default_jobs()
    _check_unique(jobs)

    now = datetime.now().isoformat()
    async with get_db() as db:
        customer_id = await execute_insert(db, """
            INSERT INTO customers
                (name, email, phone, contract_number, location, surface, jobs,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            data.name, data.email, data.phone, data.contract_number,
            data.location, data.surface,
            json_col([job.model_dump() for job in jobs]), now, now
        ))

    logger.info(f"Customer '{data.name}' created (id {customer_id})")
    return {"id": customer_id, "message": f"Customer '{data.name}' created"}


@router.put("/{customer_id}")
async def update_customer(customer_id: int, data: CustomerUpdate):
    updates = []
    params = []
    for field_name, value in data.model_dump(exclude_none=True).items():
        if field_name == "jobs":
            _check_unique(data.jobs)
            value = json_col(value)
        updates.append(f"{field_name} = ?")
        params.append(value)

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    updates.append("updated_at = ?")
    params.append(datetime.now().isoformat())
    params.append(customer_id)

    async with get_db() as db:
        count = await execute_update(
            db, f"UPDATE customers SET {', '.join(updates)} WHERE id = ?", params
        )
    if count == 0:
        raise HTTPException(status_code=404, detail="Customer not found")

    return {"success": True, "message": f"Customer {customer_id} updated"}


@router.put("/{customer_id}/jobs")
async def update_customer_jobs(customer_id: int, data: JobsUpdate):
    """Surface editor: merge per-job surface/active changes by job value"""
    async with get_db() as db:
        row = await execute_one(db, "SELECT jobs FROM customers WHERE id = ?", (customer_id,))
        if not row:
            raise HTTPException(status_code=404, detail="Customer not found")

        jobs = [Job(**job) for job in from_json(row["jobs"]) or []]
        by_value = {job.value: job for job in jobs}
        for change in data.jobs:
            job = by_value.get(change.value)
            if job is None:
                raise HTTPException(status_code=400,
                                    detail=f"Customer has no job '{change.value}'")
            job.surface = change.surface
            if change.active is not None:
                job.active = change.active

        await execute_update(
            db, "UPDATE customers SET jobs = ?, updated_at = ? WHERE id = ?",
            (json_col([job.model_dump() for job in jobs]),
             datetime.now().isoformat(), customer_id)
        )

    return {"success": True, "jobs": [job.model_dump() for job in jobs]}


@router.delete("/{customer_id}")
async def delete_customer(customer_id: int):
    async with get_db() as db:
        count = await execute_update(db, "DELETE FROM customers WHERE id = ?", (customer_id,))
    if count == 0:
        raise HTTPException(status_code=404, detail="Customer not found")
    logger.info(f"Customer {customer_id} deleted")
    return {"success": True, "message": f"Customer {customer_id} deleted"}

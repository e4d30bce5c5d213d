"""
DDD Service Backend - Customer Models
Version: 1.0.2

Changelog:
v1.0.2 (2026-10-19): Quantities no longer read per-job surfaces
v1.0.1 (2026-10-05): Per-job surface lookup used by quantity computation
v1.0.0 (2026-09-28): Initial customer models
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


def parse_surface(value) -> Optional[float]:
    """Surface is numeric or empty; numeric strings are normalized"""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("surface must be numeric or empty")
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        raise ValueError(f"surface must be numeric or empty, got {value!r}")


class Job(BaseModel):
    """Contracted service type at a customer, with its own surface"""
    label: str
    value: str
    active: bool = False
    surface: Optional[float] = Field(None, description="Contracted surface in mp")

    @field_validator("surface", mode="before")
    @classmethod
    def _surface(cls, v):
        return parse_surface(v)


def default_jobs() -> List[Job]:
    """Job list a new customer starts with"""
    return [
        Job(label="Dezinfectie", value="dezinfectie"),
        Job(label="Dezinsectie", value="dezinsectie"),
        Job(label="Dezinsectie2", value="dezinsectie2"),
        Job(label="Deratizare", value="deratizare"),
    ]


class Customer(BaseModel):
    """Customer record"""
    id: Optional[int] = Field(None, description="Customer ID (auto-generated)")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    contract_number: Optional[str] = None
    location: Optional[str] = None
    surface: Optional[float] = Field(None, description="Nominal total surface in mp")
    jobs: List[Job] = Field(default_factory=default_jobs)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("surface", mode="before")
    @classmethod
    def _surface(cls, v):
        return parse_surface(v)

    @field_validator("jobs")
    @classmethod
    def _unique_job_values(cls, jobs: List[Job]) -> List[Job]:
        seen = set()
        for job in jobs:
            if job.value in seen:
                raise ValueError(f"Duplicate job value '{job.value}'")
            seen.add(job.value)
        return jobs

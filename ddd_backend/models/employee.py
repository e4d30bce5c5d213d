"""
DDD Service Backend - Employee Models
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial employee models
"""

from pydantic import BaseModel, Field
from typing import Optional


class Employee(BaseModel):
    """Field employee; ID document data is printed on the certificate"""
    id: Optional[int] = Field(None, description="Employee ID (auto-generated)")
    name: str
    id_series: Optional[str] = Field(None, description="ID document series")
    id_number: Optional[str] = Field(None, description="ID document number")

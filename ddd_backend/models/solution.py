"""
DDD Service Backend - Chemical Solution Models
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial solution models
"""

from pydantic import BaseModel, BeforeValidator, Field
from typing import Optional, Annotated


def normalize_concentration(v):
    """Concentration is stored as text; numbers are written without trailing zeros"""
    if v is None or isinstance(v, str):
        return v
    return f"{v:g}" if isinstance(v, float) else str(v)


Concentration = Annotated[Optional[str], BeforeValidator(normalize_concentration)]


class Solution(BaseModel):
    """Consumable chemical with dosage and stock counters"""
    id: Optional[int] = Field(None, description="Solution ID (auto-generated)")
    name: str
    lot: Optional[str] = Field(None, description="Approval / lot number")
    concentration: Concentration = Field(None, description="Concentration in %")
    unit_of_measure: str = "ml"
    quantity_per_sqm: float = Field(0.0, ge=0, description="Dosage per mp")
    initial_stock: float = 0.0
    total_quantity: float = 0.0
    remaining_quantity: float = 0.0

    @property
    def remaining_percentage(self) -> Optional[float]:
        if not self.initial_stock:
            return None
        return round(self.remaining_quantity / self.initial_stock * 100, 2)

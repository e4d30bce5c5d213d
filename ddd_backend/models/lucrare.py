"""
DDD Service Backend - Service Record (Lucrare) Models
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial lucrare models with fixed procedure1..4 slots
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Tuple
from datetime import datetime

PROCEDURE_SLOTS = 4


class ProcedureSlot(BaseModel):
    """One (procedure, product) tuple of a service record"""
    procedure: str
    product_name: Optional[str] = None
    product_lot: Optional[str] = None
    product_quantity: Optional[str] = None
    concentration: Optional[str] = None


class Lucrare(BaseModel):
    """Persisted service record; immutable once written"""
    id: Optional[int] = Field(None, description="Record ID (auto-generated)")
    numar_ordine: int = Field(..., description="Stored order number")
    created_at: datetime = Field(default_factory=datetime.now)
    customer_id: Optional[int] = None
    client_name: str
    client_contract: Optional[str] = None
    client_location: Optional[str] = None
    client_surface: Optional[float] = None
    client_representative: Optional[str] = None
    employee_id: Optional[int] = None
    employee_name: str
    slots: List[ProcedureSlot] = Field(default_factory=list, max_length=PROCEDURE_SLOTS)

    def to_row(self) -> dict:
        """Flatten into the lucrari column layout; unused slots are NULL"""
        row = {
            "numar_ordine": self.numar_ordine,
            "created_at": self.created_at.isoformat(),
            "customer_id": self.customer_id,
            "client_name": self.client_name,
            "client_contract": self.client_contract,
            "client_location": self.client_location,
            "client_surface": self.client_surface,
            "client_representative": self.client_representative,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
        }
        for n in range(1, PROCEDURE_SLOTS + 1):
            slot = self.slots[n - 1] if n <= len(self.slots) else None
            row[f"procedure{n}"] = slot.procedure if slot else None
            row[f"product{n}_name"] = slot.product_name if slot else None
            row[f"product{n}_lot"] = slot.product_lot if slot else None
            row[f"product{n}_quantity"] = slot.product_quantity if slot else None
            row[f"product{n}_concentration"] = slot.concentration if slot else None
        return row


def row_slots(row: dict) -> List[Tuple[int, dict]]:
    """Non-empty procedure slots of a lucrari row as (n, fields) pairs"""
    slots = []
    for n in range(1, PROCEDURE_SLOTS + 1):
        if row.get(f"procedure{n}") is None:
            continue
        slots.append((n, {
            "procedure": row[f"procedure{n}"],
            "product_name": row.get(f"product{n}_name"),
            "product_lot": row.get(f"product{n}_lot"),
            "product_quantity": row.get(f"product{n}_quantity"),
            "concentration": row.get(f"product{n}_concentration"),
        }))
    return slots

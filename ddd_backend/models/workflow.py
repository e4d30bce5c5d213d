"""
DDD Service Backend - Service Visit Workflow Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): ProcesVerbal snapshot handed to the PDF renderer
v1.0.0 (2026-09-28): Initial draft record and step enumeration
"""

from pydantic import BaseModel, Field
from enum import Enum
from typing import Optional, List, Dict
from datetime import datetime

from .customer import Customer
from .employee import Employee
from .solution import Solution


class Operation(str, Enum):
    """The four fixed service types (job values)"""
    DERATIZARE = "deratizare"      # rodenticide
    DEZINSECTIE = "dezinsectie"    # insecticide
    DEZINSECTIE2 = "dezinsectie2"  # insecticide, second treatment
    DEZINFECTIE = "dezinfectie"    # disinfection


MAX_OPERATIONS = 4


class WorkflowStep(str, Enum):
    """Linear workflow steps"""
    SELECT_EMPLOYEE = "select_employee"
    SELECT_CUSTOMER = "select_customer"
    SELECT_OPERATIONS = "select_operations"
    ENTER_CLIENT_REPRESENTATIVE = "enter_client_representative"
    REVIEW_AND_SIGN = "review_and_sign"
    SUBMITTED = "submitted"


STEP_ORDER = list(WorkflowStep)


class DraftRecord(BaseModel):
    """Service visit accumulated across the workflow steps, not persisted"""
    employee: Optional[Employee] = None
    customer: Optional[Customer] = None
    operations: List[Operation] = Field(default_factory=list)
    solutions: Dict[Operation, List[Solution]] = Field(default_factory=dict)
    quantities: Dict[Operation, float] = Field(default_factory=dict)
    client_representative: str = ""
    client_signature: Optional[str] = Field(None, description="PNG as base64 or data URL")
    employee_signature: Optional[str] = Field(None, description="PNG as base64 or data URL")


class ProcesVerbal(BaseModel):
    """Everything printed on one certificate"""
    order_number: int
    issued_at: datetime
    customer: Customer
    employee: Employee
    operations: List[Operation]
    solutions: Dict[Operation, List[Solution]] = Field(default_factory=dict)
    client_representative: str = ""
    client_signature: Optional[str] = None
    employee_signature: Optional[str] = None

    @classmethod
    def from_draft(cls, draft: DraftRecord, order_number: int,
                   issued_at: datetime) -> "ProcesVerbal":
        return cls(
            order_number=order_number,
            issued_at=issued_at,
            customer=draft.customer,
            employee=draft.employee,
            operations=draft.operations,
            solutions=draft.solutions,
            client_representative=draft.client_representative,
            client_signature=draft.client_signature,
            employee_signature=draft.employee_signature,
        )

    @property
    def date_text(self) -> str:
        return self.issued_at.strftime("%d.%m.%Y")

    @property
    def time_text(self) -> str:
        return self.issued_at.strftime("%H:%M")

"""
DDD Service Backend - Service Visit Workflow
Version: 1.1.1

Changelog:
v1.1.1 (2026-10-19): Quantities always use the customer surface, job surfaces
                      are informational
v1.1.0 (2026-10-12): Step handlers return patches; controller owns the draft
v1.0.0 (2026-09-28): Initial linear step state machine

Steps run in a fixed order:
    select_employee -> select_customer -> select_operations ->
    enter_client_representative -> review_and_sign -> submitted

Each step handler is a plain function taking the current draft (plus the
step input) and returning a partial dict. WorkflowController merges that
patch into its draft with update_form_data(), so no step touches shared
state directly.
"""

import logging
from typing import Optional, Dict, Any, List, Iterable

from ddd_backend.errors import ValidationError
from ddd_backend.models.customer import Customer
from ddd_backend.models.employee import Employee
from ddd_backend.models.solution import Solution
from ddd_backend.models.workflow import (
    DraftRecord, Operation, WorkflowStep, STEP_ORDER, MAX_OPERATIONS
)

logger = logging.getLogger(__name__)


# -- Quantity computation --

def compute_quantity(surface: Optional[float], solutions: Optional[List[Solution]]) -> float:
    """Required quantity for an operation: surface x sum of dosages"""
    if not surface or not solutions:
        return 0.0
    return surface * sum(s.quantity_per_sqm or 0.0 for s in solutions)


def solution_quantity(surface: Optional[float], solution: Solution) -> float:
    """Share of a single solution in its operation's quantity"""
    if not surface:
        return 0.0
    return surface * (solution.quantity_per_sqm or 0.0)


def _surface(draft: DraftRecord, operation: Operation) -> float:
    if draft.customer is None:
        return 0.0
    return draft.customer.surface or 0.0


def _as_operation(value) -> Operation:
    try:
        return Operation(value)
    except ValueError:
        raise ValidationError(f"Unknown operation '{value}'")


# -- Step handlers: (draft, input) -> patch --

def choose_employee(draft: DraftRecord, employee: Employee) -> Dict[str, Any]:
    return {"employee": employee}


def choose_customer(draft: DraftRecord, customer: Customer) -> Dict[str, Any]:
    """Select the customer and recompute quantities against its surface"""
    quantities = {
        op: compute_quantity(customer.surface, sols)
        for op, sols in draft.solutions.items()
    }
    return {"customer": customer, "quantities": quantities}


def toggle_operation(draft: DraftRecord, operation) -> Dict[str, Any]:
    """Select an operation, or deselect it and drop its solutions and quantity"""
    operation = _as_operation(operation)
    operations = list(draft.operations)
    solutions = dict(draft.solutions)
    quantities = dict(draft.quantities)

    if operation in operations:
        operations.remove(operation)
        solutions.pop(operation, None)
        quantities.pop(operation, None)
    else:
        if len(operations) >= MAX_OPERATIONS:
            raise ValidationError(f"At most {MAX_OPERATIONS} operations can be selected")
        operations.append(operation)
        quantities[operation] = 0.0

    return {"operations": operations, "solutions": solutions, "quantities": quantities}


def set_operations(draft: DraftRecord, operations: Iterable) -> Dict[str, Any]:
    """Replace the selection; removed operations are cleaned up like a toggle"""
    wanted = []
    for value in operations:
        op = _as_operation(value)
        if op not in wanted:
            wanted.append(op)
    if len(wanted) > MAX_OPERATIONS:
        raise ValidationError(f"At most {MAX_OPERATIONS} operations can be selected")

    solutions = {op: sols for op, sols in draft.solutions.items() if op in wanted}
    quantities = {op: draft.quantities.get(op, 0.0) for op in wanted}
    return {"operations": wanted, "solutions": solutions, "quantities": quantities}


def choose_solutions(draft: DraftRecord, operation, selected: List[Solution]) -> Dict[str, Any]:
    """Set the solutions of one operation and recompute its quantity"""
    operation = _as_operation(operation)
    if operation not in draft.operations:
        raise ValidationError(f"Operation '{operation.value}' is not selected")

    solutions = dict(draft.solutions)
    quantities = dict(draft.quantities)
    solutions[operation] = list(selected or [])
    quantities[operation] = compute_quantity(_surface(draft, operation), solutions[operation])
    logger.debug(f"Quantity for {operation.value}: {quantities[operation]}")
    return {"solutions": solutions, "quantities": quantities}


def enter_client_representative(draft: DraftRecord, name: str,
                                signature: Optional[str]) -> Dict[str, Any]:
    return {"client_representative": (name or "").strip(), "client_signature": signature or None}


def sign_as_employee(draft: DraftRecord, signature: Optional[str]) -> Dict[str, Any]:
    return {"employee_signature": signature or None}


# -- Step guards --

def missing_fields(draft: DraftRecord, step: WorkflowStep) -> List[str]:
    """Required fields of a step that are not filled in yet"""
    missing = []
    if step == WorkflowStep.SELECT_EMPLOYEE:
        if draft.employee is None:
            missing.append("employee")
    elif step == WorkflowStep.SELECT_CUSTOMER:
        if draft.customer is None:
            missing.append("customer")
    elif step == WorkflowStep.SELECT_OPERATIONS:
        if not draft.operations:
            missing.append("operations")
    elif step == WorkflowStep.ENTER_CLIENT_REPRESENTATIVE:
        if not draft.client_representative.strip():
            missing.append("client_representative")
        if not draft.client_signature:
            missing.append("client_signature")
    elif step == WorkflowStep.REVIEW_AND_SIGN:
        if not draft.employee_signature:
            missing.append("employee_signature")
    return missing


class WorkflowController:
    """Owns one draft and the current step of one service visit"""

    def __init__(self, draft: Optional[DraftRecord] = None):
        self.draft = draft or DraftRecord()
        self.step = WorkflowStep.SELECT_EMPLOYEE

    @property
    def is_submitted(self) -> bool:
        return self.step == WorkflowStep.SUBMITTED

    def update_form_data(self, partial: Dict[str, Any]) -> DraftRecord:
        """Shallow-merge partial into the draft, keeping unspecified fields"""
        unknown = set(partial) - set(DraftRecord.model_fields)
        if unknown:
            raise ValidationError(f"Unknown draft fields: {sorted(unknown)}")
        self.draft = self.draft.model_copy(update=partial)
        return self.draft

    def apply(self, handler, *args) -> DraftRecord:
        """Run a step handler against the current draft and merge its patch"""
        if self.is_submitted:
            raise ValidationError("Workflow already submitted")
        return self.update_form_data(handler(self.draft, *args))

    # Step inputs, each allowed only on its own step

    def choose_employee(self, employee: Employee) -> DraftRecord:
        self._require_step(WorkflowStep.SELECT_EMPLOYEE)
        return self.apply(choose_employee, employee)

    def choose_customer(self, customer: Customer) -> DraftRecord:
        self._require_step(WorkflowStep.SELECT_CUSTOMER)
        return self.apply(choose_customer, customer)

    def toggle_operation(self, operation) -> DraftRecord:
        self._require_step(WorkflowStep.SELECT_OPERATIONS)
        return self.apply(toggle_operation, operation)

    def set_operations(self, operations: Iterable) -> DraftRecord:
        self._require_step(WorkflowStep.SELECT_OPERATIONS)
        return self.apply(set_operations, operations)

    def choose_solutions(self, operation, solutions: List[Solution]) -> DraftRecord:
        self._require_step(WorkflowStep.SELECT_OPERATIONS)
        return self.apply(choose_solutions, operation, solutions)

    def enter_client_representative(self, name: str, signature: Optional[str]) -> DraftRecord:
        self._require_step(WorkflowStep.ENTER_CLIENT_REPRESENTATIVE)
        return self.apply(enter_client_representative, name, signature)

    def sign_as_employee(self, signature: Optional[str]) -> DraftRecord:
        self._require_step(WorkflowStep.REVIEW_AND_SIGN)
        return self.apply(sign_as_employee, signature)

    # Navigation

    def missing_fields(self) -> List[str]:
        return missing_fields(self.draft, self.step)

    def can_advance(self) -> bool:
        return (self.step not in (WorkflowStep.REVIEW_AND_SIGN, WorkflowStep.SUBMITTED)
                and not self.missing_fields())

    def next(self) -> WorkflowStep:
        """Move one step forward; the last step is left only by submission"""
        if self.step in (WorkflowStep.REVIEW_AND_SIGN, WorkflowStep.SUBMITTED):
            raise ValidationError("Use finish to complete the workflow")
        missing = self.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        self.step = STEP_ORDER[STEP_ORDER.index(self.step) + 1]
        return self.step

    def back(self) -> WorkflowStep:
        """Move one step back; nothing is persisted so there is no side effect"""
        if self.step == WorkflowStep.SUBMITTED:
            raise ValidationError("Workflow already submitted")
        if self.step == WorkflowStep.SELECT_EMPLOYEE:
            raise ValidationError("Already at the first step")
        self.step = STEP_ORDER[STEP_ORDER.index(self.step) - 1]
        return self.step

    def ensure_ready_to_submit(self):
        """Finish is only possible from the last step with the final signature"""
        if self.step != WorkflowStep.REVIEW_AND_SIGN:
            raise ValidationError(f"Cannot finish from step '{self.step.value}'")
        missing = self.missing_fields()
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def mark_submitted(self):
        self.step = WorkflowStep.SUBMITTED

    def _require_step(self, step: WorkflowStep):
        if self.step != step:
            raise ValidationError(
                f"Step '{step.value}' is not active (current: '{self.step.value}')"
            )

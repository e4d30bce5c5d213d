"""
DDD Service Backend - Service Visit Workflow API
Version: 1.2.0

Changelog:
v1.2.0 (2026-10-19): Idle workflows evicted after WORKFLOW_TTL_MINUTES
v1.1.0 (2026-10-12): Finish runs through SubmissionCoordinator; one
                      controller per workflow id instead of a shared form
v1.0.0 (2026-09-28): Initial step endpoints

Workflows live in process memory until finished, deleted or left idle for
longer than WORKFLOW_TTL_MINUTES. Discarding a workflow has no side effect.
"""

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime, timedelta
import base64
import logging
import uuid

from ddd_backend.config import settings
from ddd_backend.errors import ExternalCallError, SubmissionError, ValidationError
from ddd_backend.models.customer import Customer
from ddd_backend.models.employee import Employee
from ddd_backend.models.solution import Solution
from ddd_backend.services.data_store import DataStore
from ddd_backend.services.mailer import Mailer, MailConfig, RecipientSource
from ddd_backend.services.submission import SubmissionCoordinator
from ddd_backend.services.workflow import WorkflowController

router = APIRouter(prefix="/workflows", tags=["workflows"])
logger = logging.getLogger(__name__)

# Active workflows by id, with the time each was last used
workflows: Dict[str, WorkflowController] = {}
last_used: Dict[str, datetime] = {}


class EmployeeChoice(BaseModel):
    employee_id: int


class CustomerChoice(BaseModel):
    customer_id: int


class OperationsChoice(BaseModel):
    operations: List[str]


class SolutionsChoice(BaseModel):
    solution_ids: List[int]


class RepresentativeInput(BaseModel):
    name: str
    signature: Optional[str] = None


class SignatureInput(BaseModel):
    signature: Optional[str] = None


def get_store() -> DataStore:
    return DataStore()


def get_coordinator(store: DataStore = Depends(get_store)) -> SubmissionCoordinator:
    mailer = Mailer(MailConfig.from_settings(RecipientSource.FROM_RECORD))
    return SubmissionCoordinator(store, mailer)


def evict_idle_workflows(now: Optional[datetime] = None) -> int:
    """Drop workflows untouched for longer than WORKFLOW_TTL_MINUTES"""
    now = now or datetime.now()
    cutoff = now - timedelta(minutes=settings.WORKFLOW_TTL_MINUTES)
    idle = [wid for wid in workflows if last_used.get(wid, now) < cutoff]
    for workflow_id in idle:
        _discard(workflow_id)
    if idle:
        logger.info(f"Evicted {len(idle)} idle workflow(s)")
    return len(idle)


def _discard(workflow_id: str):
    workflows.pop(workflow_id, None)
    last_used.pop(workflow_id, None)


def _get_workflow(workflow_id: str) -> WorkflowController:
    evict_idle_workflows()
    workflow = workflows.get(workflow_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    last_used[workflow_id] = datetime.now()
    return workflow


def _state(workflow_id: str, workflow: WorkflowController) -> dict:
    return {
        "id": workflow_id,
        "step": workflow.step.value,
        "draft": workflow.draft.model_dump(mode="json"),
        "missing_fields": workflow.missing_fields(),
        "can_advance": workflow.can_advance(),
    }


async def _load(store: DataStore, table: str, record_id: int, label: str) -> dict:
    try:
        row = await store.select_one(table, {"id": record_id})
    except ExternalCallError as e:
        logger.error(f"Loading {label} {record_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def _step(workflow_id: str, action):
    """Run a controller call, mapping validation failures to 400"""
    workflow = _get_workflow(workflow_id)
    try:
        action(workflow)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(workflow_id, workflow)


@router.post("")
async def create_workflow():
    """Start a new service visit"""
    evict_idle_workflows()
    workflow_id = uuid.uuid4().hex
    workflows[workflow_id] = WorkflowController()
    last_used[workflow_id] = datetime.now()
    logger.info(f"Workflow {workflow_id} started")
    return _state(workflow_id, workflows[workflow_id])


@router.get("/{workflow_id}")
async def get_workflow(workflow_id: str):
    return _state(workflow_id, _get_workflow(workflow_id))


@router.patch("/{workflow_id}/employee")
async def choose_employee(workflow_id: str, data: EmployeeChoice,
                          store: DataStore = Depends(get_store)):
    _get_workflow(workflow_id)
    employee = Employee(**await _load(store, "employees", data.employee_id, "Employee"))
    return _step(workflow_id, lambda wf: wf.choose_employee(employee))


@router.patch("/{workflow_id}/customer")
async def choose_customer(workflow_id: str, data: CustomerChoice,
                          store: DataStore = Depends(get_store)):
    _get_workflow(workflow_id)
    customer = Customer(**await _load(store, "customers", data.customer_id, "Customer"))
    return _step(workflow_id, lambda wf: wf.choose_customer(customer))


@router.patch("/{workflow_id}/operations")
async def set_operations(workflow_id: str, data: OperationsChoice):
    return _step(workflow_id, lambda wf: wf.set_operations(data.operations))


@router.post("/{workflow_id}/operations/{operation}/toggle")
async def toggle_operation(workflow_id: str, operation: str):
    return _step(workflow_id, lambda wf: wf.toggle_operation(operation))


@router.patch("/{workflow_id}/operations/{operation}/solutions")
async def choose_solutions(workflow_id: str, operation: str, data: SolutionsChoice,
                           store: DataStore = Depends(get_store)):
    _get_workflow(workflow_id)
    solutions = [
        Solution(**await _load(store, "solutions", solution_id, "Solution"))
        for solution_id in data.solution_ids
    ]
    return _step(workflow_id, lambda wf: wf.choose_solutions(operation, solutions))


@router.patch("/{workflow_id}/representative")
async def enter_client_representative(workflow_id: str, data: RepresentativeInput):
    return _step(workflow_id,
                 lambda wf: wf.enter_client_representative(data.name, data.signature))


@router.patch("/{workflow_id}/signature")
async def sign_as_employee(workflow_id: str, data: SignatureInput):
    return _step(workflow_id, lambda wf: wf.sign_as_employee(data.signature))


@router.post("/{workflow_id}/next")
async def next_step(workflow_id: str):
    return _step(workflow_id, lambda wf: wf.next())


@router.post("/{workflow_id}/back")
async def previous_step(workflow_id: str):
    return _step(workflow_id, lambda wf: wf.back())


@router.post("/{workflow_id}/finish")
async def finish_workflow(workflow_id: str,
                          coordinator: SubmissionCoordinator = Depends(get_coordinator)):
    """Generate, email and record the proces verbal"""
    workflow = _get_workflow(workflow_id)
    try:
        result = await coordinator.submit(workflow)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SubmissionError as e:
        logger.error(f"Workflow {workflow_id} failed after {e.completed_steps}")
        raise HTTPException(status_code=502, detail=str(e))

    _discard(workflow_id)
    return {
        "success": True,
        "order_number": result.display_number,
        "lucrare_id": result.lucrare_id,
        "messageId": result.message_id,
        "stock_warnings": result.stock_warnings,
        "pdf": base64.b64encode(result.pdf_bytes).decode("ascii"),
    }


@router.delete("/{workflow_id}")
async def discard_workflow(workflow_id: str):
    """Cancel a workflow; nothing has been persisted"""
    _get_workflow(workflow_id)
    _discard(workflow_id)
    return {"success": True, "message": f"Workflow {workflow_id} discarded"}

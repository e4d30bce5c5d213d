"""
DDD Service Backend - Submission Coordinator
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Stock policy check before side effects; concentration
                      stored per procedure slot
v1.0.0 (2026-09-28): Initial finish sequence

On finish, in order:
    1. validate the final signature (and stock, under the block policy)
    2. read the reception number
    3. look up units and render the proces verbal
    4. email the PDF to the customer
    5. increment the reception counter
    6. insert the lucrari row
    7. deduct solution stock
    8. mark the workflow submitted

Every call is awaited before the next one starts. Nothing is rolled back
when a later step fails; the failure is raised as SubmissionError and the
completed steps are logged.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Awaitable

from ddd_backend.config import settings
from ddd_backend.errors import (
    ExternalCallError, SubmissionError, ValidationError
)
from ddd_backend.models.lucrare import Lucrare, ProcedureSlot
from ddd_backend.models.workflow import DraftRecord, ProcesVerbal
from ddd_backend.services import reception
from ddd_backend.services.pdf_renderer import load_template, render_proces_verbal
from ddd_backend.services.workflow import WorkflowController, solution_quantity

logger = logging.getLogger(__name__)

STOCK_POLICY_WARN = "warn"
STOCK_POLICY_BLOCK = "block"


@dataclass
class SubmissionResult:
    order_number: int
    display_number: int
    lucrare_id: int
    message_id: Optional[str]
    pdf_bytes: bytes = field(repr=False)
    stock_warnings: List[str] = field(default_factory=list)


def solution_usage(draft: DraftRecord) -> Dict[int, float]:
    """Quantity used per solution id across all operations"""
    usage: Dict[int, float] = {}
    for op in draft.operations:
        surface = draft.customer.surface
        for sol in draft.solutions.get(op, []):
            if sol.id is None:
                continue
            usage[sol.id] = usage.get(sol.id, 0.0) + solution_quantity(surface, sol)
    return usage


def build_lucrare(draft: DraftRecord, order_number: int,
                  created_at: datetime) -> Lucrare:
    """Map the draft's operations onto the procedure1..4 slots"""
    slots = []
    for op in draft.operations:
        sols = draft.solutions.get(op, [])
        quantity = draft.quantities.get(op, 0.0)
        slots.append(ProcedureSlot(
            procedure=op.value,
            product_name=", ".join(s.name for s in sols) or None,
            product_lot=", ".join(s.lot or "" for s in sols) or None,
            product_quantity=f"{quantity:.2f}",
            concentration=", ".join(s.concentration or "" for s in sols) or None,
        ))

    customer = draft.customer
    employee = draft.employee
    return Lucrare(
        numar_ordine=order_number,
        created_at=created_at,
        customer_id=customer.id,
        client_name=customer.name,
        client_contract=customer.contract_number,
        client_location=customer.location,
        client_surface=customer.surface,
        client_representative=draft.client_representative,
        employee_id=employee.id,
        employee_name=employee.name,
        slots=slots,
    )


class SubmissionCoordinator:
    """Runs the finish sequence of one workflow with explicit collaborators"""

    def __init__(self, store, mailer,
                 template_loader: Callable[[], Awaitable[bytes]] = load_template,
                 clock: Callable[[], datetime] = datetime.now,
                 stock_policy: Optional[str] = None):
        self.store = store
        self.mailer = mailer
        self.template_loader = template_loader
        self.clock = clock
        self.stock_policy = stock_policy or settings.STOCK_POLICY

    async def lookup_units(self, draft: DraftRecord) -> Dict[int, Optional[str]]:
        """Unit of measure per selected solution, read fresh from the store"""
        units: Dict[int, Optional[str]] = {}
        for sols in draft.solutions.values():
            for sol in sols:
                if sol.id is None or sol.id in units:
                    continue
                try:
                    row = await self.store.select_one("solutions", {"id": sol.id})
                except ExternalCallError as e:
                    logger.warning(f"Unit lookup failed for solution {sol.id}: {e}")
                    row = None
                units[sol.id] = row.get("unit_of_measure") if row else None
        return units

    async def check_stock(self, draft: DraftRecord) -> List[str]:
        """Solutions whose remaining stock would go negative"""
        shortages = []
        for solution_id, used in solution_usage(draft).items():
            row = await self.store.select_one("solutions", {"id": solution_id})
            if row is None:
                continue
            remaining = row.get("remaining_quantity") or 0.0
            if remaining - used < 0:
                shortages.append(
                    f"{row.get('name')}: remaining {remaining:.2f}, needed {used:.2f}"
                )
        return shortages

    async def submit(self, workflow: WorkflowController) -> SubmissionResult:
        """
        Complete the workflow.

        Raises:
            ValidationError: Final signature missing or stock blocked;
                nothing has been sent or written
            SubmissionError: A later step failed; earlier steps are not undone
        """
        workflow.ensure_ready_to_submit()
        draft = workflow.draft

        shortages: List[str] = []
        completed: List[str] = []
        try:
            shortages = await self.check_stock(draft)
            if shortages and self.stock_policy == STOCK_POLICY_BLOCK:
                raise ValidationError("Insufficient stock: " + "; ".join(shortages))
            for shortage in shortages:
                logger.warning(f"Stock will go negative: {shortage}")

            current = await reception.fetch_reception_number(self.store)
            order_number = current + 1
            completed.append("read_reception_number")

            issued_at = self.clock()
            template = await self.template_loader()
            units = await self.lookup_units(draft)
            record = ProcesVerbal.from_draft(
                draft, reception.display_order_number(order_number), issued_at
            )
            pdf_bytes = render_proces_verbal(template, record, units)
            completed.append("render")

            mail = await self.mailer.send_proces_verbal(
                pdf_bytes, record_recipient=draft.customer.email
            )
            completed.append("email")

            order_number = await reception.increment_reception_number(
                self.store, expected=order_number
            )
            completed.append("increment_reception_number")

            lucrare = build_lucrare(draft, order_number, issued_at)
            lucrare_id = await self.store.insert("lucrari", lucrare.to_row())
            completed.append("insert_lucrare")

            for solution_id, used in solution_usage(draft).items():
                remaining = await self.store.deduct_solution_stock(solution_id, used)
                if remaining is not None and remaining < 0:
                    logger.warning(
                        f"Solution {solution_id} stock is negative: {remaining:.2f}"
                    )
            completed.append("deduct_stock")

        except ValidationError as e:
            if completed:
                logger.error(f"Submission rejected after {completed}: {e}")
                raise SubmissionError(completed) from e
            raise
        except Exception as e:
            logger.error(f"Submission failed after {completed or 'no steps'}: {e}",
                         exc_info=True)
            raise SubmissionError(completed) from e

        workflow.mark_submitted()
        logger.info(f"Lucrare {lucrare_id} submitted with order number {order_number}")
        return SubmissionResult(
            order_number=order_number,
            display_number=reception.display_order_number(order_number),
            lucrare_id=lucrare_id,
            message_id=mail.message_id,
            pdf_bytes=pdf_bytes,
            stock_warnings=shortages,
        )

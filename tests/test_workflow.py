import pytest

from ddd_backend.errors import ValidationError
from ddd_backend.models.customer import Customer, Job
from ddd_backend.models.solution import Solution
from ddd_backend.models.workflow import Operation, WorkflowStep
from ddd_backend.services.workflow import (
    WorkflowController, compute_quantity, toggle_operation
)


def _at_operations(employee, customer):
    wf = WorkflowController()
    wf.choose_employee(employee)
    wf.next()
    wf.choose_customer(customer)
    wf.next()
    return wf


def _at_review(employee, customer, solution, signature):
    wf = _at_operations(employee, customer)
    wf.toggle_operation("deratizare")
    wf.choose_solutions("deratizare", [solution])
    wf.next()
    wf.enter_client_representative("Ana Moldovan", signature)
    wf.next()
    return wf


def test_compute_quantity():
    sols = [Solution(name="a", quantity_per_sqm=0.5), Solution(name="b", quantity_per_sqm=0.25)]
    assert compute_quantity(100, sols) == 75
    assert compute_quantity(None, sols) == 0
    assert compute_quantity(0, sols) == 0
    assert compute_quantity(100, []) == 0


def test_quantity_for_rodenticide(employee, customer, solution):
    wf = _at_operations(employee, customer)
    wf.toggle_operation("deratizare")
    wf.choose_solutions("deratizare", [solution])
    assert wf.draft.quantities[Operation.DERATIZARE] == 50


def test_job_surface_does_not_change_quantity(employee, solution):
    customer = Customer(name="Depozit", surface=100, jobs=[
        Job(label="Deratizare", value="deratizare", active=True, surface=40),
    ])
    wf = _at_operations(employee, customer)
    wf.toggle_operation("deratizare")
    wf.choose_solutions("deratizare", [solution])
    assert wf.draft.quantities[Operation.DERATIZARE] == 50


def test_customer_change_recomputes_quantities(employee, customer, solution):
    wf = _at_operations(employee, customer)
    wf.toggle_operation("deratizare")
    wf.choose_solutions("deratizare", [solution])
    wf.back()
    wf.choose_customer(customer.model_copy(update={"surface": 10}))
    assert wf.draft.quantities[Operation.DERATIZARE] == 5


def test_deselect_removes_solution_and_quantity(employee, customer, solution):
    wf = _at_operations(employee, customer)
    wf.toggle_operation("deratizare")
    wf.toggle_operation("dezinsectie")
    wf.choose_solutions("deratizare", [solution])
    wf.toggle_operation("deratizare")

    assert wf.draft.operations == [Operation.DEZINSECTIE]
    assert Operation.DERATIZARE not in wf.draft.solutions
    assert Operation.DERATIZARE not in wf.draft.quantities


def test_set_operations_drops_removed(employee, customer, solution):
    wf = _at_operations(employee, customer)
    wf.set_operations(["deratizare", "dezinfectie"])
    wf.choose_solutions("deratizare", [solution])
    wf.set_operations(["dezinfectie"])
    assert set(wf.draft.solutions) == set()
    assert set(wf.draft.quantities) == {Operation.DEZINFECTIE}


def test_unknown_operation_rejected(employee, customer):
    wf = _at_operations(employee, customer)
    with pytest.raises(ValidationError):
        wf.toggle_operation("fumigatie")


def test_solutions_need_selected_operation(employee, customer, solution):
    wf = _at_operations(employee, customer)
    with pytest.raises(ValidationError):
        wf.choose_solutions("dezinfectie", [solution])


def test_handler_returns_patch_without_mutating():
    wf = WorkflowController()
    patch = toggle_operation(wf.draft, "dezinfectie")
    assert patch["operations"] == [Operation.DEZINFECTIE]
    assert wf.draft.operations == []


def test_update_form_data_preserves_other_fields(employee):
    wf = WorkflowController()
    wf.update_form_data({"employee": employee})
    wf.update_form_data({"client_representative": "Ana"})
    assert wf.draft.employee == employee
    assert wf.draft.client_representative == "Ana"


def test_update_form_data_rejects_unknown_field():
    with pytest.raises(ValidationError):
        WorkflowController().update_form_data({"colour": "red"})


def test_next_requires_step_fields(employee):
    wf = WorkflowController()
    with pytest.raises(ValidationError):
        wf.next()
    assert wf.step == WorkflowStep.SELECT_EMPLOYEE
    wf.choose_employee(employee)
    assert wf.next() == WorkflowStep.SELECT_CUSTOMER


def test_representative_step_needs_name_and_signature(employee, customer, signature_png):
    wf = _at_operations(employee, customer)
    wf.toggle_operation("dezinfectie")
    wf.next()
    wf.enter_client_representative("   ", signature_png)
    assert wf.missing_fields() == ["client_representative"]
    wf.enter_client_representative("Ana", None)
    assert wf.missing_fields() == ["client_signature"]
    assert not wf.can_advance()


def test_back_from_first_step_is_error():
    with pytest.raises(ValidationError):
        WorkflowController().back()


def test_step_inputs_guarded_by_current_step(employee, customer):
    wf = WorkflowController()
    with pytest.raises(ValidationError):
        wf.choose_customer(customer)


def test_review_step_is_left_only_by_finish(employee, customer, solution, signature_png):
    wf = _at_review(employee, customer, solution, signature_png)
    wf.sign_as_employee(signature_png)
    assert wf.step == WorkflowStep.REVIEW_AND_SIGN
    with pytest.raises(ValidationError):
        wf.next()
    wf.ensure_ready_to_submit()


def test_finish_requires_employee_signature(employee, customer, solution, signature_png):
    wf = _at_review(employee, customer, solution, signature_png)
    with pytest.raises(ValidationError):
        wf.ensure_ready_to_submit()


def test_submitted_workflow_is_frozen(employee, customer, solution, signature_png):
    wf = _at_review(employee, customer, solution, signature_png)
    wf.sign_as_employee(signature_png)
    wf.mark_submitted()
    with pytest.raises(ValidationError):
        wf.back()
    with pytest.raises(ValidationError):
        wf.apply(toggle_operation, "dezinfectie")

import asyncio
import io

import pytest
from pypdf import PdfReader

from ddd_backend.errors import TemplateError, RenderError
from ddd_backend.models.workflow import Operation, ProcesVerbal
from ddd_backend.services import pdf_renderer
from ddd_backend.services.pdf_renderer import (
    render_proces_verbal, operation_rows, operation_blocks, decode_signature,
    load_template, CLIENT_PLACEHOLDER, EMPLOYEE_PLACEHOLDER, SOLUTION_X, MARK_X,
    SOLUTION_LINE_SPACING, ROW_BASE_OFFSET
)


def _record(customer, employee, solution, issued_at, **overrides):
    values = dict(
        order_number=41,
        issued_at=issued_at,
        customer=customer,
        employee=employee,
        operations=[Operation.DERATIZARE],
        solutions={Operation.DERATIZARE: [solution]},
        client_representative="Ana Moldovan",
    )
    values.update(overrides)
    return ProcesVerbal(**values)


def _text(pdf_bytes):
    return PdfReader(io.BytesIO(pdf_bytes)).pages[0].extract_text()


def test_rejects_non_pdf(customer, employee, solution, issued_at):
    record = _record(customer, employee, solution, issued_at)
    with pytest.raises(TemplateError):
        render_proces_verbal(b"<html>not a pdf</html>", record)
    with pytest.raises(TemplateError):
        render_proces_verbal(b"", record)


def test_unparseable_pdf_is_render_error(customer, employee, solution, issued_at):
    record = _record(customer, employee, solution, issued_at)
    with pytest.raises(RenderError):
        render_proces_verbal(b"%PDF-1.4 garbage", record)


def test_missing_signatures_draw_placeholders(template_pdf, customer, employee,
                                               solution, issued_at):
    pdf = render_proces_verbal(template_pdf, _record(customer, employee, solution, issued_at))
    text = _text(pdf)
    assert CLIENT_PLACEHOLDER in text
    assert EMPLOYEE_PLACEHOLDER in text


def test_undecodable_signature_falls_back(template_pdf, customer, employee,
                                          solution, issued_at):
    record = _record(customer, employee, solution, issued_at,
                     client_signature="data:image/png;base64,@@@")
    assert CLIENT_PLACEHOLDER in _text(render_proces_verbal(template_pdf, record))


def test_signatures_replace_placeholders(template_pdf, customer, employee, solution,
                                         issued_at, signature_png):
    record = _record(customer, employee, solution, issued_at,
                     client_signature=signature_png, employee_signature=signature_png)
    text = _text(render_proces_verbal(template_pdf, record))
    assert CLIENT_PLACEHOLDER not in text
    assert EMPLOYEE_PLACEHOLDER not in text


def test_fields_are_printed(template_pdf, customer, employee, solution, issued_at):
    text = _text(render_proces_verbal(template_pdf, _record(customer, employee, solution, issued_at)))
    assert "41" in text
    assert "19.10.2026" in text
    assert "09:30" in text
    assert "Hotel Bucovina" in text
    assert "100 mp" in text
    assert "Ionut Popescu" in text
    assert "50.00 g" in text
    assert "RO/2022/1190" in text


def test_missing_unit_renders_undefined(template_pdf, customer, employee, solution, issued_at):
    record = _record(customer, employee, solution, issued_at)
    text = _text(render_proces_verbal(template_pdf, record, units={solution.id: None}))
    assert "50.00 undefined" in text


def test_output_keeps_template_page_count(template_pdf, customer, employee, solution, issued_at):
    pdf = render_proces_verbal(template_pdf, _record(customer, employee, solution, issued_at))
    assert pdf.startswith(b"%PDF")
    assert len(PdfReader(io.BytesIO(pdf)).pages) == 1


def test_rows_follow_operation_not_selection_order():
    rows = operation_rows([Operation.DEZINSECTIE, Operation.DERATIZARE])
    assert rows == [(Operation.DERATIZARE, 0), (Operation.DEZINSECTIE, 1)]


def test_blocks_reserve_one_line_per_solution(solution):
    second = solution.model_copy(update={"id": 2, "name": "Cipermetrin"})
    blocks = operation_blocks(
        [Operation.DEZINFECTIE, Operation.DEZINSECTIE, Operation.DERATIZARE],
        {Operation.DERATIZARE: [solution], Operation.DEZINSECTIE: [solution, second]},
    )
    assert blocks == [
        (Operation.DERATIZARE, ROW_BASE_OFFSET),
        (Operation.DEZINSECTIE, ROW_BASE_OFFSET + SOLUTION_LINE_SPACING),
        (Operation.DEZINFECTIE, ROW_BASE_OFFSET + 3 * SOLUTION_LINE_SPACING),
    ]


def test_multi_solution_rows_do_not_overlap(monkeypatch, template_pdf, customer, employee,
                                            solution, issued_at):
    drawn = []
    original = pdf_renderer._Overlay.text

    def record_text(self, value, x, top, color=pdf_renderer.black):
        drawn.append((str(value), x, top))
        return original(self, value, x, top, color)

    monkeypatch.setattr(pdf_renderer._Overlay, "text", record_text)
    second = solution.model_copy(update={"id": 2, "name": "Cipermetrin"})
    record = _record(
        customer, employee, solution, issued_at,
        operations=[Operation.DEZINSECTIE, Operation.DERATIZARE, Operation.DEZINFECTIE],
        solutions={
            Operation.DERATIZARE: [solution],
            Operation.DEZINSECTIE: [solution, second],
            Operation.DEZINFECTIE: [second],
        },
    )
    render_proces_verbal(template_pdf, record)

    solution_tops = [top for _, x, top in drawn if x == SOLUTION_X]
    assert len(solution_tops) == 4
    gaps = [b - a for a, b in zip(solution_tops, solution_tops[1:])]
    assert all(gap >= SOLUTION_LINE_SPACING for gap in gaps)

    mark_tops = [top for value, x, top in drawn if value == "X" and x == MARK_X]
    assert mark_tops == [solution_tops[0], solution_tops[1], solution_tops[3]]


def test_decode_signature_variants(signature_png):
    raw = decode_signature(signature_png)
    assert raw.startswith(b"\x89PNG")
    assert decode_signature(signature_png.split(",", 1)[1]) == raw
    assert decode_signature(raw) == raw
    assert decode_signature(None) is None
    assert decode_signature("not base64!") is None


def test_load_template_from_file(tmp_path, template_pdf):
    path = tmp_path / "template.pdf"
    path.write_bytes(template_pdf)
    assert asyncio.run(load_template(path=str(path), url="")) == template_pdf


def test_load_template_missing_file(tmp_path):
    with pytest.raises(TemplateError):
        asyncio.run(load_template(path=str(tmp_path / "nope.pdf"), url=""))


def test_load_template_rejects_non_pdf(tmp_path):
    path = tmp_path / "template.pdf"
    path.write_bytes(b"GIF89a")
    with pytest.raises(TemplateError):
        asyncio.run(load_template(path=str(path), url=""))


def test_load_template_from_url(monkeypatch, template_pdf):
    import httpx

    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=template_pdf))
    original = httpx.AsyncClient

    monkeypatch.setattr(pdf_renderer.httpx, "AsyncClient",
                        lambda **kwargs: original(transport=transport, **kwargs))
    assert asyncio.run(load_template(url="http://assets.local/template.pdf")) == template_pdf

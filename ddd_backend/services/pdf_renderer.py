"""
DDD Service Backend - Proces Verbal PDF Renderer
Version: 1.3.0

Changelog:
v1.3.0 (2026-10-19): Operation blocks laid out with one running line cursor so
                      multi-solution rows no longer overlap; quantities use the
                      customer surface
v1.2.0 (2026-10-12): Per-solution quantity column; surface column per row;
                      rodenticide row (index 0) is drawn like the others
v1.1.0 (2026-10-05): Signatures accepted as data URL, base64 or raw PNG
v1.0.0 (2026-09-28): Initial template overlay renderer

Draws the certificate fields onto the first page of a fixed template. The
overlay is built with a reportlab canvas the size of the template page and
merged into the page with pypdf. All positions are points measured from the
top edge of the page, so any change of the template layout needs a matching
change of the constants below.
"""

import asyncio
import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.colors import Color, black
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ddd_backend.config import settings
from ddd_backend.errors import TemplateError, RenderError, ExternalCallError
from ddd_backend.models.workflow import Operation, ProcesVerbal
from ddd_backend.services.workflow import solution_quantity

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"

FONT_NAME = "Helvetica"
FONT_SIZE = 11
EMPLOYEE_COLOR = Color(0, 0.1, 0.3)

# (x, offset from top)
FIELD_POSITIONS = {
    "order_number": (505, 112),
    "date": (400, 135),
    "time": (475, 135),
    "customer_name": (200, 180),
    "contract_number": (525, 180),
    "location": (250, 202),
    "surface": (220, 225),
    "client_representative": (140, 520),
    "employee_name": (525, 522),
    "employee_id_series": (540, 532),
    "client_placeholder": (580, 520),
    "employee_placeholder": (50, 490),
}

# (x, offset from top to the image's bottom edge, width, height)
CLIENT_SIGNATURE_BOX = (80, 550, 150, 50)
EMPLOYEE_SIGNATURE_BOX = (530, 580, 150, 50)

CLIENT_PLACEHOLDER = "Client Signature: Not provided"
EMPLOYEE_PLACEHOLDER = "Employee Signature: Not provided"

OPERATION_ROWS = {
    Operation.DERATIZARE: 0,
    Operation.DEZINSECTIE: 1,
    Operation.DEZINSECTIE2: 2,
    Operation.DEZINFECTIE: 3,
}
ROW_BASE_OFFSET = 270
SOLUTION_LINE_SPACING = 22

MARK_X = 130
SURFACE_X = 142
SOLUTION_X = 180
QUANTITY_X = SOLUTION_X + 110
CONCENTRATION_X = QUANTITY_X + 145
LOT_X = CONCENTRATION_X + 70

MISSING_UNIT = "undefined"


def check_template(template_bytes: bytes):
    if not template_bytes or template_bytes[:4] != PDF_SIGNATURE:
        header = bytes(template_bytes[:4]) if template_bytes else b""
        raise TemplateError(f"Invalid PDF header: {header!r}")


def decode_signature(signature) -> Optional[bytes]:
    """PNG bytes from raw bytes, a base64 string or a data URL"""
    if not signature:
        return None
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature)
    text = str(signature)
    if text.startswith("data:"):
        _, _, text = text.partition(",")
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None


class _Overlay:
    """Canvas wrapper translating top-based offsets to PDF coordinates"""

    def __init__(self, width: float, height: float):
        self.buffer = io.BytesIO()
        self.height = height
        self.canvas = canvas.Canvas(self.buffer, pagesize=(width, height))
        self.canvas.setFont(FONT_NAME, FONT_SIZE)

    def text(self, value, x: float, top: float, color=black):
        self.canvas.setFillColor(color)
        self.canvas.drawString(x, self.height - top, str(value))

    def image(self, png: bytes, box: Tuple[int, int, int, int]) -> bool:
        x, top, width, height = box
        try:
            reader = ImageReader(io.BytesIO(png))
            self.canvas.drawImage(reader, x, self.height - top,
                                  width=width, height=height, mask="auto")
        except Exception as e:
            logger.warning(f"Signature image could not be drawn: {e}")
            return False
        return True

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


def _fmt(value) -> str:
    return "" if value is None else str(value)


def _surface_text(surface: Optional[float]) -> str:
    if surface is None:
        return ""
    return f"{surface:g}"


def _draw_signature(overlay: _Overlay, signature, box, placeholder: str, placeholder_at):
    png = decode_signature(signature)
    if png and overlay.image(png, box):
        return
    overlay.text(placeholder, *placeholder_at)


def operation_rows(operations) -> List[Tuple[Operation, int]]:
    """(operation, row index) pairs in row order, independent of selection order"""
    return sorted(((op, OPERATION_ROWS[op]) for op in operations), key=lambda r: r[1])


def operation_blocks(operations, solutions) -> List[Tuple[Operation, int]]:
    """
    (operation, top offset) of each operation block, laid out with one running
    line cursor in row order. A block takes one line per solution and at
    least one line, so solution lines of adjacent operations never overlap.
    """
    blocks = []
    top = ROW_BASE_OFFSET
    for operation, _ in operation_rows(operations):
        blocks.append((operation, top))
        top += max(len(solutions.get(operation, [])), 1) * SOLUTION_LINE_SPACING
    return blocks


def _draw_operations(overlay: _Overlay, record: ProcesVerbal,
                     units: Optional[Dict[int, Optional[str]]]):
    surface = record.customer.surface
    for operation, top in operation_blocks(record.operations, record.solutions):
        overlay.text("X", MARK_X, top)

        for solution in record.solutions.get(operation, []):
            quantity = solution_quantity(surface, solution)
            if units is None:
                unit = solution.unit_of_measure
            else:
                unit = units.get(solution.id) or MISSING_UNIT
            overlay.text(_surface_text(surface), SURFACE_X, top)
            overlay.text(f" {solution.name}", SOLUTION_X, top)
            overlay.text(f"{quantity:.2f} {unit}", QUANTITY_X, top)
            overlay.text(f"{_fmt(solution.concentration)}%", CONCENTRATION_X, top)
            overlay.text(_fmt(solution.lot), LOT_X, top)
            top += SOLUTION_LINE_SPACING


def render_proces_verbal(template_bytes: bytes, record: ProcesVerbal,
                         units: Optional[Dict[int, Optional[str]]] = None) -> bytes:
    """
    Overlay a proces verbal onto the template and return the PDF bytes.

    Args:
        template_bytes: The template PDF, must start with %PDF
        record: Certificate contents
        units: Unit of measure per solution id, looked up by the caller.
            None uses each solution's own unit_of_measure.

    Raises:
        TemplateError: Input is not a PDF
        RenderError: Template cannot be parsed or merged
    """
    check_template(template_bytes)

    try:
        reader = PdfReader(io.BytesIO(template_bytes))
        page_count = len(reader.pages)
    except Exception as e:
        raise RenderError(f"Template could not be parsed: {e}") from e
    if page_count == 0:
        raise RenderError("Template has no pages")

    try:
        writer = PdfWriter(clone_from=reader)
        page = writer.pages[0]
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
    except Exception as e:
        raise RenderError(f"Template could not be parsed: {e}") from e

    overlay = _Overlay(width, height)
    pos = FIELD_POSITIONS
    customer = record.customer
    employee = record.employee

    overlay.text(record.order_number, *pos["order_number"])
    overlay.text(record.date_text, *pos["date"])
    overlay.text(record.time_text, *pos["time"])
    overlay.text(customer.name, *pos["customer_name"])
    overlay.text(_fmt(customer.contract_number), *pos["contract_number"])
    overlay.text(_fmt(customer.location), *pos["location"])
    overlay.text(f"{_surface_text(customer.surface)} mp", *pos["surface"])

    overlay.text(f" {record.client_representative}", *pos["client_representative"])
    _draw_signature(overlay, record.client_signature, CLIENT_SIGNATURE_BOX,
                    CLIENT_PLACEHOLDER, pos["client_placeholder"])

    overlay.text(f" {employee.name}", *pos["employee_name"], color=EMPLOYEE_COLOR)
    overlay.text(f" {_fmt(employee.id_series)}", *pos["employee_id_series"],
                 color=EMPLOYEE_COLOR)
    _draw_signature(overlay, record.employee_signature, EMPLOYEE_SIGNATURE_BOX,
                    EMPLOYEE_PLACEHOLDER, pos["employee_placeholder"])

    _draw_operations(overlay, record, units)

    try:
        overlay_page = PdfReader(io.BytesIO(overlay.finish())).pages[0]
        page.merge_page(overlay_page)
        out = io.BytesIO()
        writer.write(out)
    except PyPdfError as e:
        raise RenderError(f"Overlay could not be merged: {e}") from e

    pdf_bytes = out.getvalue()
    logger.info(f"Rendered proces verbal {record.order_number} ({len(pdf_bytes)} bytes)")
    return pdf_bytes


async def load_template(path: Optional[str] = None, url: Optional[str] = None) -> bytes:
    """Fetch the template by URL when one is configured, else read the file"""
    url = settings.TEMPLATE_URL if url is None else url
    if url:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalCallError(f"Failed to fetch PDF template: {e}") from e
        template_bytes = response.content
    else:
        template_path = Path(path or settings.TEMPLATE_PATH)
        if not template_path.exists():
            raise TemplateError(f"Template not found: {template_path}")
        template_bytes = await asyncio.to_thread(template_path.read_bytes)

    logger.debug(f"Template loaded ({len(template_bytes)} bytes)")
    check_template(template_bytes)
    return template_bytes

"""Shared fixtures: temporary database, generated template and signature, fake mail"""

import asyncio
import base64
import io
from datetime import datetime

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from ddd_backend.config import settings
from ddd_backend.models import init_db
from ddd_backend.models.customer import Customer
from ddd_backend.models.employee import Employee
from ddd_backend.models.solution import Solution
from ddd_backend.services.mailer import MailResult


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "ddd.db")
    monkeypatch.setattr(settings, "SQLITE_DB_PATH", path)
    monkeypatch.setattr(settings, "SESSION_FILE", str(tmp_path / "sessions.json"))
    asyncio.run(init_db())
    return path


@pytest.fixture
def template_pdf():
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.drawString(220, A4[1] - 60, "PROCES VERBAL")
    c.showPage()
    c.save()
    return buffer.getvalue()


@pytest.fixture
def signature_png():
    image = Image.new("RGBA", (150, 50), (255, 255, 255, 0))
    for x in range(10, 140):
        image.putpixel((x, 25), (0, 0, 0, 255))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def employee():
    return Employee(id=1, name="Ionut Popescu", id_series="SV", id_number="481209")


@pytest.fixture
def customer():
    return Customer(id=1, name="Hotel Bucovina", email="receptie@hotel.ro",
                    contract_number="C-2026-030", location="Gura Humorului",
                    surface=100)


@pytest.fixture
def solution():
    return Solution(id=1, name="Brodifacoum Pasta", lot="RO/2022/1190",
                    concentration="0.005", unit_of_measure="g",
                    quantity_per_sqm=0.5, initial_stock=1000,
                    total_quantity=1000, remaining_quantity=1000)


@pytest.fixture
def issued_at():
    return datetime(2026, 10, 19, 9, 30)


class FakeMailer:
    """Records every proces verbal it is asked to send"""

    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    async def send_proces_verbal(self, pdf_bytes, record_recipient=None,
                                 request_recipient=None, subject=None, text=None):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"pdf": pdf_bytes, "to": record_recipient or request_recipient})
        return MailResult(success=True, message_id=f"<{len(self.sent)}@test>")


@pytest.fixture
def fake_mailer():
    return FakeMailer()


class FakeSMTP:
    """Stands in for smtplib.SMTP and keeps delivered messages"""

    delivered = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = username

    def send_message(self, message):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        FakeSMTP.delivered.append(message)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.delivered = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr("ddd_backend.services.mailer.smtplib.SMTP", FakeSMTP)
    return FakeSMTP

"""
DDD Service Backend - Development Server with Mocked Mail
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-12): Blank template generated when none is configured
v1.0.0 (2026-09-28): Local testing with dry-run mail and demo data
"""

import os
from pathlib import Path

# Enable dev mode BEFORE importing anything else
os.environ['MAIL_DRY_RUN'] = 'true'
os.environ['DEBUG'] = 'true'
os.environ['SEED_DEMO_DATA'] = 'true'

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from ddd_backend.config import settings


def ensure_blank_template(path: str) -> bool:
    """Write a blank A4 page as the proces verbal template if none exists"""
    if os.path.exists(path):
        return False
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(path, pagesize=A4)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(220, A4[1] - 60, "PROCES VERBAL DDD")
    c.showPage()
    c.save()
    return True


created = ensure_blank_template(settings.TEMPLATE_PATH)

print("=" * 60)
print(f"    {settings.APP_NAME} - Development Server")
print("=" * 60)
print()
print("DEV MODE ENABLED:")
print("  ✓ Mail relay in dry-run mode (messages are logged, not sent)")
print("  ✓ Demo customers, employees and solutions seeded")
if created:
    print(f"  ✓ Blank template written to {settings.TEMPLATE_PATH}")
print()
print("Starting FastAPI server...")
print(f"  Backend API: http://localhost:{settings.API_PORT}")
print(f"  API Docs:    http://localhost:{settings.API_PORT}/docs")
print(f"  Health:      http://localhost:{settings.API_PORT}/api/health")
print()
print("Press Ctrl+C to stop")
print("=" * 60)
print()

from ddd_backend.main import app
import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.API_PORT,
        log_level="info"
    )

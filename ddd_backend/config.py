"""
DDD Service Backend - System Configuration
Version: 1.2.0

Changelog:
v1.2.0 (2026-10-19): Workflow and session expiry settings; dropped unused
                      reports directory
v1.1.0 (2026-10-12): Mail relay modes (fixed / from_request / from_record),
                      stock deduction policy, admin session file
v1.0.0 (2026-09-28): Initial configuration module
"""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path
import os

BASE_DIR = Path(__file__).parent


class Settings(BaseSettings):
    """System-wide configuration"""

    # Application
    APP_NAME: str = "DDD Service Backend"
    APP_VERSION: str = "1.2.0"
    DEBUG: bool = False

    # API Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 5000
    API_WORKERS: int = 1
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # SQLite Configuration
    SQLITE_DB_PATH: str = str(BASE_DIR / "data" / "ddd.db")

    # File Paths
    DATA_DIR: str = str(BASE_DIR / "data")
    LOGS_DIR: str = str(BASE_DIR / "logs")

    # Proces verbal template (URL wins over path when set)
    TEMPLATE_PATH: str = str(BASE_DIR / "assets" / "template.pdf")
    TEMPLATE_URL: str = ""

    # SMTP transport
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_EMAIL: str = ""  # Set via environment variable
    SMTP_PASSWORD: str = ""  # Set via environment variable
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT: float = 30.0  # seconds
    MAIL_DRY_RUN: bool = False  # log messages instead of sending

    # Mail relay: fixed | from_request | from_record
    MAIL_RECIPIENT_MODE: str = "from_record"
    MAIL_FIXED_RECIPIENT: str = ""
    MAIL_PDF_SUBJECT: str = "Proces Verbal"
    MAIL_PDF_TEXT: str = "Buna ziua! Aici aveti atasat procesul verbal DDD."
    MAIL_CSV_SUBJECT: str = "Baza de Date - Export Lucrari"
    MAIL_CSV_TEXT: str = (
        "Buna ziua!\n\nAtasat gasiti exportul bazei de date cu toate "
        "lucrarile.\n\nCu stima,\nElsiCom SRL"
    )

    # Authentication
    ADMIN_PASSWORD: str = "admin123"  # Override via environment variable
    SESSION_FILE: str = str(BASE_DIR / "data" / "sessions.json")
    SESSION_TTL_HOURS: float = 12.0  # unauthenticated sessions are pruned after this

    # Service visits left idle longer than this are discarded
    WORKFLOW_TTL_MINUTES: float = 120.0

    # Stock deduction: warn | block
    STOCK_POLICY: str = "warn"

    # Demo customers, employees and solutions on an empty database
    SEED_DEMO_DATA: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Singleton instance
settings = Settings()


# Create required directories
def init_directories():
    """Create necessary directories if they don't exist"""
    for directory in [settings.DATA_DIR, settings.LOGS_DIR]:
        os.makedirs(directory, exist_ok=True)


if __name__ == "__main__":
    print(f"{settings.APP_NAME} Configuration v{settings.APP_VERSION}")
    print(f"SQLite: {settings.SQLITE_DB_PATH}")
    print(f"Template: {settings.TEMPLATE_URL or settings.TEMPLATE_PATH}")
    print(f"SMTP: {settings.SMTP_HOST}:{settings.SMTP_PORT} "
          f"(dry run: {settings.MAIL_DRY_RUN})")
    print(f"Mail recipient mode: {settings.MAIL_RECIPIENT_MODE}")
    print(f"Stock policy: {settings.STOCK_POLICY}")

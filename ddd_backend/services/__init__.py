"""
DDD Service Backend - Backend Services
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): Added mailer, submission, lucrari_export, session_store
v1.0.0 (2026-09-28): Initial services module
"""

from . import data_store
from . import reception
from . import workflow
from . import pdf_renderer
from . import mailer
from . import submission
from . import lucrari_export
from . import session_store

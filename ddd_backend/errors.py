"""
DDD Service Backend - Error Types
Version: 1.0.0

Changelog:
v1.0.0 (2026-09-28): Initial error taxonomy

Lower layers (renderer, data access, mail relay) raise these typed errors.
The submission coordinator wraps anything after validation into a
SubmissionError carrying one generic user-facing message.
"""


class DddError(Exception):
    """Base class for all application errors"""


class ValidationError(DddError):
    """A required field is missing or invalid; no side effect has happened"""


class ExternalCallError(DddError):
    """Data store, mail relay or template fetch failed"""


class TemplateError(DddError):
    """Template bytes are not a PDF (bad signature or missing asset)"""


class RenderError(DddError):
    """Template could not be parsed or the overlay could not be merged"""


class SubmissionError(DddError):
    """Finish sequence aborted after validation; partial side effects possible"""

    GENERIC_MESSAGE = "Submission failed. Please try again."

    def __init__(self, completed_steps=None):
        super().__init__(self.GENERIC_MESSAGE)
        self.completed_steps = list(completed_steps or [])

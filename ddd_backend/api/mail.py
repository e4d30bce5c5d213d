"""
DDD Service Backend - Mail Relay API
Version: 1.1.1

Changelog:
v1.1.1 (2026-10-19): Invalid requests answered with {success: false, error}
                      and status 422
v1.1.0 (2026-10-12): Single relay module for PDF and CSV mail; accepts every
                      recipient/attachment field name used by older clients
v1.0.0 (2026-09-28): Initial send-email endpoint
"""

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError as PydanticValidationError
from typing import Any, Optional, Union, List, Dict
import logging

from ddd_backend.errors import ExternalCallError, ValidationError
from ddd_backend.services.mailer import (
    Mailer, MailConfig, RecipientSource, decode_pdf_payload
)

router = APIRouter(tags=["mail"])
logger = logging.getLogger(__name__)

PdfPayload = Union[str, List[int], Dict[str, int]]


class SendEmailRequest(BaseModel):
    to: Optional[str] = None
    recipientEmail: Optional[str] = None
    customerEmail: Optional[str] = None
    clientEmail: Optional[str] = None
    subject: Optional[str] = None
    text: Optional[str] = None
    attachment: Optional[PdfPayload] = None
    pdfBytes: Optional[PdfPayload] = None

    @property
    def recipient(self) -> Optional[str]:
        return self.to or self.recipientEmail or self.customerEmail or self.clientEmail


class SendCsvEmailRequest(BaseModel):
    recipientEmail: Optional[str] = None
    to: Optional[str] = None
    csvContent: str


def _relay() -> Mailer:
    return Mailer(MailConfig.from_settings(RecipientSource.FROM_REQUEST))


def _failure(error, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": str(error)})


def _parse(model, payload: Dict[str, Any]):
    """Validated request model, or the relay's 422 failure response"""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        return _failure(f"Invalid request: {fields}", status_code=422)


@router.post("/send-email")
async def send_email(payload: Dict[str, Any] = Body(...)):
    """Send a proces verbal PDF"""
    data = _parse(SendEmailRequest, payload)
    if isinstance(data, JSONResponse):
        return data
    try:
        pdf_bytes = decode_pdf_payload(
            data.attachment if data.attachment is not None else data.pdfBytes
        )
        result = await _relay().send_proces_verbal(
            pdf_bytes, request_recipient=data.recipient,
            subject=data.subject, text=data.text
        )
    except ValidationError as e:
        return _failure(e, status_code=422)
    except ExternalCallError as e:
        logger.error(f"Error sending email: {e}")
        return _failure(e)

    return {"success": True, "messageId": result.message_id}


@router.post("/send-csv-email")
async def send_csv_email(payload: Dict[str, Any] = Body(...)):
    """Send a lucrari CSV export"""
    data = _parse(SendCsvEmailRequest, payload)
    if isinstance(data, JSONResponse):
        return data
    try:
        result = await _relay().send_csv_export(
            data.csvContent, request_recipient=data.recipientEmail or data.to
        )
    except ValidationError as e:
        return _failure(e, status_code=422)
    except ExternalCallError as e:
        logger.error(f"Error sending CSV email: {e}")
        return _failure(e)

    return {"success": True, "messageId": result.message_id}

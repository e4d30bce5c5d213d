"""
DDD Service Backend - Mail Relay Service
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-12): One parameterized relay for PDF, CSV and workflow mail;
                      recipient source fixed / from_request / from_record
v1.0.0 (2026-09-28): Initial SMTP relay

The recipient is chosen by MailConfig.recipient_source:
- fixed:        always MailConfig.fixed_recipient (archive mailbox)
- from_request: the address given by the HTTP caller
- from_record:  the address stored on the customer record
"""

import asyncio
import base64
import binascii
import logging
import smtplib
from datetime import date
from email.message import EmailMessage
from email.utils import make_msgid
from enum import Enum
from typing import Optional, List, Union, Dict

from pydantic import BaseModel, Field

from ddd_backend.config import settings
from ddd_backend.errors import ExternalCallError, ValidationError

logger = logging.getLogger(__name__)

PDF_FILENAME = "proces-verbal.pdf"


class RecipientSource(str, Enum):
    FIXED = "fixed"
    FROM_REQUEST = "from_request"
    FROM_RECORD = "from_record"


class SmtpTransportConfig(BaseModel):
    """SMTP connection parameters"""
    host: str
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    timeout: float = 30.0
    dry_run: bool = False

    @classmethod
    def from_settings(cls) -> "SmtpTransportConfig":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_EMAIL,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT,
            dry_run=settings.MAIL_DRY_RUN,
        )


class MailConfig(BaseModel):
    """Transport plus the rule that picks the recipient"""
    transport: SmtpTransportConfig
    recipient_source: RecipientSource = RecipientSource.FROM_REQUEST
    fixed_recipient: Optional[str] = None
    sender: Optional[str] = None

    @classmethod
    def from_settings(cls, recipient_source: Optional[RecipientSource] = None) -> "MailConfig":
        source = recipient_source
        if settings.MAIL_RECIPIENT_MODE == RecipientSource.FIXED.value:
            # Archive mode overrides every caller
            source = RecipientSource.FIXED
        elif source is None:
            source = RecipientSource(settings.MAIL_RECIPIENT_MODE)
        return cls(
            transport=SmtpTransportConfig.from_settings(),
            recipient_source=source,
            fixed_recipient=settings.MAIL_FIXED_RECIPIENT or None,
            sender=settings.SMTP_EMAIL or None,
        )


class Attachment(BaseModel):
    filename: str
    content: bytes
    maintype: str = "application"
    subtype: str = "octet-stream"


class MailResult(BaseModel):
    success: bool
    message_id: Optional[str] = Field(None, serialization_alias="messageId")
    error: Optional[str] = None


def decode_pdf_payload(payload: Union[str, bytes, List[int], Dict[str, int], None]) -> bytes:
    """
    PDF attachment bytes from a request payload.

    Accepts a base64 string, a list of byte values, or an object mapping
    indexes to byte values (a serialized Uint8Array).
    """
    if payload is None or payload == "" or payload == [] or payload == {}:
        raise ValidationError("Attachment is empty")
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"Attachment is not valid base64: {e}") from e
    if isinstance(payload, dict):
        try:
            values = [payload[k] for k in sorted(payload, key=int)]
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Attachment keys must be byte indexes: {e}") from e
    else:
        values = list(payload)
    try:
        return bytes(values)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Attachment values must be bytes: {e}") from e


class Mailer:
    """Sends one message per call through SMTP; no retries"""

    def __init__(self, config: MailConfig):
        self.config = config

    def resolve_recipient(self, request_recipient: Optional[str] = None,
                          record_recipient: Optional[str] = None) -> str:
        source = self.config.recipient_source
        if source == RecipientSource.FIXED:
            recipient = self.config.fixed_recipient
        elif source == RecipientSource.FROM_RECORD:
            recipient = record_recipient or request_recipient
        else:
            recipient = request_recipient or record_recipient
        if not recipient:
            raise ValidationError(f"No recipient available (mode: {source.value})")
        return recipient

    def build_message(self, recipient: str, subject: str, text: str,
                      attachments: List[Attachment]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.sender or self.config.transport.username
        message["To"] = recipient
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain="ddd.local")
        message.set_content(text)
        for att in attachments:
            message.add_attachment(att.content, maintype=att.maintype,
                                   subtype=att.subtype, filename=att.filename)
        return message

    async def send(self, subject: str, text: str, attachments: List[Attachment],
                   request_recipient: Optional[str] = None,
                   record_recipient: Optional[str] = None) -> MailResult:
        """
        Resolve the recipient, build the message and deliver it.

        Raises:
            ValidationError: No recipient can be resolved
            ExternalCallError: SMTP delivery failed
        """
        recipient = self.resolve_recipient(request_recipient, record_recipient)
        message = self.build_message(recipient, subject, text, attachments)
        message_id = message["Message-ID"]

        if self.config.transport.dry_run:
            logger.info(f"[dry run] Mail '{subject}' to {recipient} "
                        f"({len(attachments)} attachment(s)) {message_id}")
            return MailResult(success=True, message_id=message_id)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {recipient}: {e}")
            raise ExternalCallError(f"SMTP delivery failed: {e}") from e

        logger.info(f"Email sent successfully: {message_id}")
        return MailResult(success=True, message_id=message_id)

    def _deliver(self, message: EmailMessage):
        transport = self.config.transport
        with smtplib.SMTP(transport.host, transport.port, timeout=transport.timeout) as smtp:
            if transport.use_tls:
                smtp.starttls()
            if transport.username:
                smtp.login(transport.username, transport.password)
            smtp.send_message(message)

    async def send_proces_verbal(self, pdf_bytes: bytes,
                                 record_recipient: Optional[str] = None,
                                 request_recipient: Optional[str] = None,
                                 subject: Optional[str] = None,
                                 text: Optional[str] = None) -> MailResult:
        attachment = Attachment(filename=PDF_FILENAME, content=pdf_bytes,
                                maintype="application", subtype="pdf")
        return await self.send(
            subject or settings.MAIL_PDF_SUBJECT,
            text or settings.MAIL_PDF_TEXT,
            [attachment],
            request_recipient=request_recipient,
            record_recipient=record_recipient,
        )

    async def send_csv_export(self, csv_content: str,
                              request_recipient: Optional[str] = None) -> MailResult:
        attachment = Attachment(
            filename=f"lucrari_export_{date.today().isoformat()}.csv",
            content=csv_content.encode("utf-8"),
            maintype="text", subtype="csv",
        )
        return await self.send(
            settings.MAIL_CSV_SUBJECT,
            settings.MAIL_CSV_TEXT,
            [attachment],
            request_recipient=request_recipient,
        )

import asyncio
import base64
import smtplib

import pytest

from ddd_backend.config import settings
from ddd_backend.errors import ExternalCallError, ValidationError
from ddd_backend.services.mailer import (
    Mailer, MailConfig, RecipientSource, SmtpTransportConfig, decode_pdf_payload
)


def _mailer(source, fixed=None, dry_run=False):
    transport = SmtpTransportConfig(host="smtp.test", username="office@ddd.ro",
                                    password="secret", dry_run=dry_run)
    return Mailer(MailConfig(transport=transport, recipient_source=source,
                             fixed_recipient=fixed))


def test_recipient_from_request():
    mailer = _mailer(RecipientSource.FROM_REQUEST)
    assert mailer.resolve_recipient("a@x.ro", "b@x.ro") == "a@x.ro"
    assert mailer.resolve_recipient(None, "b@x.ro") == "b@x.ro"


def test_recipient_from_record():
    mailer = _mailer(RecipientSource.FROM_RECORD)
    assert mailer.resolve_recipient("a@x.ro", "b@x.ro") == "b@x.ro"


def test_fixed_mode_ignores_request():
    mailer = _mailer(RecipientSource.FIXED, fixed="arhiva@ddd.ro")
    assert mailer.resolve_recipient("a@x.ro", "b@x.ro") == "arhiva@ddd.ro"


def test_no_recipient_is_validation_error():
    with pytest.raises(ValidationError):
        _mailer(RecipientSource.FROM_REQUEST).resolve_recipient(None, None)
    with pytest.raises(ValidationError):
        _mailer(RecipientSource.FIXED).resolve_recipient("a@x.ro")


def test_fixed_setting_overrides_caller(monkeypatch):
    monkeypatch.setattr(settings, "MAIL_RECIPIENT_MODE", "fixed")
    monkeypatch.setattr(settings, "MAIL_FIXED_RECIPIENT", "arhiva@ddd.ro")
    config = MailConfig.from_settings(RecipientSource.FROM_RECORD)
    assert config.recipient_source == RecipientSource.FIXED
    assert config.fixed_recipient == "arhiva@ddd.ro"


def test_send_proces_verbal(fake_smtp):
    mailer = _mailer(RecipientSource.FROM_RECORD)
    result = asyncio.run(mailer.send_proces_verbal(b"%PDF-1.4", record_recipient="c@x.ro"))

    assert result.success
    assert len(fake_smtp.delivered) == 1
    message = fake_smtp.delivered[0]
    assert message["To"] == "c@x.ro"
    assert message["Message-ID"] == result.message_id
    attachment = next(message.iter_attachments())
    assert attachment.get_filename() == "proces-verbal.pdf"
    assert attachment.get_content() == b"%PDF-1.4"


def test_send_csv_export(fake_smtp):
    mailer = _mailer(RecipientSource.FROM_REQUEST)
    asyncio.run(mailer.send_csv_export("\ufeff\"a\"\n", request_recipient="admin@x.ro"))
    attachment = next(fake_smtp.delivered[0].iter_attachments())
    assert attachment.get_filename().startswith("lucrari_export_")
    assert attachment.get_content_type() == "text/csv"


def test_smtp_failure_is_external_call_error(fake_smtp):
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({"c@x.ro": (550, b"no")})
    with pytest.raises(ExternalCallError):
        asyncio.run(_mailer(RecipientSource.FROM_RECORD)
                    .send_proces_verbal(b"%PDF", record_recipient="c@x.ro"))


def test_dry_run_does_not_connect(fake_smtp):
    mailer = _mailer(RecipientSource.FROM_RECORD, dry_run=True)
    result = asyncio.run(mailer.send_proces_verbal(b"%PDF", record_recipient="c@x.ro"))
    assert result.success and result.message_id
    assert fake_smtp.delivered == []


def test_message_id_serialized_as_camel_case():
    mailer = _mailer(RecipientSource.FROM_RECORD, dry_run=True)
    result = asyncio.run(mailer.send_proces_verbal(b"%PDF", record_recipient="c@x.ro"))
    assert "messageId" in result.model_dump(by_alias=True)


def test_decode_pdf_payload_forms():
    data = b"%PDF-1.7"
    assert decode_pdf_payload(base64.b64encode(data).decode()) == data
    assert decode_pdf_payload(list(data)) == data
    assert decode_pdf_payload({str(i): b for i, b in reversed(list(enumerate(data)))}) == data


@pytest.mark.parametrize("payload", [None, "", [], {}, "***", [300], {"x": 1}])
def test_decode_pdf_payload_rejects(payload):
    with pytest.raises(ValidationError):
        decode_pdf_payload(payload)

import base64

import pytest

from src.booking.core.settings import settings
from src.booking.domain.enums import OtpPurpose
from src.booking.domain.value_objects import MailMessage, MailAttachment
from src.booking.infra.mailer import build_mime
from src.booking.notifications.emails import otp_email, to_payload, from_payload
from src.booking.worker import worker


ICS = "BEGIN:VCALENDAR\r\nEND:VCALENDAR"


def _message() -> MailMessage:
    return MailMessage(
        to="a@test.local", subject="s", html="<p>h</p>", text="t",
        attachments=(MailAttachment("sessions.ics", ICS, "text/calendar; method=PUBLISH"),),
    )


def test_calendar_attachment_in_mime():
    mime = build_mime(_message(), "from@test.local")
    parts = [p for p in mime.walk() if p.get_content_type() == "text/calendar"]
    assert len(parts) == 1
    assert parts[0].get_param("method") == "PUBLISH"
    assert parts[0].get_filename() == "sessions.ics"
    assert base64.b64decode(parts[0].get_payload()).decode() == ICS
    assert mime["To"] == "a@test.local"


def test_queue_payload_keeps_attachments():
    payload = to_payload(_message())
    assert payload["attempt"] == 1
    assert from_payload(payload) == _message()


def test_otp_email_renders_code():
    msg = otp_email("a@test.local", "123456", OtpPurpose.LOGIN, name="Anna")
    assert "Your code: 123456" in msg.text
    assert "123456" in msg.html
    assert "Hello Anna!" in msg.text
    assert msg.subject == "Your login code"


@pytest.mark.parametrize("purpose, subject", [
    (OtpPurpose.REGISTRATION, "Verify your email"),
    (OtpPurpose.LOGIN, "Your login code"),
    (OtpPurpose.PASSWORD_RESET, "Reset your password"),
])
def test_otp_email_for_every_purpose(purpose, subject):
    msg = otp_email("b@test.local", "654321", purpose)
    assert msg.to == "b@test.local"
    assert msg.subject == subject
    assert "Your code: 654321" in msg.text
    assert "Hello User!" in msg.text
    assert "654321" in msg.html
    assert msg.attachments == ()


@pytest.mark.anyio
async def test_worker_requeues_until_max_attempts(monkeypatch):
    published = []

    def _smtp_down(msg):
        raise ConnectionRefusedError("smtp down")

    async def _publish(body, queue):
        published.append((body, queue))

    monkeypatch.setattr(worker, "send_mail", _smtp_down)
    monkeypatch.setattr(worker.broker, "publish", _publish)
    monkeypatch.setattr(settings, "MAIL_RETRY_DELAY_SECONDS", 0)
    monkeypatch.setattr(settings, "MAIL_MAX_ATTEMPTS", 2)

    assert await worker.deliver(to_payload(_message())) is False
    assert len(published) == 1
    assert '"attempt": 2' in published[0][0]
    assert published[0][1] == settings.MAIL_QUEUE

    # последняя попытка: больше не переставляем
    assert await worker.deliver(to_payload(_message(), attempt=2)) is False
    assert len(published) == 1


@pytest.mark.anyio
async def test_worker_sends(monkeypatch):
    sent = []
    monkeypatch.setattr(worker, "send_mail", sent.append)
    assert await worker.deliver(to_payload(_message())) is True
    assert sent == [_message()]

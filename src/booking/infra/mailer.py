import logging
import smtplib
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email import encoders

from src.booking.core.settings import settings
from src.booking.domain.value_objects import MailMessage, MailAttachment

logger = logging.getLogger(__name__)


def build_mime(msg: MailMessage, sender: str) -> MIMEMultipart:
    mime = MIMEMultipart("mixed")
    mime["From"] = sender
    mime["To"] = msg.to
    mime["Subject"] = msg.subject

    body = MIMEMultipart("alternative")
    body.attach(MIMEText(msg.text, "plain", "utf-8"))
    body.attach(MIMEText(msg.html, "html", "utf-8"))
    mime.attach(body)

    for att in msg.attachments:
        mime.attach(_attachment_part(att))
    return mime


def _attachment_part(att: MailAttachment) -> MIMEBase:
    # "text/calendar; method=PUBLISH" -> ("text", "calendar"), params
    main, _, params = att.content_type.partition(";")
    maintype, _, subtype = main.strip().partition("/")
    part = MIMEBase(maintype or "application", subtype or "octet-stream")
    for param in params.split(";"):
        key, _, value = param.strip().partition("=")
        if key and value:
            part.set_param(key, value)
    part.set_payload(att.content.encode("utf-8"))
    encoders.encode_base64(part)
    part.add_header("Content-Disposition", "attachment", filename=att.filename)
    return part


def send_mail(msg: MailMessage) -> None:
    """Синхронная отправка через SMTP. Ошибки пробрасываются: ретраит воркер."""
    mime = build_mime(msg, settings.EMAIL_FROM)
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        if settings.SMTP_STARTTLS:
            server.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.sendmail(settings.EMAIL_FROM, [msg.to], mime.as_string())
    logger.info("mail sent to=%s subject=%s", msg.to, msg.subject)

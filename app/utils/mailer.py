import logging
import smtplib
from email.message import EmailMessage

from app.errors import ChannelDeliveryError
from config import settings

_LOGGER = logging.getLogger(__name__)


def send_email(to: str | None, subject: str, body: str) -> None:
    if not settings.SMTP_HOST:
        _LOGGER.info("[EMAIL] DEV mode: would send %r to %s", subject, to)
        return
    if not to:
        raise ChannelDeliveryError("EMAIL", "recipient email unknown")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.SMTP_FROM_ADDRESS
    msg["To"] = to
    msg.set_content(body)

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT) as smtp:
        if settings.SMTP_PORT != 25:
            smtp.starttls()
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
        smtp.send_message(msg)

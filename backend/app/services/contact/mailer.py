"""Mail dispatch for approved submissions.

Two transports: the Resend HTTP API (default) and a plain SMTP relay.
"""

from __future__ import annotations

import abc
import asyncio
import html
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

import httpx

from app.core.config import Settings
from app.utils.redaction import redact_email_for_log

from .contracts import ContactSubmission
from .errors import DispatchFailed

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
FOOTER_TEXT = "This message was sent from your website contact form."


@dataclass(frozen=True)
class ComposedMessage:
    subject: str
    body_text: str
    body_html: str
    reply_to: str


def compose_message(submission: ContactSubmission) -> ComposedMessage:
    name = submission.name
    body_text = (
        f"Name: {name}\n"
        f"Email: {submission.email}\n"
        f"Message:\n{submission.message}\n"
        f"\n--\n{FOOTER_TEXT}\n"
    )
    message_html = html.escape(submission.message).replace("\n", "<br>")
    body_html = (
        f"<p><strong>Name:</strong> {html.escape(name)}</p>\n"
        f"<p><strong>Email:</strong> {html.escape(submission.email)}</p>\n"
        f"<p><strong>Message:</strong><br>{message_html}</p>\n"
        f"<hr>\n<p>{FOOTER_TEXT}</p>"
    )
    # Header injection: the subject is built from user input.
    subject_name = " ".join(name.split())
    return ComposedMessage(
        subject=f"New message from {subject_name}",
        body_text=body_text,
        body_html=body_html,
        reply_to=submission.email,
    )


class Mailer(abc.ABC):
    name: str = "base"

    @abc.abstractmethod
    async def send(self, submission: ContactSubmission) -> None:
        """Deliver *submission* or raise ``DispatchFailed``."""


class ResendMailer(Mailer):
    name = "resend"

    def __init__(
        self,
        api_key: str,
        *,
        from_email: str,
        to_email: str,
        api_url: str = RESEND_API_URL,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._to_email = to_email
        self._api_url = api_url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def send(self, submission: ContactSubmission) -> None:
        if not self._api_key or not self._to_email:
            logger.error("Resend not configured (RESEND_API_KEY / EMAIL_TO missing)")
            raise DispatchFailed()

        composed = compose_message(submission)
        payload = {
            "from": self._from_email,
            "to": [self._to_email],
            "subject": composed.subject,
            "html": composed.body_html,
            "text": composed.body_text,
            "reply_to": composed.reply_to,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    self._api_url,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error("Resend request failed: %s", exc.__class__.__name__)
            raise DispatchFailed("Email service request failed") from exc

        if not resp.is_success:
            logger.error("Resend API error: status=%s", resp.status_code)
            raise DispatchFailed("Failed to send email via Resend")

        logger.info("Contact email sent via Resend: reply_to=%s", redact_email_for_log(submission.email))


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    use_tls: bool
    from_email: str


def send_email_via_smtp(
    *,
    smtp: SmtpConfig,
    to_email: str,
    composed: ComposedMessage,
) -> None:
    msg = EmailMessage()
    msg["From"] = smtp.from_email
    msg["To"] = to_email
    msg["Subject"] = composed.subject
    msg["Reply-To"] = composed.reply_to
    msg.set_content(composed.body_text)
    msg.add_alternative(composed.body_html, subtype="html")

    context = ssl.create_default_context()

    # Port 465 uses implicit SSL (SMTP_SSL), anything else optional STARTTLS
    if smtp.port == 465:
        server = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=20, context=context)
    else:
        server = smtplib.SMTP(smtp.host, smtp.port, timeout=20)
    try:
        if smtp.port != 465 and smtp.use_tls:
            server.starttls(context=context)
        if smtp.user and smtp.password:
            server.login(smtp.user, smtp.password)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            logger.debug("SMTP quit failed after send", exc_info=True)


class SmtpMailer(Mailer):
    name = "smtp"

    def __init__(self, smtp: SmtpConfig, *, to_email: str) -> None:
        self._smtp = smtp
        self._to_email = to_email

    async def send(self, submission: ContactSubmission) -> None:
        if not self._smtp.host or not self._to_email:
            logger.error("SMTP not configured (SMTP_HOST / EMAIL_TO missing)")
            raise DispatchFailed()

        composed = compose_message(submission)
        try:
            await asyncio.to_thread(
                send_email_via_smtp,
                smtp=self._smtp,
                to_email=self._to_email,
                composed=composed,
            )
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP send failed: %s", exc.__class__.__name__)
            raise DispatchFailed("Failed to send email via SMTP") from exc

        logger.info("Contact email sent via SMTP: reply_to=%s", redact_email_for_log(submission.email))


def build_mailer(settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> Mailer:
    if settings.mail_provider == "smtp":
        return SmtpMailer(
            SmtpConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                user=settings.smtp_user or None,
                password=settings.smtp_password or None,
                use_tls=settings.smtp_use_tls,
                from_email=settings.email_from,
            ),
            to_email=settings.email_to,
        )
    if settings.mail_provider != "resend":
        logger.warning("Unknown MAIL_PROVIDER %r, using resend", settings.mail_provider)
    return ResendMailer(
        settings.resend_api_key,
        from_email=settings.email_from,
        to_email=settings.email_to,
        api_url=settings.resend_api_url,
        timeout_seconds=settings.mail_timeout_seconds,
        transport=transport,
    )

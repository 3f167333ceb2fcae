# app/services/notifications.py
"""
Notification Dispatch Adapter: delivers invite links by e-mail.

Three backends, picked by `EMAIL_BACKEND`:

* ``console``  – logs the message; default for local development
* ``smtp``     – stdlib smtplib, run in a worker thread
* ``sendgrid`` – SendGrid v3 mail-send API over httpx

All of them raise `DeliveryError` on failure and nothing else.
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional, Protocol

import httpx
from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings
from app.services.errors import DeliveryError

logger = logging.getLogger(__name__)

INVITE_SUBJECT = "You have been invited to join a category"


@dataclass(frozen=True)
class InviteMessage:
    to: str
    subject: str
    text: str
    html: str


def redact_link(invite_link: str) -> str:
    """The invite link with its token replaced, safe to log."""
    base, _, _token = invite_link.rpartition("/")
    return f"{base}/<token>" if base else "<token>"


def build_invite_message(to: str, invite_link: str, category_name: Optional[str] = None) -> InviteMessage:
    target = f'the category "{category_name}"' if category_name else "a category"
    text = f"You have been invited to collaborate on {target}! Click here to join: {invite_link}"
    html = (
        f"<p>You have been invited to collaborate on {escape(target)}!<br/>"
        f'<a href="{escape(invite_link, quote=True)}">Accept invitation</a></p>'
    )
    return InviteMessage(to=to, subject=INVITE_SUBJECT, text=text, html=html)


class Notifier(Protocol):
    async def send_invite(self, to: str, invite_link: str, category_name: Optional[str] = None) -> None:
        """Deliver the invite or raise `DeliveryError`."""
        ...


class ConsoleNotifier:
    """Writes the invite to the log instead of sending it. The token itself is never logged."""

    async def send_invite(self, to: str, invite_link: str, category_name: Optional[str] = None) -> None:
        message = build_invite_message(to, redact_link(invite_link), category_name)
        logger.info("[console e-mail] To: %s | Subject: %s | %s", message.to, message.subject, message.text)


class SmtpNotifier:
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        from_email: str,
        timeout: float = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email
        self.timeout = timeout

    def _build_mime(self, message: InviteMessage) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = self.from_email
        msg["To"] = message.to
        msg.attach(MIMEText(message.text, "plain", "utf-8"))
        msg.attach(MIMEText(message.html, "html", "utf-8"))
        return msg

    def _send_blocking(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            server.send_message(msg)

    async def send_invite(self, to: str, invite_link: str, category_name: Optional[str] = None) -> None:
        msg = self._build_mime(build_invite_message(to, invite_link, category_name))
        try:
            await run_in_threadpool(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s via %s:%s failed: %s", to, self.host, self.port, exc)
            raise DeliveryError() from exc
        logger.info("Invite e-mail sent to %s via SMTP", to)


class SendGridNotifier:
    def __init__(
        self,
        *,
        api_key: str,
        from_email: str,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout: float = 10,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    def _payload(self, message: InviteMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.from_email},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            self.api_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )

    async def send_invite(self, to: str, invite_link: str, category_name: Optional[str] = None) -> None:
        payload = self._payload(build_invite_message(to, invite_link, category_name))
        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("SendGrid delivery to %s failed: %s", to, exc)
            raise DeliveryError() from exc
        logger.info("Invite e-mail sent to %s via SendGrid", to)


def build_notifier(settings: Settings) -> Notifier:
    """Instantiate the backend named by `settings.EMAIL_BACKEND`."""
    if settings.EMAIL_BACKEND == "smtp":
        return SmtpNotifier(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
            from_email=settings.EMAIL_FROM,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    if settings.EMAIL_BACKEND == "sendgrid":
        if not settings.SENDGRID_API_KEY:
            raise RuntimeError("EMAIL_BACKEND=sendgrid requires SENDGRID_API_KEY.")
        return SendGridNotifier(
            api_key=settings.SENDGRID_API_KEY,
            from_email=settings.EMAIL_FROM,
            api_url=settings.SENDGRID_API_URL,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    return ConsoleNotifier()

"""
ART Job Board - Email Service

Transactional email for estimate notifications.
Supports SendGrid, Mailgun, or SMTP, with a logging mock for development.

One EmailService is built at application startup and handed to request
handlers through a dependency.
"""

import asyncio
import html
import logging
import re
import smtplib
import ssl
import uuid
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional, Union

import httpx

from jobboard.config import settings

logger = logging.getLogger(__name__)


class EmailProvider:
    """Email provider types."""
    SMTP = "smtp"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"
    MOCK = "mock"


@dataclass
class EmailPayload:
    """Notification content handed to the email service."""
    subject: str
    html: str
    project_id: Optional[Union[str, uuid.UUID]] = None
    text: Optional[str] = None


@dataclass
class EmailResult:
    """Outcome of a send."""
    success: bool
    provider: str
    recipients: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class EmailMessage:
    """Email message data structure."""
    to: List[str]
    subject: str
    body_text: str
    body_html: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


class EmailService:
    """Service for sending transactional emails."""

    SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
    MAILGUN_URL = "https://api.mailgun.net/v3/{domain}/messages"

    def __init__(
        self,
        provider: Optional[str] = None,
        sendgrid_api_key: Optional[str] = None,
        mailgun_api_key: Optional[str] = None,
        mailgun_domain: Optional[str] = None,
        smtp_host: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.from_email = settings.email_from
        self.from_name = settings.mail_from_name
        self.configured_provider = provider or settings.email_provider

        # SMTP settings
        self.smtp_host = smtp_host if smtp_host is not None else settings.smtp_host
        self.smtp_port = settings.mail_port
        self.smtp_username = settings.mail_username
        self.smtp_password = settings.mail_password
        self.smtp_use_tls = settings.mail_use_tls

        # SendGrid settings
        self.sendgrid_api_key = sendgrid_api_key or settings.sendgrid_api_key

        # Mailgun settings
        self.mailgun_api_key = mailgun_api_key or settings.mailgun_api_key
        self.mailgun_domain = mailgun_domain or settings.mailgun_domain

        self.timeout = timeout
        self.provider = self._determine_provider()

    def _determine_provider(self) -> str:
        """Determine which email provider to use based on configuration."""
        if self.configured_provider:
            return self.configured_provider
        if self.sendgrid_api_key:
            return EmailProvider.SENDGRID
        elif self.mailgun_api_key and self.mailgun_domain:
            return EmailProvider.MAILGUN
        elif self.smtp_host:
            return EmailProvider.SMTP
        else:
            return EmailProvider.MOCK

    async def send(self, recipient: Union[str, List[str]], payload: EmailPayload) -> EmailResult:
        """
        Send a notification.

        Delivery failures are reported in the result, never raised.
        """
        recipients = [recipient] if isinstance(recipient, str) else list(recipient)
        headers = {}
        if payload.project_id:
            headers["X-ART-Project-Id"] = str(payload.project_id)

        message = EmailMessage(
            to=recipients,
            subject=payload.subject,
            body_text=payload.text or _html_to_text(payload.html),
            body_html=payload.html,
            headers=headers,
        )
        try:
            if self.provider == EmailProvider.SENDGRID:
                await self._send_via_sendgrid(message)
            elif self.provider == EmailProvider.MAILGUN:
                await self._send_via_mailgun(message)
            elif self.provider == EmailProvider.SMTP:
                await asyncio.to_thread(self._send_via_smtp, message)
            else:
                self._send_mock(message)
        except (httpx.HTTPError, smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via {self.provider}: {e}")
            return EmailResult(success=False, provider=self.provider, recipients=recipients, error=str(e))

        return EmailResult(success=True, provider=self.provider, recipients=recipients)

    async def _send_via_sendgrid(self, message: EmailMessage) -> None:
        """Send email via SendGrid API."""
        payload: Dict[str, Any] = {
            "personalizations": [
                {
                    "to": [{"email": email} for email in message.to],
                }
            ],
            "from": {
                "email": self.from_email,
                "name": self.from_name,
            },
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.body_text},
            ],
        }

        if message.body_html:
            payload["content"].append({
                "type": "text/html",
                "value": message.body_html,
            })

        if message.headers:
            payload["headers"] = message.headers

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.SENDGRID_URL,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.sendgrid_api_key}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()

        logger.info(f"Email sent via SendGrid to {message.to}")

    async def _send_via_mailgun(self, message: EmailMessage) -> None:
        """Send email via Mailgun API."""
        data: Dict[str, Any] = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": message.to,
            "subject": message.subject,
            "text": message.body_text,
        }

        if message.body_html:
            data["html"] = message.body_html

        for name, value in message.headers.items():
            data[f"h:{name}"] = value

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.MAILGUN_URL.format(domain=self.mailgun_domain),
                data=data,
                auth=("api", self.mailgun_api_key),
            )
            response.raise_for_status()

        logger.info(f"Email sent via Mailgun to {message.to}")

    def _send_via_smtp(self, message: EmailMessage) -> None:
        """Send email via SMTP."""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = message.subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ', '.join(message.to)
        for name, value in message.headers.items():
            msg[name] = value

        msg.attach(MIMEText(message.body_text, 'plain'))
        if message.body_html:
            msg.attach(MIMEText(message.body_html, 'html'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            if self.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.smtp_username and self.smtp_password:
                server.login(self.smtp_username, self.smtp_password)
            server.sendmail(self.from_email, message.to, msg.as_string())

        logger.info(f"Email sent via SMTP to {message.to}")

    def _send_mock(self, message: EmailMessage) -> None:
        """Mock email sending for development."""
        logger.info(f"[MOCK EMAIL] To: {message.to} | Subject: {message.subject}")
        logger.debug(f"[MOCK EMAIL] Body: {message.body_text[:200]}...")


def _html_to_text(body: str) -> str:
    text = re.sub(r"<(br|/p|/h[1-6]|/tr)\s*/?>", "\n", body, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    return html.unescape(re.sub(r"\n\s*\n+", "\n\n", text)).strip()


# ===========================================
# NOTIFICATION TEMPLATES
# ===========================================

def build_estimate_sent_email(
    project_number: str,
    project_name: str,
    client_name: str,
    project_id: Optional[Union[str, uuid.UUID]] = None,
    snapshot: Optional[Dict[str, Any]] = None,
) -> EmailPayload:
    """Notification sent to the client when an estimate is delivered."""
    subject = f"Estimate Completed - {project_number} {project_name}"
    project_url = f"{settings.base_url}/projects/{project_id}" if project_id else settings.base_url

    pricing_rows = ""
    if snapshot:
        pricing_rows = f"""
                <table style="border-collapse: collapse; margin: 16px 0;">
                    <tr><td style="padding: 4px 12px;">Plan type</td><td style="padding: 4px 12px;">{html.escape(str(snapshot.get('plan_type', '')))}</td></tr>
                    <tr><td style="padding: 4px 12px;">Quantity</td><td style="padding: 4px 12px;">{snapshot.get('qty')}</td></tr>
                    <tr><td style="padding: 4px 12px;">Price each</td><td style="padding: 4px 12px;">${snapshot.get('price_each'):,.2f} {snapshot.get('currency', 'AUD')}</td></tr>
                    <tr><td style="padding: 4px 12px;"><strong>Total</strong></td><td style="padding: 4px 12px;"><strong>${snapshot.get('total_price'):,.2f} {snapshot.get('currency', 'AUD')}</strong></td></tr>
                    <tr><td style="padding: 4px 12px;">Loyalty tier</td><td style="padding: 4px 12px;">{html.escape(str(snapshot.get('loyalty_tier', '')))}</td></tr>
                </table>"""

    body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h1 style="color: #1d4ed8;">Your estimate is ready</h1>
                <p>Hi {html.escape(client_name)},</p>
                <p>The estimate for <strong>{html.escape(project_number)} {html.escape(project_name)}</strong> has been completed and sent.</p>
                {pricing_rows}
                <p>
                    <a href="{project_url}"
                       style="display: inline-block; background-color: #1d4ed8; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">
                        View Project
                    </a>
                </p>
                <p>Best regards,<br>The ART Estimating Team</p>
            </div>
        </body>
        </html>
        """

    return EmailPayload(subject=subject, html=body_html, project_id=project_id)

"""
Email Service for AchievR
=========================
Sends issued certificates to students with the PDF attached.

Supports both SMTP and SendGrid. Every send returns a DeliveryResult; no
exception escapes a mailer, so a failing provider can never undo a
certificate that is already persisted.
"""

import asyncio
import base64
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional, Protocol
from xml.sax.saxutils import escape

import aiosmtplib
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import (
    Mail, Email, To, Content, Attachment, FileContent, FileName, FileType, Disposition,
)

from app.core.config import settings
from app.core.logging_config import logger
from app.core.types import utcnow
from app.services.certificate_renderer import CertificateFields


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class Mailer(Protocol):
    async def send_certificate(
        self,
        to_email: str,
        to_name: str,
        fields: CertificateFields,
        pdf_bytes: bytes,
    ) -> DeliveryResult:
        ...


class EmailService:
    """Async certificate mailer using SMTP or SendGrid"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL
        self.sendgrid_api_key = settings.SENDGRID_API_KEY
        self.use_sendgrid = settings.USE_SENDGRID and bool(self.sendgrid_api_key)

        if self.use_sendgrid:
            logger.info("[Email] Using SendGrid for email delivery")
        else:
            logger.info("[Email] Using SMTP for email delivery")

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured"""
        if self.use_sendgrid:
            return bool(self.sendgrid_api_key)
        return bool(self.smtp_user and self.smtp_password)

    async def send_certificate(
        self,
        to_email: str,
        to_name: str,
        fields: CertificateFields,
        pdf_bytes: bytes,
    ) -> DeliveryResult:
        if not self.is_configured:
            logger.warning("[Email] Email service not configured, certificate not sent")
            return DeliveryResult(success=False, error="Email service not configured")

        if not pdf_bytes:
            return DeliveryResult(success=False, error="Certificate PDF is empty")

        subject = f"Your Certificate: {fields.title}"
        html_content = self._certificate_html(to_name, fields)
        text_content = self._certificate_text(to_name, fields)
        filename = f"{fields.certificate_id}.pdf"

        if self.use_sendgrid:
            return await self._send_via_sendgrid(to_email, subject, html_content, text_content, filename, pdf_bytes)
        return await self._send_via_smtp(to_email, subject, html_content, text_content, filename, pdf_bytes)

    async def _send_via_sendgrid(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str,
        filename: str,
        pdf_bytes: bytes,
    ) -> DeliveryResult:
        """Send email via SendGrid API"""
        try:
            message = Mail(
                from_email=Email(self.from_email, self.from_name),
                to_emails=To(to_email),
                subject=subject,
                plain_text_content=Content("text/plain", text_content),
                html_content=Content("text/html", html_content),
            )
            message.attachment = Attachment(
                FileContent(base64.b64encode(pdf_bytes).decode("ascii")),
                FileName(filename),
                FileType("application/pdf"),
                Disposition("attachment"),
            )

            sg = SendGridAPIClient(self.sendgrid_api_key)
            # Run synchronous SendGrid call in thread pool
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, sg.send, message)

            if response.status_code in (200, 201, 202):
                message_id = response.headers.get("X-Message-Id") if response.headers else None
                logger.info(f"[Email/SendGrid] Sent {filename} to {to_email} (message id {message_id})")
                return DeliveryResult(success=True, message_id=message_id)

            logger.error(f"[Email/SendGrid] Failed with status {response.status_code}: {response.body}")
            return DeliveryResult(success=False, error=f"SendGrid returned status {response.status_code}")

        except Exception as e:
            logger.error(f"[Email/SendGrid] Failed to send {filename} to {to_email}: {e}")
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

    async def _send_via_smtp(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str,
        filename: str,
        pdf_bytes: bytes,
    ) -> DeliveryResult:
        """Send email via SMTP"""
        try:
            message = MIMEMultipart("mixed")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject
            message_id = make_msgid(domain=self.from_email.split("@")[-1])
            message["Message-ID"] = message_id

            body = MIMEMultipart("alternative")
            body.attach(MIMEText(text_content, "plain"))
            body.attach(MIMEText(html_content, "html"))
            message.attach(body)

            attachment = MIMEApplication(pdf_bytes, _subtype="pdf")
            attachment.add_header("Content-Disposition", "attachment", filename=filename)
            message.attach(attachment)

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )

            logger.info(f"[Email/SMTP] Sent {filename} to {to_email}")
            return DeliveryResult(success=True, message_id=message_id)

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send {filename} to {to_email}: {e}")
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

    def _certificate_html(self, to_name: str, fields: CertificateFields) -> str:
        event_date = fields.event_date.strftime("%B %d, %Y") if fields.event_date else "-"
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: #1a365d; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
                .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }}
                .details {{ background: white; border: 1px solid #e5e7eb; border-radius: 8px; padding: 16px; margin: 20px 0; }}
                .button {{ display: inline-block; background: #3182ce; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; }}
                .footer {{ text-align: center; margin-top: 30px; font-size: 12px; color: #6b7280; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>Congratulations!</h1>
                </div>
                <div class="content">
                    <p>Hi {escape(to_name or 'there')},</p>
                    <p>Your achievement has been verified and your certificate is attached to this email.</p>
                    <div class="details">
                        <p><strong>Achievement:</strong> {escape(fields.title)}</p>
                        <p><strong>Level:</strong> {escape(fields.achievement_level or 'College')}</p>
                        <p><strong>Organized by:</strong> {escape(fields.organizing_body or '-')}</p>
                        <p><strong>Event date:</strong> {event_date}</p>
                        <p><strong>Certificate ID:</strong> {escape(fields.certificate_id)}</p>
                    </div>
                    <p style="text-align: center;">
                        <a href="{escape(fields.verification_url)}" class="button">Verify Certificate</a>
                    </p>
                </div>
                <div class="footer">
                    <p>&copy; {utcnow().year} AchievR. All rights reserved.</p>
                </div>
            </div>
        </body>
        </html>
        """

    def _certificate_text(self, to_name: str, fields: CertificateFields) -> str:
        return f"""
        Hi {to_name or 'there'},

        Your achievement "{fields.title}" has been verified.
        Your certificate ({fields.certificate_id}) is attached to this email.

        Verify it at: {fields.verification_url}

        - The AchievR Team
        """


# Singleton instance
email_service = EmailService()

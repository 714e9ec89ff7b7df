"""
Test doubles for the certificate renderer and mailer.

Both satisfy the Renderer / Mailer protocols so they can be injected into the
services directly or through app.dependency_overrides.
"""
import asyncio
import time
from typing import List

from app.services.certificate_renderer import CertificateFields, RenderedCertificate
from app.services.email_service import DeliveryResult


class FakeRenderer:
    """Renders a tiny placeholder PDF and remembers what it was asked to draw"""

    def __init__(self):
        self.rendered: List[CertificateFields] = []

    def render(self, fields: CertificateFields) -> RenderedCertificate:
        self.rendered.append(fields)
        pdf = f"%PDF-1.4\n% certificate {fields.certificate_id}\n%%EOF".encode()
        return RenderedCertificate(pdf_bytes=pdf, qr_png=b"\x89PNG fake")


class FailingRenderer:
    def render(self, fields: CertificateFields) -> RenderedCertificate:
        raise RuntimeError("font cache corrupted")


class SlowRenderer(FakeRenderer):
    def __init__(self, delay: float = 0.5):
        super().__init__()
        self.delay = delay

    def render(self, fields: CertificateFields) -> RenderedCertificate:
        time.sleep(self.delay)
        return super().render(fields)


class FakeMailer:
    """Records sends; flip `fail` to simulate a provider outage"""

    def __init__(self, fail: bool = False, error: str = "SMTP connection refused"):
        self.fail = fail
        self.error = error
        self.sent: List[dict] = []
        self.attempts = 0

    async def send_certificate(
        self,
        to_email: str,
        to_name: str,
        fields: CertificateFields,
        pdf_bytes: bytes,
    ) -> DeliveryResult:
        self.attempts += 1
        if self.fail:
            return DeliveryResult(success=False, error=self.error)
        self.sent.append({
            "to_email": to_email,
            "to_name": to_name,
            "certificate_id": fields.certificate_id,
            "pdf_bytes": pdf_bytes,
        })
        return DeliveryResult(success=True, message_id=f"msg-{len(self.sent)}")


class SlowMailer(FakeMailer):
    def __init__(self, delay: float = 1.0):
        super().__init__()
        self.delay = delay

    async def send_certificate(self, to_email, to_name, fields, pdf_bytes) -> DeliveryResult:
        await asyncio.sleep(self.delay)
        return await super().send_certificate(to_email, to_name, fields, pdf_bytes)


class ExplodingMailer(FakeMailer):
    """Raises instead of returning a failed result"""

    async def send_certificate(self, to_email, to_name, fields, pdf_bytes) -> DeliveryResult:
        self.attempts += 1
        raise ConnectionResetError("connection reset by peer")

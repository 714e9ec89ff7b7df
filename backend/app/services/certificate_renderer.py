"""
Certificate Renderer - PDF certificates with an embedded verification QR code.

Rendering is blocking (reportlab + Pillow), so callers go through
render_certificate(), which runs the renderer in the default executor under a
timeout and normalises every failure into RenderError.
"""

import asyncio
import io
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Protocol
from xml.sax.saxutils import escape

import qrcode
from qrcode.constants import ERROR_CORRECT_H
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch, cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image

from app.core.exceptions import RenderError, RenderTimeoutError
from app.core.logging_config import logger
from app.core.types import utcnow


@dataclass(frozen=True)
class CertificateFields:
    """Everything printed on a certificate"""
    certificate_id: str
    student_name: str
    title: str
    verification_url: str
    event_date: Optional[date] = None
    organizing_body: Optional[str] = None
    achievement_level: Optional[str] = None
    roll_number: Optional[str] = None
    department: Optional[str] = None
    issued_on: Optional[datetime] = None


@dataclass(frozen=True)
class RenderedCertificate:
    pdf_bytes: bytes
    qr_png: bytes

    @property
    def size(self) -> int:
        return len(self.pdf_bytes)


class Renderer(Protocol):
    """Blocking renderer; must return a complete artifact or raise"""

    def render(self, fields: CertificateFields) -> RenderedCertificate:
        ...


def _format_date(value: Optional[date]) -> str:
    return value.strftime("%B %d, %Y") if value else "-"


class ReportlabCertificateRenderer:
    """Landscape A4 certificate built with reportlab platypus"""

    QR_SIZE = 1.4 * inch

    def generate_qr_png(self, data: str) -> bytes:
        qr = qrcode.QRCode(
            version=1,
            error_correction=ERROR_CORRECT_H,
            box_size=10,
            border=2,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        with io.BytesIO() as buffer:
            img.save(buffer, format="PNG")
            return buffer.getvalue()

    def render(self, fields: CertificateFields) -> RenderedCertificate:
        if not fields.student_name or not fields.title or not fields.certificate_id:
            raise RenderError("Missing required fields for certificate rendering", fields.certificate_id)

        qr_png = self.generate_qr_png(fields.verification_url)

        with io.BytesIO() as buffer, io.BytesIO(qr_png) as qr_buffer:
            doc = SimpleDocTemplate(
                buffer,
                pagesize=landscape(A4),
                rightMargin=1.5*cm,
                leftMargin=1.5*cm,
                topMargin=1.2*cm,
                bottomMargin=1*cm,
                title=f"Certificate {fields.certificate_id}",
            )
            doc.build(self._build_content(fields, qr_buffer))
            pdf_bytes = buffer.getvalue()

        return RenderedCertificate(pdf_bytes=pdf_bytes, qr_png=qr_png)

    def _build_content(self, fields: CertificateFields, qr_buffer: io.BytesIO) -> list:
        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            'CertTitle',
            parent=styles['Heading1'],
            fontSize=30,
            textColor=colors.HexColor('#1a365d'),
            alignment=TA_CENTER,
            spaceAfter=6
        )

        body_style = ParagraphStyle(
            'CertBody',
            parent=styles['Normal'],
            fontSize=12,
            textColor=colors.HexColor('#4a5568'),
            alignment=TA_CENTER,
            spaceAfter=6
        )

        name_style = ParagraphStyle(
            'StudentName',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=colors.HexColor('#2d3748'),
            alignment=TA_CENTER,
            spaceBefore=6,
            spaceAfter=6
        )

        achievement_style = ParagraphStyle(
            'Achievement',
            parent=styles['Heading2'],
            fontSize=18,
            textColor=colors.HexColor('#3182ce'),
            alignment=TA_CENTER,
            spaceBefore=6,
            spaceAfter=12
        )

        small_style = ParagraphStyle(
            'CertSmall',
            parent=styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#718096'),
            alignment=TA_CENTER,
            spaceAfter=3
        )

        qr_image = Image(qr_buffer, width=self.QR_SIZE, height=self.QR_SIZE)
        qr_cell = [qr_image, Paragraph("<b>SCAN TO VERIFY</b>", small_style)]

        # Header: title centred, QR code pinned to the right
        header = Table(
            [[Paragraph("CERTIFICATE OF ACHIEVEMENT", title_style), qr_cell]],
            colWidths=[20*cm, 5*cm],
        )
        header.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('ALIGN', (1, 0), (1, 0), 'CENTER'),
        ]))

        content = [header, Spacer(1, 8)]
        content.append(Paragraph("This is to certify that", body_style))
        content.append(Paragraph(f"<b>{escape(fields.student_name.upper())}</b>", name_style))

        if fields.roll_number or fields.department:
            student_line = " | ".join(
                part for part in (fields.roll_number, fields.department) if part
            )
            content.append(Paragraph(escape(student_line), body_style))

        content.append(Paragraph("has successfully achieved", body_style))
        content.append(Paragraph(f"<b>{escape(fields.title.upper())}</b>", achievement_style))

        details_data = [
            ['Achievement Level', fields.achievement_level or 'College'],
            ['Organized by', fields.organizing_body or '-'],
            ['Event Date', _format_date(fields.event_date)],
            ['Issued on', _format_date(fields.issued_on or utcnow())],
        ]
        details_table = Table(details_data, colWidths=[2.5*inch, 3.5*inch])
        details_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#4a5568')),
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#e2e8f0')),
            ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#cbd5e0')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        content.append(details_table)
        content.append(Spacer(1, 16))

        content.append(Paragraph(f"Certificate ID: <b>{escape(fields.certificate_id)}</b>", small_style))
        content.append(Paragraph(
            f"Verify at: <font color='#3182ce'>{escape(fields.verification_url)}</font>",
            small_style
        ))
        content.append(Paragraph("AchievR - Credential Verification System", small_style))
        return content


async def render_certificate(
    renderer: Renderer,
    fields: CertificateFields,
    timeout_seconds: float,
) -> RenderedCertificate:
    """Run a blocking renderer off the event loop, bounded by a timeout"""
    loop = asyncio.get_running_loop()
    try:
        rendered = await asyncio.wait_for(
            loop.run_in_executor(None, renderer.render, fields),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error(f"[Renderer] Timed out after {timeout_seconds}s for {fields.certificate_id}")
        raise RenderTimeoutError(timeout_seconds, fields.certificate_id)
    except RenderError:
        raise
    except Exception as e:
        logger.error(f"[Renderer] Failed to render {fields.certificate_id}: {e}", exc_info=True)
        raise RenderError(f"Certificate rendering failed: {e}", fields.certificate_id) from e

    if not rendered or not rendered.pdf_bytes:
        raise RenderError("Renderer returned an empty document", fields.certificate_id)

    logger.info(f"[Renderer] Rendered {fields.certificate_id} ({rendered.size / 1024:.1f} KB)")
    return rendered


# Singleton instance
certificate_renderer = ReportlabCertificateRenderer()

from app.services.certificate_renderer import (
    CertificateFields,
    RenderedCertificate,
    Renderer,
    ReportlabCertificateRenderer,
    certificate_renderer,
)
from app.services.certificate_storage import CertificateStorage, certificate_storage
from app.services.email_service import DeliveryResult, EmailService, Mailer, email_service
from app.services.delivery_service import DeliveryService
from app.services.certificate_service import CertificateService, IssuanceOutcome
from app.services.verification_service import VerificationService, VerificationResult
from app.services.activity_service import ActivityService

__all__ = [
    # Rendering and storage
    "CertificateFields",
    "RenderedCertificate",
    "Renderer",
    "ReportlabCertificateRenderer",
    "certificate_renderer",
    "CertificateStorage",
    "certificate_storage",
    # Email
    "DeliveryResult",
    "EmailService",
    "Mailer",
    "email_service",
    "DeliveryService",
    # Workflows
    "CertificateService",
    "IssuanceOutcome",
    "VerificationService",
    "VerificationResult",
    "ActivityService",
]

"""
Service wiring for the v1 endpoints.

Renderer, mailer and storage are resolved through these dependencies so
tests (and alternative deployments) can swap them with
app.dependency_overrides.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.services.certificate_renderer import Renderer, certificate_renderer
from app.services.certificate_service import CertificateService
from app.services.certificate_storage import CertificateStorage, certificate_storage
from app.services.delivery_service import DeliveryService
from app.services.email_service import Mailer, email_service
from app.services.verification_service import VerificationService
from app.services.activity_service import ActivityService


def get_renderer() -> Renderer:
    return certificate_renderer


def get_mailer() -> Mailer:
    return email_service


def get_storage() -> CertificateStorage:
    return certificate_storage


def get_certificate_service(
    db: AsyncSession = Depends(get_db),
    renderer: Renderer = Depends(get_renderer),
    mailer: Mailer = Depends(get_mailer),
    storage: CertificateStorage = Depends(get_storage),
) -> CertificateService:
    return CertificateService(db, renderer, mailer, storage)


def get_delivery_service(
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    storage: CertificateStorage = Depends(get_storage),
) -> DeliveryService:
    return DeliveryService(db, mailer, storage)


def get_verification_service(db: AsyncSession = Depends(get_db)) -> VerificationService:
    return VerificationService(db)


def get_activity_service(db: AsyncSession = Depends(get_db)) -> ActivityService:
    return ActivityService(db)

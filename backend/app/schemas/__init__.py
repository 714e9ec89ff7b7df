# Pydantic schemas
from app.schemas.certificate import (
    CamelModel,
    VerificationStatus,
    DraftCertificate,
    DRAFT_REQUIRED_FIELDS,
    IssuanceResponse,
    ResendResponse,
    CertificateSummary,
    PublicCertificate,
    VerificationResponse,
    CounterSummary,
    CertificateStatsResponse,
    OverallStatsResponse,
    ChainBlock,
    ChainResponse,
    RevokeRequest,
    ApproveRequest,
    RejectRequest,
    ActivitySummary,
)

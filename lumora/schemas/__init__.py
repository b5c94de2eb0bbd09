"""Pydantic schemas for request/response validation."""

from lumora.schemas.audit import AuditLogList, AuditLogRead
from lumora.schemas.codes import (
    BatchCreate,
    BatchRead,
    BatchRecallRequest,
    IssueCodesRequest,
    IssueCodesResponse,
    QuotaResponse,
)
from lumora.schemas.forensics import (
    ForensicsJobRead,
    ManufacturerTrustRead,
    ReanalysisRequest,
    TrustOverrideRequest,
)
from lumora.schemas.hotspots import (
    ExternalAnalysisRequest,
    ExternalAnalysisResponse,
    HotspotAdvisoryRead,
    HotspotListResponse,
    HotspotPrediction,
)
from lumora.schemas.verification import (
    BatchInfoResponse,
    VerificationLogRead,
    VerifyRequest,
    VerifyResponse,
)

__all__ = [
    "AuditLogList",
    "AuditLogRead",
    "BatchCreate",
    "BatchInfoResponse",
    "BatchRead",
    "BatchRecallRequest",
    "ExternalAnalysisRequest",
    "ExternalAnalysisResponse",
    "ForensicsJobRead",
    "HotspotAdvisoryRead",
    "HotspotListResponse",
    "HotspotPrediction",
    "IssueCodesRequest",
    "IssueCodesResponse",
    "ManufacturerTrustRead",
    "QuotaResponse",
    "ReanalysisRequest",
    "TrustOverrideRequest",
    "VerificationLogRead",
    "VerifyRequest",
    "VerifyResponse",
]

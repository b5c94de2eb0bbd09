"""SQLAlchemy models."""

from lumora.models.audit_log import AuditLog
from lumora.models.batch import Batch
from lumora.models.code import Code
from lumora.models.forensics_job import ForensicsJob
from lumora.models.hotspot_advisory import HotspotAdvisory
from lumora.models.job_run import JobRun
from lumora.models.manufacturer import Manufacturer
from lumora.models.product import Product
from lumora.models.verification_log import ImmutableRecordError, VerificationLog

__all__ = [
    "AuditLog",
    "Batch",
    "Code",
    "ForensicsJob",
    "HotspotAdvisory",
    "ImmutableRecordError",
    "JobRun",
    "Manufacturer",
    "Product",
    "VerificationLog",
]

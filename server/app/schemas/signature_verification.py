from datetime import datetime

from pydantic import Field

from app.models.signature_verification import VerificationStatus
from app.schemas.common import Audited, ORMModel


class SignatureVerificationBase(ORMModel):
    document_signature_id: str = Field(min_length=1, max_length=36)
    verification_status: VerificationStatus = VerificationStatus.NOT_VERIFIED
    verification_details: str | None = None
    verification_provider: str | None = Field(default=None, max_length=64)
    verification_timestamp: datetime | None = None
    certificate_valid: bool | None = None
    certificate_details: str | None = None
    certificate_issuer: str | None = Field(default=None, max_length=255)
    certificate_subject: str | None = Field(default=None, max_length=255)
    certificate_valid_from: datetime | None = None
    certificate_valid_until: datetime | None = None
    document_integrity_valid: bool | None = None
    tenant_id: str | None = Field(default=None, max_length=64)


class SignatureVerificationCreate(SignatureVerificationBase):
    pass


class SignatureVerificationUpdate(SignatureVerificationBase):
    version: int | None = Field(default=None, ge=1)


class SignatureVerificationRead(SignatureVerificationBase, Audited):
    id: str
    version: int

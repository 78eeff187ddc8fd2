from datetime import datetime

from pydantic import EmailStr, Field

from app.models.document_signature import SignatureFormat, SignatureStatus, SignatureType
from app.schemas.common import Audited, ORMModel


class DocumentSignatureBase(ORMModel):
    document_id: str = Field(min_length=1, max_length=36)
    document_version_id: str | None = Field(default=None, max_length=36)
    signature_provider_id: str | None = Field(default=None, max_length=36)
    signer_party_id: str = Field(min_length=1, max_length=36)
    signer_name: str | None = Field(default=None, max_length=255)
    signer_email: EmailStr | None = None
    signature_type: SignatureType | None = None
    signature_format: SignatureFormat | None = None
    signature_reason: str | None = None
    signature_location: str | None = Field(default=None, max_length=255)
    signature_contact_info: str | None = Field(default=None, max_length=255)
    signature_page: int | None = Field(default=None, ge=1)
    expiration_date: datetime | None = None
    tenant_id: str | None = Field(default=None, max_length=64)


class DocumentSignatureCreate(DocumentSignatureBase):
    signature_status: SignatureStatus | None = None


class DocumentSignatureUpdate(DocumentSignatureBase):
    signature_status: SignatureStatus
    signed_at: datetime | None = None
    version: int | None = Field(default=None, ge=1)


class DocumentSignatureRead(DocumentSignatureBase, Audited):
    id: str
    signature_status: SignatureStatus
    signed_at: datetime | None
    version: int


class DocumentSigningSummary(ORMModel):
    document_id: str
    total: int
    status_counts: dict[SignatureStatus, int]
    fully_signed: bool


class DocumentSignedStatus(ORMModel):
    document_id: str
    fully_signed: bool

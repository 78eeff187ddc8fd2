from datetime import datetime

from pydantic import Field

from app.models.document_signature import SignatureStatus
from app.schemas.common import Audited, ORMModel


class SignatureRequestBase(ORMModel):
    document_signature_id: str = Field(min_length=1, max_length=36)
    request_message: str | None = None
    expiration_date: datetime | None = None
    tenant_id: str | None = Field(default=None, max_length=64)


class SignatureRequestCreate(SignatureRequestBase):
    request_reference: str | None = Field(default=None, min_length=3, max_length=64)
    request_status: SignatureStatus | None = None
    notification_sent: bool | None = None
    reminder_sent: bool | None = None


class SignatureRequestUpdate(SignatureRequestBase):
    request_reference: str = Field(min_length=3, max_length=64)
    request_status: SignatureStatus
    external_signature_id: str | None = Field(default=None, max_length=120)
    provider_name: str | None = Field(default=None, max_length=64)
    notification_sent: bool = False
    notification_sent_at: datetime | None = None
    reminder_sent: bool = False
    reminder_sent_at: datetime | None = None
    completed_at: datetime | None = None
    version: int | None = Field(default=None, ge=1)


class SignatureRequestRead(SignatureRequestBase, Audited):
    id: str
    request_reference: str
    request_status: SignatureStatus
    external_signature_id: str | None
    provider_name: str | None
    notification_sent: bool
    notification_sent_at: datetime | None
    reminder_sent: bool
    reminder_sent_at: datetime | None
    completed_at: datetime | None
    version: int


class SignatureRequestCollection(ORMModel):
    items: list[SignatureRequestRead]
    total: int
    page: int
    page_size: int


class ExpirationSweepRead(ORMModel):
    expired: list[SignatureRequestRead]
    skipped: int
    failures: dict[str, str]

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import AuditMixin, Identifier


class VerificationStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    INDETERMINATE = "indeterminate"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    NOT_VERIFIED = "not_verified"


class SignatureVerification(AuditMixin, Base):
    __tablename__ = "signature_verifications"

    id: Mapped[Identifier]
    document_signature_id: Mapped[str] = mapped_column(
        ForeignKey("document_signatures.id", ondelete="CASCADE"), nullable=False, index=True
    )
    verification_status: Mapped[VerificationStatus] = mapped_column(
        SAEnum(VerificationStatus), default=VerificationStatus.NOT_VERIFIED, nullable=False, index=True
    )
    verification_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    verification_provider: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verification_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    certificate_valid: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    certificate_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    certificate_issuer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    certificate_subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    certificate_valid_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    certificate_valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    document_integrity_valid: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import AuditMixin, Identifier


class SignatureStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"
    CANCELED = "canceled"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({SignatureStatus.SIGNED, SignatureStatus.CANCELED, SignatureStatus.EXPIRED})


class SignatureType(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"
    ADVANCED_WITH_QCERT = "advanced_with_qcert"
    QUALIFIED = "qualified"
    DIGITAL = "digital"
    BIOMETRIC = "biometric"


class SignatureFormat(str, Enum):
    PADES = "pades"
    XADES = "xades"
    CADES = "cades"
    JADES = "jades"
    PDF_VISIBLE = "pdf_visible"
    PDF_INVISIBLE = "pdf_invisible"
    TIMESTAMP = "timestamp"


class DocumentSignature(AuditMixin, Base):
    __tablename__ = "document_signatures"

    id: Mapped[Identifier]
    document_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    document_version_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    signature_provider_id: Mapped[str | None] = mapped_column(
        ForeignKey("signature_providers.id", ondelete="SET NULL"), nullable=True
    )
    signer_party_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    signer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signature_type: Mapped[SignatureType | None] = mapped_column(SAEnum(SignatureType), nullable=True)
    signature_format: Mapped[SignatureFormat | None] = mapped_column(SAEnum(SignatureFormat), nullable=True)
    signature_status: Mapped[SignatureStatus] = mapped_column(
        SAEnum(SignatureStatus), default=SignatureStatus.PENDING, nullable=False, index=True
    )
    signature_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signature_contact_info: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signature_page: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

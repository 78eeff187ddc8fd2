from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.document_signature import SignatureStatus
from app.models.mixins import AuditMixin, Identifier


class SignatureRequest(AuditMixin, Base):
    __tablename__ = "signature_requests"

    id: Mapped[Identifier]
    document_signature_id: Mapped[str] = mapped_column(
        ForeignKey("document_signatures.id", ondelete="CASCADE"), nullable=False, index=True
    )
    request_reference: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    request_status: Mapped[SignatureStatus] = mapped_column(
        SAEnum(SignatureStatus), default=SignatureStatus.PENDING, nullable=False, index=True
    )
    request_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_signature_id: Mapped[str | None] = mapped_column(String(120), nullable=True, index=True)
    provider_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notification_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expiration_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

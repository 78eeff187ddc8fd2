from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import AuditMixin, Identifier


class SignatureProof(AuditMixin, Base):
    __tablename__ = "signature_proofs"

    id: Mapped[Identifier]
    signature_request_id: Mapped[str] = mapped_column(
        ForeignKey("signature_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    proof_url: Mapped[str] = mapped_column(Text, nullable=False)
    proof_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    proof_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"eager_defaults": True}

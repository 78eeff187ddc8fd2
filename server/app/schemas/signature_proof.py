from datetime import datetime

from pydantic import Field

from app.schemas.common import Audited, ORMModel


class SignatureProofBase(ORMModel):
    signature_request_id: str = Field(min_length=1, max_length=36)
    proof_url: str = Field(min_length=1)
    proof_type: str | None = Field(default=None, max_length=64)
    proof_date: datetime | None = None


class SignatureProofCreate(SignatureProofBase):
    pass


class SignatureProofUpdate(SignatureProofBase):
    pass


class SignatureProofRead(SignatureProofBase, Audited):
    id: str


class SignatureProofPayload(ORMModel):
    """Proof as handed to or returned by a provider; not necessarily persisted."""

    signature_request_id: str | None = None
    proof_url: str = Field(min_length=1)
    proof_type: str | None = None
    proof_date: datetime | None = None
    external_signature_id: str | None = None

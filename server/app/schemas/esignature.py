from pydantic import Field

from app.schemas.common import ORMModel
from app.schemas.signature_proof import SignatureProofPayload


class ProofValidationRequest(ORMModel):
    proof: SignatureProofPayload
    tenant_id: str | None = Field(default=None, max_length=64)


class ProofValidationResult(ORMModel):
    valid: bool
    provider: str

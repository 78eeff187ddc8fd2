from app.schemas.document_signature import (
    DocumentSignatureCreate,
    DocumentSignatureRead,
    DocumentSignatureUpdate,
    DocumentSignedStatus,
    DocumentSigningSummary,
)
from app.schemas.esignature import ProofValidationRequest, ProofValidationResult
from app.schemas.signature_proof import (
    SignatureProofCreate,
    SignatureProofPayload,
    SignatureProofRead,
    SignatureProofUpdate,
)
from app.schemas.signature_provider import (
    RegisteredProviders,
    SignatureProviderCreate,
    SignatureProviderRead,
    SignatureProviderUpdate,
)
from app.schemas.signature_request import (
    ExpirationSweepRead,
    SignatureRequestCollection,
    SignatureRequestCreate,
    SignatureRequestRead,
    SignatureRequestUpdate,
)
from app.schemas.signature_verification import (
    SignatureVerificationCreate,
    SignatureVerificationRead,
    SignatureVerificationUpdate,
)

__all__ = [
    "DocumentSignatureCreate",
    "DocumentSignatureRead",
    "DocumentSignatureUpdate",
    "DocumentSignedStatus",
    "DocumentSigningSummary",
    "ProofValidationRequest",
    "ProofValidationResult",
    "SignatureProofCreate",
    "SignatureProofPayload",
    "SignatureProofRead",
    "SignatureProofUpdate",
    "RegisteredProviders",
    "SignatureProviderCreate",
    "SignatureProviderRead",
    "SignatureProviderUpdate",
    "ExpirationSweepRead",
    "SignatureRequestCollection",
    "SignatureRequestCreate",
    "SignatureRequestRead",
    "SignatureRequestUpdate",
    "SignatureVerificationCreate",
    "SignatureVerificationRead",
    "SignatureVerificationUpdate",
]

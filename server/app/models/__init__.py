from app.models.document_signature import (
    DocumentSignature,
    SignatureFormat,
    SignatureStatus,
    SignatureType,
    TERMINAL_STATUSES,
)
from app.models.signature_proof import SignatureProof
from app.models.signature_provider import SignatureProvider
from app.models.signature_request import SignatureRequest
from app.models.signature_verification import SignatureVerification, VerificationStatus

__all__ = [
    "DocumentSignature",
    "SignatureFormat",
    "SignatureStatus",
    "SignatureType",
    "TERMINAL_STATUSES",
    "SignatureProof",
    "SignatureProvider",
    "SignatureRequest",
    "SignatureVerification",
    "VerificationStatus",
]

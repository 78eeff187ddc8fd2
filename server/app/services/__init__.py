from app.services import (
    document_signature_service,
    signature_proof_service,
    signature_provider_service,
    signature_request_service,
    signature_verification_service,
    state_machine,
)

__all__ = [
    "document_signature_service",
    "signature_proof_service",
    "signature_provider_service",
    "signature_request_service",
    "signature_verification_service",
    "state_machine",
]

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ExternalProviderError, NotFoundError
from app.core.logging import get_logger
from app.db.concurrency import ensure_expected_version, flush_versioned
from app.models.document_signature import DocumentSignature, SignatureStatus
from app.models.signature_request import SignatureRequest
from app.models.signature_verification import SignatureVerification, VerificationStatus
from app.schemas.signature_verification import SignatureVerificationCreate, SignatureVerificationUpdate

if TYPE_CHECKING:
    from app.services.esignature_service import ESignatureService

logger = get_logger(__name__)

RESOURCE = "SignatureVerification"


async def _load(session: AsyncSession, verification_id: str) -> SignatureVerification:
    verification = await session.get(SignatureVerification, verification_id)
    if verification is None:
        raise NotFoundError(RESOURCE, verification_id)
    return verification


async def _require_signature(session: AsyncSession, signature_id: str) -> DocumentSignature:
    signature = await session.get(DocumentSignature, signature_id)
    if signature is None:
        raise NotFoundError("DocumentSignature", signature_id)
    return signature


def _apply(verification: SignatureVerification, data: SignatureVerificationCreate) -> None:
    verification.document_signature_id = data.document_signature_id
    verification.verification_status = data.verification_status
    verification.verification_details = data.verification_details
    verification.verification_provider = data.verification_provider
    verification.verification_timestamp = data.verification_timestamp or datetime.now(timezone.utc)
    verification.certificate_valid = data.certificate_valid
    verification.certificate_details = data.certificate_details
    verification.certificate_issuer = data.certificate_issuer
    verification.certificate_subject = data.certificate_subject
    verification.certificate_valid_from = data.certificate_valid_from
    verification.certificate_valid_until = data.certificate_valid_until
    verification.document_integrity_valid = data.document_integrity_valid
    verification.tenant_id = data.tenant_id


async def create_signature_verification(
    session: AsyncSession,
    data: SignatureVerificationCreate,
    actor: str | None = None,
) -> SignatureVerification:
    await _require_signature(session, data.document_signature_id)
    verification = SignatureVerification(created_by=actor, updated_by=actor)
    _apply(verification, data)
    session.add(verification)
    await session.flush()
    await session.refresh(verification)
    logger.info(
        "signature_verification.recorded",
        signature_verification_id=verification.id,
        document_signature_id=verification.document_signature_id,
        status=verification.verification_status.value,
    )
    return verification


async def get_signature_verification(session: AsyncSession, verification_id: str) -> SignatureVerification:
    return await _load(session, verification_id)


async def update_signature_verification(
    session: AsyncSession,
    verification_id: str,
    data: SignatureVerificationUpdate,
    actor: str | None = None,
) -> SignatureVerification:
    verification = await _load(session, verification_id)
    ensure_expected_version(verification.version, data.version, RESOURCE, verification_id)
    if data.document_signature_id != verification.document_signature_id:
        await _require_signature(session, data.document_signature_id)
    _apply(verification, data)
    verification.updated_by = actor
    await flush_versioned(session, RESOURCE, verification_id)
    await session.refresh(verification)
    return verification


async def delete_signature_verification(session: AsyncSession, verification_id: str) -> None:
    verification = await _load(session, verification_id)
    await session.delete(verification)
    await session.flush()


async def list_by_document_signature(session: AsyncSession, signature_id: str) -> Sequence[SignatureVerification]:
    result = await session.execute(
        select(SignatureVerification)
        .where(SignatureVerification.document_signature_id == signature_id)
        .order_by(SignatureVerification.verification_timestamp.desc(), SignatureVerification.created_at.desc())
    )
    return result.scalars().all()


async def list_by_verification_status(
    session: AsyncSession, status: VerificationStatus
) -> Sequence[SignatureVerification]:
    result = await session.execute(
        select(SignatureVerification)
        .where(SignatureVerification.verification_status == status)
        .order_by(SignatureVerification.verification_timestamp.desc())
    )
    return result.scalars().all()


async def get_latest_verification(session: AsyncSession, signature_id: str) -> SignatureVerification:
    result = await session.execute(
        select(SignatureVerification)
        .where(SignatureVerification.document_signature_id == signature_id)
        .order_by(SignatureVerification.verification_timestamp.desc(), SignatureVerification.created_at.desc())
        .limit(1)
    )
    verification = result.scalars().first()
    if verification is None:
        raise NotFoundError(RESOURCE, f"latest for document signature {signature_id}")
    return verification


async def _latest_signed_request(session: AsyncSession, signature_id: str) -> SignatureRequest | None:
    result = await session.execute(
        select(SignatureRequest)
        .where(
            SignatureRequest.document_signature_id == signature_id,
            SignatureRequest.request_status == SignatureStatus.SIGNED,
        )
        .order_by(SignatureRequest.completed_at.desc(), SignatureRequest.created_at.desc())
        .limit(1)
    )
    return result.scalars().first()


async def verify_signature(
    session: AsyncSession,
    esignature_service: "ESignatureService",
    signature_id: str,
    actor: str | None = None,
) -> SignatureVerification:
    """
    Check a document signature against its provider and record the outcome.

    The proof of the newest signed request is fetched and validated by the
    provider that dispatched it. Without a signed request the outcome is
    NOT_VERIFIED; a provider failure is recorded as FAILED.
    """
    signature = await _require_signature(session, signature_id)
    request = await _latest_signed_request(session, signature_id)

    data = SignatureVerificationCreate(
        document_signature_id=signature_id,
        tenant_id=signature.tenant_id,
    )
    if request is None:
        data.verification_status = VerificationStatus.NOT_VERIFIED
        data.verification_details = "No signed signature request"
        return await create_signature_verification(session, data, actor)

    data.verification_provider = request.provider_name
    try:
        proof = await esignature_service.get_signature_proof(session, request.id)
        valid = await esignature_service.validate_signature_proof(
            proof,
            provider_name=request.provider_name,
            tenant_id=request.tenant_id,
            session=session,
        )
    except ExternalProviderError as exc:
        logger.warning(
            "signature_verification.provider_failed",
            document_signature_id=signature_id,
            signature_request_id=request.id,
            error=exc.message,
        )
        data.verification_status = VerificationStatus.FAILED
        data.verification_details = exc.message
        return await create_signature_verification(session, data, actor)

    data.verification_status = VerificationStatus.VALID if valid else VerificationStatus.INVALID
    data.verification_details = f"Proof {proof.proof_url}"
    data.document_integrity_valid = valid
    return await create_signature_verification(session, data, actor)


async def verify_all_signatures_for_document(
    session: AsyncSession,
    esignature_service: "ESignatureService",
    document_id: str,
    actor: str | None = None,
) -> list[SignatureVerification]:
    result = await session.execute(
        select(DocumentSignature.id)
        .where(DocumentSignature.document_id == document_id)
        .order_by(DocumentSignature.created_at.asc())
    )
    return [
        await verify_signature(session, esignature_service, signature_id, actor)
        for signature_id in result.scalars().all()
    ]

from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.db.concurrency import ensure_expected_version, flush_versioned
from app.models.document_signature import DocumentSignature, SignatureStatus
from app.schemas.document_signature import (
    DocumentSignatureCreate,
    DocumentSignatureUpdate,
    DocumentSigningSummary,
)
from app.services.state_machine import ensure_signature_transition

logger = get_logger(__name__)

RESOURCE = "DocumentSignature"


async def _load(session: AsyncSession, signature_id: str) -> DocumentSignature:
    signature = await session.get(DocumentSignature, signature_id)
    if signature is None:
        raise NotFoundError(RESOURCE, signature_id)
    return signature


async def _count(session: AsyncSession, document_id: str, status: SignatureStatus) -> int:
    total = await session.scalar(
        select(func.count())
        .select_from(DocumentSignature)
        .where(DocumentSignature.document_id == document_id, DocumentSignature.signature_status == status)
    )
    return int(total or 0)


async def create_document_signature(
    session: AsyncSession,
    data: DocumentSignatureCreate,
    actor: str | None = None,
) -> DocumentSignature:
    signature = DocumentSignature(
        document_id=data.document_id,
        document_version_id=data.document_version_id,
        signature_provider_id=data.signature_provider_id,
        signer_party_id=data.signer_party_id,
        signer_name=data.signer_name,
        signer_email=data.signer_email,
        signature_type=data.signature_type,
        signature_format=data.signature_format,
        signature_status=data.signature_status or SignatureStatus.PENDING,
        signature_reason=data.signature_reason,
        signature_location=data.signature_location,
        signature_contact_info=data.signature_contact_info,
        signature_page=data.signature_page,
        expiration_date=data.expiration_date,
        tenant_id=data.tenant_id,
        created_by=actor,
        updated_by=actor,
    )
    session.add(signature)
    await session.flush()
    await session.refresh(signature)
    logger.info(
        "document_signature.created",
        document_signature_id=signature.id,
        document_id=signature.document_id,
        signer_party_id=signature.signer_party_id,
    )
    return signature


async def initiate_signing_process(
    session: AsyncSession,
    data: DocumentSignatureCreate,
    actor: str | None = None,
) -> DocumentSignature:
    """Open a signing obligation; whatever status the caller sent, it starts PENDING."""
    return await create_document_signature(
        session,
        data.model_copy(update={"signature_status": SignatureStatus.PENDING}),
        actor,
    )


async def get_document_signature(session: AsyncSession, signature_id: str) -> DocumentSignature:
    return await _load(session, signature_id)


async def update_document_signature(
    session: AsyncSession,
    signature_id: str,
    data: DocumentSignatureUpdate,
    actor: str | None = None,
) -> DocumentSignature:
    signature = await _load(session, signature_id)
    ensure_expected_version(signature.version, data.version, RESOURCE, signature_id)
    ensure_signature_transition(signature.signature_status, data.signature_status)

    signature.document_id = data.document_id
    signature.document_version_id = data.document_version_id
    signature.signature_provider_id = data.signature_provider_id
    signature.signer_party_id = data.signer_party_id
    signature.signer_name = data.signer_name
    signature.signer_email = data.signer_email
    signature.signature_type = data.signature_type
    signature.signature_format = data.signature_format
    signature.signature_status = data.signature_status
    signature.signature_reason = data.signature_reason
    signature.signature_location = data.signature_location
    signature.signature_contact_info = data.signature_contact_info
    signature.signature_page = data.signature_page
    signature.expiration_date = data.expiration_date
    signature.signed_at = data.signed_at
    signature.tenant_id = data.tenant_id
    signature.updated_by = actor

    await flush_versioned(session, RESOURCE, signature_id)
    await session.refresh(signature)
    return signature


async def delete_document_signature(session: AsyncSession, signature_id: str) -> None:
    signature = await _load(session, signature_id)
    await session.delete(signature)
    await session.flush()
    logger.info("document_signature.deleted", document_signature_id=signature_id)


async def cancel_document_signature(
    session: AsyncSession,
    signature_id: str,
    actor: str | None = None,
) -> DocumentSignature:
    """
    Withdraw a signing obligation.

    A signed obligation cannot be withdrawn. Canceling one that is already
    canceled returns it unchanged; a pending or expired one becomes canceled.
    """
    signature = await _load(session, signature_id)
    if signature.signature_status == SignatureStatus.CANCELED:
        return signature
    ensure_signature_transition(signature.signature_status, SignatureStatus.CANCELED)

    signature.signature_status = SignatureStatus.CANCELED
    signature.updated_by = actor
    await flush_versioned(session, RESOURCE, signature_id)
    await session.refresh(signature)
    logger.info("document_signature.canceled", document_signature_id=signature_id)
    return signature


async def list_by_document(session: AsyncSession, document_id: str) -> Sequence[DocumentSignature]:
    result = await session.execute(
        select(DocumentSignature)
        .where(DocumentSignature.document_id == document_id)
        .order_by(DocumentSignature.created_at.asc())
    )
    return result.scalars().all()


async def list_by_document_version(session: AsyncSession, document_version_id: str) -> Sequence[DocumentSignature]:
    result = await session.execute(
        select(DocumentSignature)
        .where(DocumentSignature.document_version_id == document_version_id)
        .order_by(DocumentSignature.created_at.asc())
    )
    return result.scalars().all()


async def list_by_signer_party(session: AsyncSession, signer_party_id: str) -> Sequence[DocumentSignature]:
    result = await session.execute(
        select(DocumentSignature)
        .where(DocumentSignature.signer_party_id == signer_party_id)
        .order_by(DocumentSignature.created_at.asc())
    )
    return result.scalars().all()


async def list_by_signature_status(session: AsyncSession, status: SignatureStatus) -> Sequence[DocumentSignature]:
    result = await session.execute(
        select(DocumentSignature)
        .where(DocumentSignature.signature_status == status)
        .order_by(DocumentSignature.created_at.asc())
    )
    return result.scalars().all()


async def is_document_fully_signed(session: AsyncSession, document_id: str) -> bool:
    """True when nothing is still pending and at least one signer has signed."""
    if await _count(session, document_id, SignatureStatus.PENDING) > 0:
        return False
    return await _count(session, document_id, SignatureStatus.SIGNED) > 0


async def get_document_signing_summary(session: AsyncSession, document_id: str) -> DocumentSigningSummary:
    result = await session.execute(
        select(DocumentSignature.signature_status, func.count())
        .where(DocumentSignature.document_id == document_id)
        .group_by(DocumentSignature.signature_status)
    )
    counts = {status: 0 for status in SignatureStatus}
    for status, total in result.all():
        counts[status] = int(total)
    return DocumentSigningSummary(
        document_id=document_id,
        total=sum(counts.values()),
        status_counts=counts,
        fully_signed=counts[SignatureStatus.PENDING] == 0 and counts[SignatureStatus.SIGNED] > 0,
    )

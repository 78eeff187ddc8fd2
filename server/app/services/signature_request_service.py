from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.db.concurrency import ensure_expected_version, flush_versioned
from app.integrations.esignature.base import SignatureRequestResult
from app.models.document_signature import DocumentSignature, SignatureStatus
from app.models.signature_request import SignatureRequest
from app.schemas.signature_request import SignatureRequestCreate, SignatureRequestUpdate
from app.services.state_machine import (
    TransitionResult,
    advance_request,
    ensure_transition,
    mirror_onto_document_signature,
    reopen_document_signature,
)

logger = get_logger(__name__)

RESOURCE = "SignatureRequest"


@dataclass(slots=True)
class SignatureRequestFilters:
    document_signature_id: str | None = None
    request_status: SignatureStatus | None = None
    tenant_id: str | None = None


@dataclass(slots=True)
class ExpirationSweepResult:
    expired: list[SignatureRequest] = field(default_factory=list)
    skipped: int = 0
    failures: dict[str, str] = field(default_factory=dict)


def generate_request_reference() -> str:
    return f"SR-{uuid.uuid4().hex[:12].upper()}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _load(session: AsyncSession, request_id: str) -> SignatureRequest:
    request = await session.get(SignatureRequest, request_id)
    if request is None:
        raise NotFoundError(RESOURCE, request_id)
    return request


async def _transition(
    session: AsyncSession,
    request: SignatureRequest,
    target: SignatureStatus,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """Apply a guarded status change and mirror it onto the owning document signature."""
    outcome = advance_request(request, target, now=now)
    if outcome.changed:
        signature = await session.get(DocumentSignature, request.document_signature_id)
        if signature is not None and mirror_onto_document_signature(signature, target, now=now):
            signature.updated_by = request.updated_by
        logger.info(
            "signature_request.status_changed",
            signature_request_id=request.id,
            previous=outcome.previous.value,
            current=outcome.current.value,
        )
    return outcome


async def create_signature_request(
    session: AsyncSession,
    data: SignatureRequestCreate,
    actor: str | None = None,
) -> SignatureRequest:
    signature = await session.get(DocumentSignature, data.document_signature_id)
    if signature is None:
        raise NotFoundError("DocumentSignature", data.document_signature_id)

    request = SignatureRequest(
        document_signature_id=data.document_signature_id,
        request_reference=data.request_reference or generate_request_reference(),
        request_status=data.request_status or SignatureStatus.PENDING,
        request_message=data.request_message,
        notification_sent=bool(data.notification_sent),
        reminder_sent=bool(data.reminder_sent),
        expiration_date=data.expiration_date,
        tenant_id=data.tenant_id or signature.tenant_id,
        created_by=actor,
        updated_by=actor,
    )
    if request.request_status == SignatureStatus.SIGNED:
        request.completed_at = _utcnow()
    elif request.request_status == SignatureStatus.PENDING and reopen_document_signature(signature):
        signature.updated_by = actor
        logger.info("document_signature.reopened", document_signature_id=signature.id)
    session.add(request)
    await session.flush()
    await session.refresh(request)
    logger.info(
        "signature_request.created",
        signature_request_id=request.id,
        request_reference=request.request_reference,
        document_signature_id=request.document_signature_id,
    )
    return request


async def get_signature_request(session: AsyncSession, request_id: str) -> SignatureRequest:
    return await _load(session, request_id)


async def update_signature_request(
    session: AsyncSession,
    request_id: str,
    data: SignatureRequestUpdate,
    actor: str | None = None,
) -> SignatureRequest:
    """
    Replace the mutable fields of a stored request.

    Creation audit fields are never overwritten. A status different from the
    stored one goes through the lifecycle guard, so a terminal request cannot
    be moved anywhere by a full update either.
    """
    request = await _load(session, request_id)
    ensure_expected_version(request.version, data.version, RESOURCE, request_id)

    if data.document_signature_id != request.document_signature_id:
        if await session.get(DocumentSignature, data.document_signature_id) is None:
            raise NotFoundError("DocumentSignature", data.document_signature_id)

    request.updated_by = actor
    await _transition(session, request, data.request_status, now=data.completed_at)

    request.document_signature_id = data.document_signature_id
    request.request_reference = data.request_reference
    request.request_message = data.request_message
    request.external_signature_id = data.external_signature_id
    request.provider_name = data.provider_name
    request.notification_sent = data.notification_sent
    request.notification_sent_at = data.notification_sent_at
    request.reminder_sent = data.reminder_sent
    request.reminder_sent_at = data.reminder_sent_at
    request.expiration_date = data.expiration_date
    request.tenant_id = data.tenant_id

    await flush_versioned(session, RESOURCE, request_id)
    await session.refresh(request)
    logger.info("signature_request.updated", signature_request_id=request_id)
    return request


async def apply_provider_result(
    session: AsyncSession,
    request_id: str,
    result: SignatureRequestResult,
    *,
    provider_name: str | None = None,
    actor: str | None = None,
) -> SignatureRequest:
    """Fold a provider response onto the stored request."""
    request = await _load(session, request_id)
    if actor:
        request.updated_by = actor
    if result.status is not None:
        await _transition(session, request, result.status, now=result.completed_at)
    if result.external_signature_id:
        request.external_signature_id = result.external_signature_id
    if provider_name:
        request.provider_name = provider_name
    if result.message:
        request.request_message = result.message
    await flush_versioned(session, RESOURCE, request_id)
    await session.refresh(request)
    return request


async def cancel_signature_request(
    session: AsyncSession,
    request_id: str,
    actor: str | None = None,
) -> SignatureRequest:
    request = await _load(session, request_id)
    ensure_transition(request.request_status, SignatureStatus.CANCELED)
    request.updated_by = actor
    await _transition(session, request, SignatureStatus.CANCELED)
    await flush_versioned(session, RESOURCE, request_id)
    await session.refresh(request)
    return request


async def delete_signature_request(session: AsyncSession, request_id: str) -> None:
    request = await _load(session, request_id)
    await session.delete(request)
    await session.flush()
    logger.info("signature_request.deleted", signature_request_id=request_id)


async def list_by_document_signature(session: AsyncSession, document_signature_id: str) -> Sequence[SignatureRequest]:
    result = await session.execute(
        select(SignatureRequest)
        .where(SignatureRequest.document_signature_id == document_signature_id)
        .order_by(SignatureRequest.created_at.asc())
    )
    return result.scalars().all()


async def get_by_request_reference(session: AsyncSession, request_reference: str) -> SignatureRequest:
    result = await session.execute(
        select(SignatureRequest).where(SignatureRequest.request_reference == request_reference)
    )
    request = result.scalars().first()
    if request is None:
        raise NotFoundError(RESOURCE, request_reference)
    return request


async def list_by_request_status(session: AsyncSession, status: SignatureStatus) -> Sequence[SignatureRequest]:
    result = await session.execute(
        select(SignatureRequest)
        .where(SignatureRequest.request_status == status)
        .order_by(SignatureRequest.created_at.asc())
    )
    return result.scalars().all()


async def list_signature_requests(
    session: AsyncSession,
    *,
    filters: SignatureRequestFilters,
    page: int,
    page_size: int,
) -> tuple[Sequence[SignatureRequest], int]:
    conditions = []
    if filters.document_signature_id:
        conditions.append(SignatureRequest.document_signature_id == filters.document_signature_id)
    if filters.request_status:
        conditions.append(SignatureRequest.request_status == filters.request_status)
    if filters.tenant_id:
        conditions.append(SignatureRequest.tenant_id == filters.tenant_id)

    base_query = select(SignatureRequest)
    count_query = select(func.count()).select_from(SignatureRequest)
    if conditions:
        base_query = base_query.where(and_(*conditions))
        count_query = count_query.where(and_(*conditions))

    total = await session.scalar(count_query)
    result = await session.execute(
        base_query.order_by(SignatureRequest.updated_at.desc()).offset((page - 1) * page_size).limit(page_size)
    )
    return result.scalars().all(), int(total or 0)


async def send_notification(session: AsyncSession, request_id: str, actor: str | None = None) -> SignatureRequest:
    """Record that the signer was notified. Not a status transition."""
    request = await _load(session, request_id)
    request.notification_sent = True
    request.notification_sent_at = _utcnow()
    request.updated_by = actor
    await flush_versioned(session, RESOURCE, request_id)
    await session.refresh(request)
    logger.info("signature_request.notification_sent", signature_request_id=request_id)
    return request


async def send_reminder(session: AsyncSession, request_id: str, actor: str | None = None) -> SignatureRequest:
    request = await _load(session, request_id)
    request.reminder_sent = True
    request.reminder_sent_at = _utcnow()
    request.updated_by = actor
    await flush_versioned(session, RESOURCE, request_id)
    await session.refresh(request)
    logger.info("signature_request.reminder_sent", signature_request_id=request_id)
    return request


async def process_expired_requests(session: AsyncSession, now: datetime | None = None) -> ExpirationSweepResult:
    """
    Expire every PENDING request whose expiration date has passed.

    Candidates are read first; each one is then expired by its own conditional
    UPDATE (matching id, PENDING status and the version that was read) and
    committed on its own. A row that changed in between no longer matches and
    is skipped. A database error on one row is recorded and the sweep moves on.
    The session must not carry uncommitted work when this is called.
    """
    now = now or _utcnow()
    candidates = (
        await session.execute(
            select(SignatureRequest.id, SignatureRequest.version, SignatureRequest.document_signature_id)
            .where(
                SignatureRequest.request_status == SignatureStatus.PENDING,
                SignatureRequest.expiration_date.is_not(None),
                SignatureRequest.expiration_date < now,
            )
            .order_by(SignatureRequest.expiration_date.asc())
        )
    ).all()
    await session.commit()

    outcome = ExpirationSweepResult()
    expired_ids: list[str] = []
    mirrored_ids: list[str] = []
    for request_id, read_version, document_signature_id in candidates:
        try:
            result = await session.execute(
                update(SignatureRequest)
                .where(
                    SignatureRequest.id == request_id,
                    SignatureRequest.request_status == SignatureStatus.PENDING,
                    SignatureRequest.version == read_version,
                )
                .values(request_status=SignatureStatus.EXPIRED, version=read_version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await session.rollback()
                outcome.skipped += 1
                logger.info("signature_sweep.skipped", signature_request_id=request_id)
                continue

            mirrored = await session.execute(
                update(DocumentSignature)
                .where(
                    DocumentSignature.id == document_signature_id,
                    DocumentSignature.signature_status == SignatureStatus.PENDING,
                )
                .values(signature_status=SignatureStatus.EXPIRED, version=DocumentSignature.version + 1)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            expired_ids.append(request_id)
            if mirrored.rowcount == 1:
                mirrored_ids.append(document_signature_id)
        except SQLAlchemyError as exc:
            await session.rollback()
            outcome.failures[request_id] = str(exc)
            logger.error("signature_sweep.row_failed", signature_request_id=request_id, error=str(exc))

    if expired_ids:
        result = await session.execute(
            select(SignatureRequest)
            .where(SignatureRequest.id.in_(expired_ids))
            .order_by(SignatureRequest.expiration_date.asc())
            .execution_options(populate_existing=True)
        )
        outcome.expired = list(result.scalars().all())
        if mirrored_ids:
            # signatures already loaded in this session still carry the pre-sweep status and version
            refreshed = await session.execute(
                select(DocumentSignature)
                .where(DocumentSignature.id.in_(mirrored_ids))
                .execution_options(populate_existing=True)
            )
            refreshed.scalars().all()
        await session.commit()

    logger.info(
        "signature_sweep.completed",
        candidates=len(candidates),
        expired=len(outcome.expired),
        skipped=outcome.skipped,
        failed=len(outcome.failures),
    )
    return outcome

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.integrations.esignature.base import SignatureProofInfo
from app.models.signature_proof import SignatureProof
from app.models.signature_request import SignatureRequest
from app.schemas.signature_proof import SignatureProofCreate, SignatureProofUpdate

logger = get_logger(__name__)

RESOURCE = "SignatureProof"


async def _load(session: AsyncSession, proof_id: str) -> SignatureProof:
    proof = await session.get(SignatureProof, proof_id)
    if proof is None:
        raise NotFoundError(RESOURCE, proof_id)
    return proof


async def _require_request(session: AsyncSession, request_id: str) -> None:
    if await session.get(SignatureRequest, request_id) is None:
        raise NotFoundError("SignatureRequest", request_id)


async def create_signature_proof(
    session: AsyncSession,
    data: SignatureProofCreate,
    actor: str | None = None,
) -> SignatureProof:
    await _require_request(session, data.signature_request_id)
    proof = SignatureProof(
        signature_request_id=data.signature_request_id,
        proof_url=data.proof_url,
        proof_type=data.proof_type,
        proof_date=data.proof_date,
        created_by=actor,
        updated_by=actor,
    )
    session.add(proof)
    await session.flush()
    await session.refresh(proof)
    logger.info("signature_proof.created", signature_proof_id=proof.id, signature_request_id=proof.signature_request_id)
    return proof


async def record_provider_proof(
    session: AsyncSession,
    request_id: str,
    info: SignatureProofInfo,
    actor: str | None = None,
) -> SignatureProof:
    """Persist a proof fetched from a provider against its request."""
    return await create_signature_proof(
        session,
        SignatureProofCreate(
            signature_request_id=request_id,
            proof_url=info.proof_url,
            proof_type=info.proof_type,
            proof_date=info.proof_date,
        ),
        actor,
    )


async def get_signature_proof(session: AsyncSession, proof_id: str) -> SignatureProof:
    return await _load(session, proof_id)


async def update_signature_proof(
    session: AsyncSession,
    proof_id: str,
    data: SignatureProofUpdate,
    actor: str | None = None,
) -> SignatureProof:
    proof = await _load(session, proof_id)
    if data.signature_request_id != proof.signature_request_id:
        await _require_request(session, data.signature_request_id)
    proof.signature_request_id = data.signature_request_id
    proof.proof_url = data.proof_url
    proof.proof_type = data.proof_type
    proof.proof_date = data.proof_date
    proof.updated_by = actor
    await session.flush()
    await session.refresh(proof)
    return proof


async def delete_signature_proof(session: AsyncSession, proof_id: str) -> None:
    proof = await _load(session, proof_id)
    await session.delete(proof)
    await session.flush()


async def list_by_signature_request(session: AsyncSession, request_id: str) -> Sequence[SignatureProof]:
    result = await session.execute(
        select(SignatureProof)
        .where(SignatureProof.signature_request_id == request_id)
        .order_by(SignatureProof.created_at.desc())
    )
    return result.scalars().all()

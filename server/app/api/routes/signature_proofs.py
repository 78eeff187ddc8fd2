from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_actor
from app.schemas.signature_proof import SignatureProofCreate, SignatureProofRead, SignatureProofUpdate
from app.services import signature_proof_service


router = APIRouter(prefix="/signature-proofs", tags=["signature-proofs"])


@router.post("", response_model=SignatureProofRead, status_code=status.HTTP_201_CREATED)
async def create_signature_proof_endpoint(
    payload: SignatureProofCreate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureProofRead:
    proof = await signature_proof_service.create_signature_proof(session, payload, actor)
    await session.commit()
    return SignatureProofRead.model_validate(proof)


@router.get("/by-request/{request_id}", response_model=list[SignatureProofRead])
async def list_by_signature_request_endpoint(
    request_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[SignatureProofRead]:
    items = await signature_proof_service.list_by_signature_request(session, request_id)
    return [SignatureProofRead.model_validate(item) for item in items]


@router.get("/{proof_id}", response_model=SignatureProofRead)
async def get_signature_proof_endpoint(
    proof_id: str,
    session: AsyncSession = Depends(get_db),
) -> SignatureProofRead:
    proof = await signature_proof_service.get_signature_proof(session, proof_id)
    return SignatureProofRead.model_validate(proof)


@router.put("/{proof_id}", response_model=SignatureProofRead)
async def update_signature_proof_endpoint(
    proof_id: str,
    payload: SignatureProofUpdate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureProofRead:
    proof = await signature_proof_service.update_signature_proof(session, proof_id, payload, actor)
    await session.commit()
    return SignatureProofRead.model_validate(proof)


@router.delete("/{proof_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_signature_proof_endpoint(
    proof_id: str,
    session: AsyncSession = Depends(get_db),
) -> Response:
    await signature_proof_service.delete_signature_proof(session, proof_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

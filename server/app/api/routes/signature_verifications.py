from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_actor, get_esignature_service
from app.models.signature_verification import VerificationStatus
from app.schemas.signature_verification import (
    SignatureVerificationCreate,
    SignatureVerificationRead,
    SignatureVerificationUpdate,
)
from app.services import signature_verification_service
from app.services.esignature_service import ESignatureService


router = APIRouter(prefix="/signature-verifications", tags=["signature-verifications"])


@router.post("", response_model=SignatureVerificationRead, status_code=status.HTTP_201_CREATED)
async def create_signature_verification_endpoint(
    payload: SignatureVerificationCreate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureVerificationRead:
    verification = await signature_verification_service.create_signature_verification(session, payload, actor)
    await session.commit()
    return SignatureVerificationRead.model_validate(verification)


@router.post("/verify/{document_signature_id}", response_model=SignatureVerificationRead)
async def verify_signature_endpoint(
    document_signature_id: str,
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
    actor: str | None = Depends(get_actor),
) -> SignatureVerificationRead:
    verification = await signature_verification_service.verify_signature(
        session, service, document_signature_id, actor
    )
    await session.commit()
    return SignatureVerificationRead.model_validate(verification)


@router.post("/verify-document/{document_id}", response_model=list[SignatureVerificationRead])
async def verify_all_signatures_for_document_endpoint(
    document_id: str,
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
    actor: str | None = Depends(get_actor),
) -> list[SignatureVerificationRead]:
    verifications = await signature_verification_service.verify_all_signatures_for_document(
        session, service, document_id, actor
    )
    await session.commit()
    return [SignatureVerificationRead.model_validate(item) for item in verifications]


@router.get("/by-document-signature/{document_signature_id}", response_model=list[SignatureVerificationRead])
async def list_by_document_signature_endpoint(
    document_signature_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[SignatureVerificationRead]:
    items = await signature_verification_service.list_by_document_signature(session, document_signature_id)
    return [SignatureVerificationRead.model_validate(item) for item in items]


@router.get("/by-document-signature/{document_signature_id}/latest", response_model=SignatureVerificationRead)
async def get_latest_verification_endpoint(
    document_signature_id: str,
    session: AsyncSession = Depends(get_db),
) -> SignatureVerificationRead:
    verification = await signature_verification_service.get_latest_verification(session, document_signature_id)
    return SignatureVerificationRead.model_validate(verification)


@router.get("/by-status/{verification_status}", response_model=list[SignatureVerificationRead])
async def list_by_verification_status_endpoint(
    verification_status: VerificationStatus,
    session: AsyncSession = Depends(get_db),
) -> list[SignatureVerificationRead]:
    items = await signature_verification_service.list_by_verification_status(session, verification_status)
    return [SignatureVerificationRead.model_validate(item) for item in items]


@router.get("/{verification_id}", response_model=SignatureVerificationRead)
async def get_signature_verification_endpoint(
    verification_id: str,
    session: AsyncSession = Depends(get_db),
) -> SignatureVerificationRead:
    verification = await signature_verification_service.get_signature_verification(session, verification_id)
    return SignatureVerificationRead.model_validate(verification)


@router.put("/{verification_id}", response_model=SignatureVerificationRead)
async def update_signature_verification_endpoint(
    verification_id: str,
    payload: SignatureVerificationUpdate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureVerificationRead:
    verification = await signature_verification_service.update_signature_verification(
        session, verification_id, payload, actor
    )
    await session.commit()
    return SignatureVerificationRead.model_validate(verification)


@router.delete("/{verification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_signature_verification_endpoint(
    verification_id: str,
    session: AsyncSession = Depends(get_db),
) -> Response:
    await signature_verification_service.delete_signature_verification(session, verification_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

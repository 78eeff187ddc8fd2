from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_actor
from app.models.document_signature import SignatureStatus
from app.schemas.document_signature import (
    DocumentSignatureCreate,
    DocumentSignatureRead,
    DocumentSignatureUpdate,
    DocumentSignedStatus,
    DocumentSigningSummary,
)
from app.services import document_signature_service


router = APIRouter(prefix="/document-signatures", tags=["document-signatures"])


@router.post("", response_model=DocumentSignatureRead, status_code=status.HTTP_201_CREATED)
async def create_document_signature_endpoint(
    payload: DocumentSignatureCreate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> DocumentSignatureRead:
    signature = await document_signature_service.create_document_signature(session, payload, actor)
    await session.commit()
    return DocumentSignatureRead.model_validate(signature)


@router.post("/initiate", response_model=DocumentSignatureRead, status_code=status.HTTP_201_CREATED)
async def initiate_signing_process_endpoint(
    payload: DocumentSignatureCreate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> DocumentSignatureRead:
    signature = await document_signature_service.initiate_signing_process(session, payload, actor)
    await session.commit()
    return DocumentSignatureRead.model_validate(signature)


@router.get("/documents/{document_id}/fully-signed", response_model=DocumentSignedStatus)
async def is_document_fully_signed_endpoint(
    document_id: str,
    session: AsyncSession = Depends(get_db),
) -> DocumentSignedStatus:
    fully_signed = await document_signature_service.is_document_fully_signed(session, document_id)
    return DocumentSignedStatus(document_id=document_id, fully_signed=fully_signed)


@router.get("/documents/{document_id}/summary", response_model=DocumentSigningSummary)
async def get_document_signing_summary_endpoint(
    document_id: str,
    session: AsyncSession = Depends(get_db),
) -> DocumentSigningSummary:
    return await document_signature_service.get_document_signing_summary(session, document_id)


@router.get("/by-document/{document_id}", response_model=list[DocumentSignatureRead])
async def list_by_document_endpoint(
    document_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[DocumentSignatureRead]:
    items = await document_signature_service.list_by_document(session, document_id)
    return [DocumentSignatureRead.model_validate(item) for item in items]


@router.get("/by-document-version/{document_version_id}", response_model=list[DocumentSignatureRead])
async def list_by_document_version_endpoint(
    document_version_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[DocumentSignatureRead]:
    items = await document_signature_service.list_by_document_version(session, document_version_id)
    return [DocumentSignatureRead.model_validate(item) for item in items]


@router.get("/by-signer/{signer_party_id}", response_model=list[DocumentSignatureRead])
async def list_by_signer_party_endpoint(
    signer_party_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[DocumentSignatureRead]:
    items = await document_signature_service.list_by_signer_party(session, signer_party_id)
    return [DocumentSignatureRead.model_validate(item) for item in items]


@router.get("/by-status/{signature_status}", response_model=list[DocumentSignatureRead])
async def list_by_signature_status_endpoint(
    signature_status: SignatureStatus,
    session: AsyncSession = Depends(get_db),
) -> list[DocumentSignatureRead]:
    items = await document_signature_service.list_by_signature_status(session, signature_status)
    return [DocumentSignatureRead.model_validate(item) for item in items]


@router.get("/{signature_id}", response_model=DocumentSignatureRead)
async def get_document_signature_endpoint(
    signature_id: str,
    session: AsyncSession = Depends(get_db),
) -> DocumentSignatureRead:
    signature = await document_signature_service.get_document_signature(session, signature_id)
    return DocumentSignatureRead.model_validate(signature)


@router.put("/{signature_id}", response_model=DocumentSignatureRead)
async def update_document_signature_endpoint(
    signature_id: str,
    payload: DocumentSignatureUpdate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> DocumentSignatureRead:
    signature = await document_signature_service.update_document_signature(session, signature_id, payload, actor)
    await session.commit()
    return DocumentSignatureRead.model_validate(signature)


@router.delete("/{signature_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document_signature_endpoint(
    signature_id: str,
    session: AsyncSession = Depends(get_db),
) -> Response:
    await document_signature_service.delete_document_signature(session, signature_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{signature_id}/cancel", response_model=DocumentSignatureRead)
async def cancel_document_signature_endpoint(
    signature_id: str,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> DocumentSignatureRead:
    signature = await document_signature_service.cancel_document_signature(session, signature_id, actor)
    await session.commit()
    return DocumentSignatureRead.model_validate(signature)

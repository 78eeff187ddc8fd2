from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_actor
from app.models.document_signature import SignatureStatus
from app.schemas.signature_request import (
    ExpirationSweepRead,
    SignatureRequestCollection,
    SignatureRequestCreate,
    SignatureRequestRead,
    SignatureRequestUpdate,
)
from app.services import signature_request_service
from app.services.signature_request_service import SignatureRequestFilters


router = APIRouter(prefix="/signature-requests", tags=["signature-requests"])


Pagination = Annotated[int, Query(ge=1)]


@router.get("", response_model=SignatureRequestCollection)
async def list_signature_requests_endpoint(
    page: Pagination = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    document_signature_id: str | None = None,
    request_status: SignatureStatus | None = None,
    tenant_id: str | None = None,
    session: AsyncSession = Depends(get_db),
) -> SignatureRequestCollection:
    filters = SignatureRequestFilters(
        document_signature_id=document_signature_id,
        request_status=request_status,
        tenant_id=tenant_id,
    )
    items, total = await signature_request_service.list_signature_requests(
        session, filters=filters, page=page, page_size=page_size
    )
    return SignatureRequestCollection(
        items=[SignatureRequestRead.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=SignatureRequestRead, status_code=status.HTTP_201_CREATED)
async def create_signature_request_endpoint(
    payload: SignatureRequestCreate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await signature_request_service.create_signature_request(session, payload, actor)
    await session.commit()
    return SignatureRequestRead.model_validate(request)


@router.post("/process-expired", response_model=ExpirationSweepRead)
async def process_expired_requests_endpoint(session: AsyncSession = Depends(get_db)) -> ExpirationSweepRead:
    result = await signature_request_service.process_expired_requests(session)
    return ExpirationSweepRead(
        expired=[SignatureRequestRead.model_validate(item) for item in result.expired],
        skipped=result.skipped,
        failures=result.failures,
    )


@router.get("/by-reference/{request_reference}", response_model=SignatureRequestRead)
async def get_by_request_reference_endpoint(
    request_reference: str,
    session: AsyncSession = Depends(get_db),
) -> SignatureRequestRead:
    request = await signature_request_service.get_by_request_reference(session, request_reference)
    return SignatureRequestRead.model_validate(request)


@router.get("/by-document-signature/{document_signature_id}", response_model=list[SignatureRequestRead])
async def list_by_document_signature_endpoint(
    document_signature_id: str,
    session: AsyncSession = Depends(get_db),
) -> list[SignatureRequestRead]:
    items = await signature_request_service.list_by_document_signature(session, document_signature_id)
    return [SignatureRequestRead.model_validate(item) for item in items]


@router.get("/by-status/{request_status}", response_model=list[SignatureRequestRead])
async def list_by_request_status_endpoint(
    request_status: SignatureStatus,
    session: AsyncSession = Depends(get_db),
) -> list[SignatureRequestRead]:
    items = await signature_request_service.list_by_request_status(session, request_status)
    return [SignatureRequestRead.model_validate(item) for item in items]


@router.get("/{request_id}", response_model=SignatureRequestRead)
async def get_signature_request_endpoint(
    request_id: str,
    session: AsyncSession = Depends(get_db),
) -> SignatureRequestRead:
    request = await signature_request_service.get_signature_request(session, request_id)
    return SignatureRequestRead.model_validate(request)


@router.put("/{request_id}", response_model=SignatureRequestRead)
async def update_signature_request_endpoint(
    request_id: str,
    payload: SignatureRequestUpdate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await signature_request_service.update_signature_request(session, request_id, payload, actor)
    await session.commit()
    return SignatureRequestRead.model_validate(request)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_signature_request_endpoint(
    request_id: str,
    session: AsyncSession = Depends(get_db),
) -> Response:
    await signature_request_service.delete_signature_request(session, request_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/cancel", response_model=SignatureRequestRead)
async def cancel_signature_request_endpoint(
    request_id: str,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await signature_request_service.cancel_signature_request(session, request_id, actor)
    await session.commit()
    return SignatureRequestRead.model_validate(request)


@router.post("/{request_id}/notify", response_model=SignatureRequestRead)
async def send_notification_endpoint(
    request_id: str,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await signature_request_service.send_notification(session, request_id, actor)
    await session.commit()
    return SignatureRequestRead.model_validate(request)


@router.post("/{request_id}/remind", response_model=SignatureRequestRead)
async def send_reminder_endpoint(
    request_id: str,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await signature_request_service.send_reminder(session, request_id, actor)
    await session.commit()
    return SignatureRequestRead.model_validate(request)

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_actor
from app.schemas.signature_provider import SignatureProviderCreate, SignatureProviderRead, SignatureProviderUpdate
from app.services import signature_provider_service


router = APIRouter(prefix="/signature-providers", tags=["signature-providers"])


@router.get("", response_model=list[SignatureProviderRead])
async def list_signature_providers_endpoint(
    tenant_id: str | None = None,
    active_only: bool = False,
    session: AsyncSession = Depends(get_db),
) -> list[SignatureProviderRead]:
    items = await signature_provider_service.list_signature_providers(
        session, tenant_id=tenant_id, active_only=active_only
    )
    return [SignatureProviderRead.model_validate(item) for item in items]


@router.post("", response_model=SignatureProviderRead, status_code=status.HTTP_201_CREATED)
async def create_signature_provider_endpoint(
    payload: SignatureProviderCreate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureProviderRead:
    provider = await signature_provider_service.create_signature_provider(session, payload, actor)
    await session.commit()
    return SignatureProviderRead.model_validate(provider)


@router.get("/default", response_model=SignatureProviderRead)
async def get_default_provider_endpoint(
    tenant_id: str | None = Query(default=None, max_length=64),
    session: AsyncSession = Depends(get_db),
) -> SignatureProviderRead:
    provider = await signature_provider_service.get_default_provider(session, tenant_id)
    return SignatureProviderRead.model_validate(provider)


@router.get("/{provider_id}", response_model=SignatureProviderRead)
async def get_signature_provider_endpoint(
    provider_id: str,
    session: AsyncSession = Depends(get_db),
) -> SignatureProviderRead:
    provider = await signature_provider_service.get_signature_provider(session, provider_id)
    return SignatureProviderRead.model_validate(provider)


@router.put("/{provider_id}", response_model=SignatureProviderRead)
async def update_signature_provider_endpoint(
    provider_id: str,
    payload: SignatureProviderUpdate,
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureProviderRead:
    provider = await signature_provider_service.update_signature_provider(session, provider_id, payload, actor)
    await session.commit()
    return SignatureProviderRead.model_validate(provider)


@router.delete("/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_signature_provider_endpoint(
    provider_id: str,
    session: AsyncSession = Depends(get_db),
) -> Response:
    await signature_provider_service.delete_signature_provider(session, provider_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{provider_id}/set-default", response_model=SignatureProviderRead)
async def set_default_provider_endpoint(
    provider_id: str,
    tenant_id: str | None = Query(default=None, max_length=64),
    session: AsyncSession = Depends(get_db),
    actor: str | None = Depends(get_actor),
) -> SignatureProviderRead:
    provider = await signature_provider_service.set_as_default(session, provider_id, tenant_id, actor)
    await session.commit()
    return SignatureProviderRead.model_validate(provider)

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NoDefaultProviderError, NotFoundError
from app.core.logging import get_logger
from app.db.concurrency import ensure_expected_version, flush_versioned
from app.models.signature_provider import SignatureProvider
from app.schemas.signature_provider import SignatureProviderCreate, SignatureProviderUpdate

logger = get_logger(__name__)

RESOURCE = "SignatureProvider"


def _tenant_clause(tenant_id: str | None):
    if tenant_id is None:
        return SignatureProvider.tenant_id.is_(None)
    return SignatureProvider.tenant_id == tenant_id


async def _load(session: AsyncSession, provider_id: str) -> SignatureProvider:
    provider = await session.get(SignatureProvider, provider_id)
    if provider is None:
        raise NotFoundError(RESOURCE, provider_id)
    return provider


async def create_signature_provider(
    session: AsyncSession,
    data: SignatureProviderCreate,
    actor: str | None = None,
) -> SignatureProvider:
    provider = SignatureProvider(
        name=data.name,
        description=data.description,
        provider_code=data.provider_code.lower(),
        is_active=data.is_active,
        is_default=False,
        tenant_id=data.tenant_id,
        created_by=actor,
        updated_by=actor,
    )
    session.add(provider)
    await session.flush()
    await session.refresh(provider)
    logger.info("signature_provider.created", signature_provider_id=provider.id, provider_code=provider.provider_code)
    return provider


async def get_signature_provider(session: AsyncSession, provider_id: str) -> SignatureProvider:
    return await _load(session, provider_id)


async def update_signature_provider(
    session: AsyncSession,
    provider_id: str,
    data: SignatureProviderUpdate,
    actor: str | None = None,
) -> SignatureProvider:
    """Replace the descriptive fields. The default flag only moves through set_as_default."""
    provider = await _load(session, provider_id)
    ensure_expected_version(provider.version, data.version, RESOURCE, provider_id)
    provider.name = data.name
    provider.description = data.description
    provider.provider_code = data.provider_code.lower()
    provider.is_active = data.is_active
    provider.tenant_id = data.tenant_id
    provider.updated_by = actor
    await flush_versioned(session, RESOURCE, provider_id)
    await session.refresh(provider)
    return provider


async def delete_signature_provider(session: AsyncSession, provider_id: str) -> None:
    provider = await _load(session, provider_id)
    await session.delete(provider)
    await session.flush()
    logger.info("signature_provider.deleted", signature_provider_id=provider_id)


async def list_signature_providers(
    session: AsyncSession,
    *,
    tenant_id: str | None = None,
    active_only: bool = False,
) -> Sequence[SignatureProvider]:
    query = select(SignatureProvider)
    if tenant_id is not None:
        query = query.where(SignatureProvider.tenant_id == tenant_id)
    if active_only:
        query = query.where(SignatureProvider.is_active.is_(True))
    result = await session.execute(query.order_by(SignatureProvider.name.asc()))
    return result.scalars().all()


async def find_default_provider(session: AsyncSession, tenant_id: str | None) -> SignatureProvider | None:
    result = await session.execute(
        select(SignatureProvider).where(
            _tenant_clause(tenant_id),
            SignatureProvider.is_default.is_(True),
            SignatureProvider.is_active.is_(True),
        )
    )
    return result.scalars().first()


async def get_default_provider(session: AsyncSession, tenant_id: str | None) -> SignatureProvider:
    provider = await find_default_provider(session, tenant_id)
    if provider is None:
        raise NoDefaultProviderError(tenant_id)
    return provider


async def set_as_default(
    session: AsyncSession,
    provider_id: str,
    tenant_id: str | None = None,
    actor: str | None = None,
) -> SignatureProvider:
    """
    Make ``provider_id`` the tenant's only default.

    The previous default is cleared and flushed before the new one is set so
    the partial unique index never sees two defaults. Both writes share the
    caller's transaction; a failure rolls both back.
    """
    provider = await _load(session, provider_id)
    if tenant_id is not None and provider.tenant_id != tenant_id:
        raise NotFoundError(RESOURCE, provider_id)

    result = await session.execute(
        select(SignatureProvider).where(
            _tenant_clause(provider.tenant_id),
            SignatureProvider.is_default.is_(True),
            SignatureProvider.id != provider_id,
        )
    )
    for previous in result.scalars().all():
        previous.is_default = False
        previous.updated_by = actor
    await flush_versioned(session, RESOURCE, provider_id)
    await session.refresh(provider)

    if not provider.is_default:
        provider.is_default = True
        provider.updated_by = actor
        await flush_versioned(session, RESOURCE, provider_id)
        await session.refresh(provider)

    logger.info(
        "signature_provider.default_changed",
        signature_provider_id=provider_id,
        tenant_id=provider.tenant_id,
        provider_code=provider.provider_code,
    )
    return provider

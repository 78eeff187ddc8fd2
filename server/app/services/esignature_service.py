from __future__ import annotations

from typing import Awaitable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ExternalProviderError, NotFoundError, SignatureWorkflowError
from app.core.logging import get_logger
from app.integrations.esignature.base import (
    ESignatureProvider,
    ESignatureProviderRegistry,
    SignatureProofInfo,
    SignatureRequestInfo,
    SignatureRequestResult,
)
from app.models.document_signature import DocumentSignature, SignatureStatus
from app.models.signature_request import SignatureRequest
from app.schemas.signature_request import SignatureRequestCreate
from app.services import signature_request_service
from app.services.signature_provider_service import find_default_provider
from app.services.state_machine import ensure_transition

logger = get_logger(__name__)

T = TypeVar("T")


class ESignatureService:
    """
    Coordinates the local request store with the external provider.

    Local state is committed before any remote call, so a request whose
    dispatch fails is still on record as PENDING. Provider failures propagate
    to the caller; nothing here retries or falls back to another provider.
    """

    def __init__(self, registry: ESignatureProviderRegistry):
        self.registry = registry

    async def resolve_provider(
        self,
        session: Optional[AsyncSession],
        *,
        provider_name: Optional[str] = None,
        request: Optional[SignatureRequest] = None,
        tenant_id: Optional[str] = None,
    ) -> ESignatureProvider:
        """Explicit name, then the provider that dispatched the request, then the tenant default, then the system default."""
        if provider_name:
            return self.registry.get_provider(provider_name)
        if request is not None and request.provider_name:
            return self.registry.get_provider(request.provider_name)
        if session is not None:
            record = await find_default_provider(session, tenant_id)
            if record is not None:
                return self.registry.get_provider(record.provider_code)
        return self.registry.get_default_provider()

    async def _invoke(self, provider: ESignatureProvider, operation: str, call: Awaitable[T], **context) -> T:
        try:
            return await call
        except SignatureWorkflowError as exc:
            logger.warning(f"esignature.{operation}.failed", provider=provider.name, error=exc.message, **context)
            raise
        except Exception as exc:
            logger.error(f"esignature.{operation}.failed", provider=provider.name, error=str(exc), **context)
            raise ExternalProviderError(
                f"{provider.name} {operation} failed: {exc}",
                provider=provider.name,
                error_code="provider_error",
            ) from exc

    async def initiate_signature(
        self,
        session: AsyncSession,
        payload: SignatureRequestCreate,
        provider_name: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> SignatureRequest:
        request = await signature_request_service.create_signature_request(session, payload, actor)
        await session.commit()

        signature = await session.get(DocumentSignature, request.document_signature_id)
        if signature is None:  # pragma: no cover - deleted between commit and dispatch
            raise NotFoundError("DocumentSignature", request.document_signature_id)

        provider = await self.resolve_provider(session, provider_name=provider_name, tenant_id=request.tenant_id)
        info = SignatureRequestInfo(
            signature_request_id=request.id,
            document_signature_id=signature.id,
            request_reference=request.request_reference,
            document_id=signature.document_id,
            document_version_id=signature.document_version_id,
            signer_party_id=signature.signer_party_id,
            signer_name=signature.signer_name,
            signer_email=signature.signer_email,
            request_message=request.request_message,
            expiration_date=request.expiration_date,
            tenant_id=request.tenant_id,
        )
        result = await self._invoke(
            provider,
            "initiate",
            provider.initiate_signature_request(info),
            signature_request_id=request.id,
        )

        request = await self._persist(session, request.id, result, provider.name, actor)
        logger.info(
            "esignature.initiated",
            signature_request_id=request.id,
            provider=provider.name,
            external_signature_id=request.external_signature_id,
        )
        return request

    async def get_signature_status(
        self,
        session: AsyncSession,
        request_id: str,
        provider_name: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> SignatureRequest:
        request = await signature_request_service.get_signature_request(session, request_id)
        provider = await self.resolve_provider(
            session, provider_name=provider_name, request=request, tenant_id=request.tenant_id
        )
        result = await self._invoke(
            provider,
            "status",
            provider.get_signature_request_status(request.id, request.external_signature_id),
            signature_request_id=request.id,
        )
        recorded = None if request.provider_name else provider.name
        return await self._persist(session, request.id, result, recorded, actor)

    async def cancel_signature(
        self,
        session: AsyncSession,
        request_id: str,
        provider_name: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> SignatureRequest:
        """
        Cancel remotely, then locally.

        The lifecycle guard is checked before the provider is contacted, so a
        terminal request is rejected without any remote side effect. A provider
        failure leaves the local request untouched.
        """
        request = await signature_request_service.get_signature_request(session, request_id)
        ensure_transition(request.request_status, SignatureStatus.CANCELED)

        provider = await self.resolve_provider(
            session, provider_name=provider_name, request=request, tenant_id=request.tenant_id
        )
        await self._invoke(
            provider,
            "cancel",
            provider.cancel_signature_request(request.id, request.external_signature_id),
            signature_request_id=request.id,
        )

        try:
            request = await signature_request_service.cancel_signature_request(session, request_id, actor)
            await session.commit()
        except SignatureWorkflowError:
            await session.rollback()
            logger.error("esignature.cancel.local_failed", signature_request_id=request_id, provider=provider.name)
            raise
        logger.info("esignature.canceled", signature_request_id=request_id, provider=provider.name)
        return request

    async def get_signature_proof(
        self,
        session: AsyncSession,
        request_id: str,
        provider_name: Optional[str] = None,
    ) -> SignatureProofInfo:
        request = await signature_request_service.get_signature_request(session, request_id)
        provider = await self.resolve_provider(
            session, provider_name=provider_name, request=request, tenant_id=request.tenant_id
        )
        return await self._invoke(
            provider,
            "proof",
            provider.get_signature_proof(request.id, request.external_signature_id),
            signature_request_id=request.id,
        )

    async def validate_signature_proof(
        self,
        proof: SignatureProofInfo,
        provider_name: Optional[str] = None,
        tenant_id: Optional[str] = None,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        provider = await self.resolve_provider(session, provider_name=provider_name, tenant_id=tenant_id)
        return await self._invoke(provider, "validate_proof", provider.validate_signature_proof(proof))

    async def _persist(
        self,
        session: AsyncSession,
        request_id: str,
        result: SignatureRequestResult,
        provider_name: Optional[str],
        actor: Optional[str],
    ) -> SignatureRequest:
        try:
            request = await signature_request_service.apply_provider_result(
                session, request_id, result, provider_name=provider_name, actor=actor
            )
            await session.commit()
        except SignatureWorkflowError:
            await session.rollback()
            raise
        return request

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.database import get_db
from app.api.dependencies.esignature import get_actor, get_esignature_service, get_provider_registry
from app.integrations.esignature import ESignatureProviderRegistry, SignatureProofInfo
from app.schemas.esignature import ProofValidationRequest, ProofValidationResult
from app.schemas.signature_proof import SignatureProofPayload
from app.schemas.signature_provider import RegisteredProviders
from app.schemas.signature_request import SignatureRequestCreate, SignatureRequestRead
from app.services import signature_proof_service
from app.services.esignature_service import ESignatureService


router = APIRouter(prefix="/e-signatures", tags=["e-signatures"])

ProviderName = Query(default=None, max_length=64, description="Registered provider to use instead of the default")


@router.post("", response_model=SignatureRequestRead, status_code=status.HTTP_201_CREATED)
async def initiate_signature_endpoint(
    payload: SignatureRequestCreate,
    provider_name: str | None = ProviderName,
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await service.initiate_signature(session, payload, provider_name=provider_name, actor=actor)
    return SignatureRequestRead.model_validate(request)


@router.get("/{request_id}/status", response_model=SignatureRequestRead)
async def get_signature_status_endpoint(
    request_id: str,
    provider_name: str | None = ProviderName,
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await service.get_signature_status(session, request_id, provider_name=provider_name, actor=actor)
    return SignatureRequestRead.model_validate(request)


@router.post("/{request_id}/cancel", response_model=SignatureRequestRead)
async def cancel_signature_endpoint(
    request_id: str,
    provider_name: str | None = ProviderName,
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
    actor: str | None = Depends(get_actor),
) -> SignatureRequestRead:
    request = await service.cancel_signature(session, request_id, provider_name=provider_name, actor=actor)
    return SignatureRequestRead.model_validate(request)


@router.get("/{request_id}/proof", response_model=SignatureProofPayload)
async def get_signature_proof_endpoint(
    request_id: str,
    provider_name: str | None = ProviderName,
    persist: bool = Query(default=False, description="Store the proof as a signature proof record"),
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
    actor: str | None = Depends(get_actor),
) -> SignatureProofPayload:
    proof = await service.get_signature_proof(session, request_id, provider_name=provider_name)
    if persist:
        await signature_proof_service.record_provider_proof(session, request_id, proof, actor)
        await session.commit()
    return SignatureProofPayload(
        signature_request_id=request_id,
        proof_url=proof.proof_url,
        proof_type=proof.proof_type,
        proof_date=proof.proof_date,
        external_signature_id=proof.external_signature_id,
    )


@router.post("/validate-proof", response_model=ProofValidationResult)
async def validate_signature_proof_endpoint(
    payload: ProofValidationRequest,
    provider_name: str | None = ProviderName,
    session: AsyncSession = Depends(get_db),
    service: ESignatureService = Depends(get_esignature_service),
) -> ProofValidationResult:
    provider = await service.resolve_provider(session, provider_name=provider_name, tenant_id=payload.tenant_id)
    proof = SignatureProofInfo(
        proof_url=payload.proof.proof_url,
        signature_request_id=payload.proof.signature_request_id,
        external_signature_id=payload.proof.external_signature_id,
        proof_type=payload.proof.proof_type,
        proof_date=payload.proof.proof_date,
    )
    valid = await service.validate_signature_proof(proof, provider_name=provider.name)
    return ProofValidationResult(valid=valid, provider=provider.name)


@router.get("/providers", response_model=RegisteredProviders)
async def list_registered_providers_endpoint(
    registry: ESignatureProviderRegistry = Depends(get_provider_registry),
) -> RegisteredProviders:
    return RegisteredProviders(providers=registry.provider_names(), default_provider=registry.default_provider_name)


@router.put("/providers/default/{provider_name}", response_model=RegisteredProviders)
async def set_system_default_provider_endpoint(
    provider_name: str,
    registry: ESignatureProviderRegistry = Depends(get_provider_registry),
) -> RegisteredProviders:
    registry.set_default_provider(provider_name)
    return RegisteredProviders(providers=registry.provider_names(), default_provider=registry.default_provider_name)

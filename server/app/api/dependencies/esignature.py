from fastapi import Header, Request

from app.integrations.esignature import ESignatureProviderRegistry
from app.services.esignature_service import ESignatureService


def get_provider_registry(request: Request) -> ESignatureProviderRegistry:
    return request.app.state.provider_registry


def get_esignature_service(request: Request) -> ESignatureService:
    return ESignatureService(request.app.state.provider_registry)


def get_actor(x_user_id: str | None = Header(default=None, max_length=120)) -> str | None:
    """Caller identity recorded in the audit columns."""
    return x_user_id

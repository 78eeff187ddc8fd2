"""
E-signature integration modules

Provides adapters for e-signature platforms behind one provider interface,
and builds the provider registry from configuration.
"""

from typing import Optional

from app.core.config import Settings, get_settings
from app.core.logging import get_logger

from .base import (
    ESignatureFactory,
    ESignatureProvider,
    ESignatureProviderRegistry,
    ESignatureType,
    SignatureProofInfo,
    SignatureRequestInfo,
    SignatureRequestResult,
)
from .docusign_adapter import DocuSignAdapter
from .logalty_adapter import LogaltyAdapter

logger = get_logger(__name__)

ESignatureFactory.register_provider(ESignatureType.DOCUSIGN, DocuSignAdapter)
ESignatureFactory.register_provider(ESignatureType.LOGALTY, LogaltyAdapter)


def build_provider_registry(settings: Optional[Settings] = None) -> ESignatureProviderRegistry:
    """Register every adapter whose settings are complete and apply the configured default."""
    settings = settings or get_settings()
    registry = ESignatureProviderRegistry()

    if settings.docusign_configured:
        registry.register(
            ESignatureFactory.create_provider(
                ESignatureType.DOCUSIGN,
                base_url=settings.docusign_base_url,
                account_id=settings.docusign_account_id,
                access_token=settings.docusign_access_token,
                template_id=settings.docusign_template_id,
                user_id=settings.docusign_user_id,
                role_name=settings.docusign_role_name,
                timeout_seconds=settings.provider_timeout_seconds,
            )
        )
    if settings.logalty_configured:
        registry.register(
            ESignatureFactory.create_provider(
                ESignatureType.LOGALTY,
                api_url=settings.logalty_api_url,
                api_key=settings.logalty_api_key,
                api_secret=settings.logalty_api_secret,
                timeout_seconds=settings.provider_timeout_seconds,
            )
        )

    if settings.esignature_default_provider:
        if registry.has_provider(settings.esignature_default_provider):
            registry.set_default_provider(settings.esignature_default_provider)
        else:
            logger.warning(
                "esignature.default_provider.unregistered",
                provider=settings.esignature_default_provider,
                registered=registry.provider_names(),
            )

    logger.info(
        "esignature.registry.built",
        providers=registry.provider_names(),
        default=registry.default_provider_name,
    )
    return registry


__all__ = [
    "DocuSignAdapter",
    "ESignatureFactory",
    "ESignatureProvider",
    "ESignatureProviderRegistry",
    "ESignatureType",
    "LogaltyAdapter",
    "SignatureProofInfo",
    "SignatureRequestInfo",
    "SignatureRequestResult",
    "build_provider_registry",
]

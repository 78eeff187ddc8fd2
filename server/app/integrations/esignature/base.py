"""
E-signature Base Classes and Interfaces

Defines the contract every pluggable signature backend implements, the
provider registry the orchestrator resolves providers from, and the factory
used to build adapters from configuration.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.errors import NoDefaultProviderError, ProviderNotFoundError
from app.core.logging import get_logger
from app.models.document_signature import SignatureStatus

logger = get_logger(__name__)


class ESignatureType(str, Enum):
    """Supported e-signature provider types."""
    DOCUSIGN = "docusign"
    LOGALTY = "logalty"


@dataclass
class SignatureRequestInfo:
    """Snapshot of a stored request handed to a provider for dispatch."""
    signature_request_id: str
    document_signature_id: str
    request_reference: str
    document_id: str
    signer_party_id: str
    signer_name: Optional[str] = None
    signer_email: Optional[str] = None
    document_version_id: Optional[str] = None
    request_message: Optional[str] = None
    expiration_date: Optional[datetime] = None
    tenant_id: Optional[str] = None
    external_signature_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SignatureRequestResult:
    """Provider view of a request: correlation id and, when known, its status."""
    signature_request_id: str
    external_signature_id: Optional[str] = None
    status: Optional[SignatureStatus] = None
    message: Optional[str] = None
    completed_at: Optional[datetime] = None
    provider_response: Optional[Dict[str, Any]] = None


@dataclass
class SignatureProofInfo:
    """Evidence artifact for a completed signature."""
    proof_url: str
    signature_request_id: Optional[str] = None
    external_signature_id: Optional[str] = None
    proof_type: Optional[str] = None
    proof_date: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class ESignatureProvider(ABC):
    """Abstract base class for e-signature providers."""

    def __init__(self, **config):
        """Initialize the e-signature provider with configuration."""
        self.config = config
        self.provider_type = self._get_provider_type()

    @property
    def name(self) -> str:
        """Registry key of this provider."""
        return self.provider_type.value

    @abstractmethod
    def _get_provider_type(self) -> ESignatureType:
        """Return the provider type identifier."""

    @abstractmethod
    async def initiate_signature_request(self, request: SignatureRequestInfo) -> SignatureRequestResult:
        """
        Dispatch a stored request to the provider.

        Args:
            request: Snapshot of the locally persisted request

        Returns:
            SignatureRequestResult carrying the provider correlation id

        Raises:
            ExternalProviderError: If the provider rejects or cannot be reached
        """

    @abstractmethod
    async def get_signature_request_status(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> SignatureRequestResult:
        """
        Refresh the status of a dispatched request.

        Raises:
            ExternalProviderError: If the status query fails
        """

    @abstractmethod
    async def cancel_signature_request(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> None:
        """
        Cancel a dispatched request on the provider side.

        Raises:
            ExternalProviderError: If the cancellation fails; never absorbed
        """

    @abstractmethod
    async def get_signature_proof(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> SignatureProofInfo:
        """
        Retrieve the proof of a completed signature.

        Raises:
            ExternalProviderError: If proof retrieval fails
        """

    @abstractmethod
    async def validate_signature_proof(self, proof: SignatureProofInfo) -> bool:
        """
        Check whether a proof is genuine according to the provider.

        Raises:
            ExternalProviderError: If the validation call fails
        """

    async def health_check(self) -> bool:
        """Check if the provider is reachable. Adapters override this."""
        return True

    async def close(self) -> None:
        """Release any network resources held by the adapter."""


class ESignatureProviderRegistry:
    """
    Holds the live provider implementations keyed by case-insensitive name.

    Providers are registered once at startup; afterwards the registry is only
    read, so lookups take no lock. Replacing the default is a single attribute
    assignment and is never observable half-applied.
    """

    def __init__(
        self,
        providers: Optional[List[ESignatureProvider]] = None,
        default_provider: Optional[str] = None,
    ):
        self._providers: Dict[str, ESignatureProvider] = {}
        self._default_name: Optional[str] = None
        self._write_lock = threading.Lock()
        for provider in providers or []:
            self.register(provider)
        if default_provider:
            self._default_name = default_provider.strip().lower()

    def register(self, provider: ESignatureProvider, *, name: Optional[str] = None) -> None:
        key = (name or provider.name).lower()
        with self._write_lock:
            providers = dict(self._providers)
            providers[key] = provider
            self._providers = providers
        logger.info("esignature.provider.registered", provider=key)

    def get_provider(self, provider_name: str) -> ESignatureProvider:
        provider = self._providers.get((provider_name or "").lower())
        if provider is None:
            raise ProviderNotFoundError(provider_name)
        return provider

    def get_default_provider(self) -> ESignatureProvider:
        default_name = self._default_name
        if default_name is None:
            raise NoDefaultProviderError()
        provider = self._providers.get(default_name)
        if provider is None:
            raise NoDefaultProviderError()
        return provider

    def set_default_provider(self, provider_name: str) -> None:
        key = provider_name.lower()
        if key not in self._providers:
            raise ProviderNotFoundError(provider_name)
        self._default_name = key
        logger.info("esignature.provider.default_changed", provider=key)

    @property
    def default_provider_name(self) -> Optional[str]:
        return self._default_name

    def has_provider(self, provider_name: str) -> bool:
        return (provider_name or "").lower() in self._providers

    def provider_names(self) -> List[str]:
        return sorted(self._providers)

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()


class ESignatureFactory:
    """Factory for creating e-signature provider instances."""

    _providers: Dict[ESignatureType, type] = {}

    @classmethod
    def register_provider(
        cls,
        provider_type: ESignatureType,
        provider_class: type[ESignatureProvider]
    ):
        """Register an e-signature provider implementation."""
        cls._providers[provider_type] = provider_class

    @classmethod
    def create_provider(
        cls,
        provider_type: ESignatureType,
        **config
    ) -> ESignatureProvider:
        """Create an e-signature provider instance."""
        if provider_type not in cls._providers:
            raise ProviderNotFoundError(getattr(provider_type, "value", str(provider_type)))

        provider_class = cls._providers[provider_type]
        return provider_class(**config)

    @classmethod
    def get_supported_providers(cls) -> List[ESignatureType]:
        """Get list of registered provider types."""
        return list(cls._providers.keys())

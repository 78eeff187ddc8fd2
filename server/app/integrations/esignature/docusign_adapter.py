"""
DocuSign E-signature Adapter

Dispatches signature requests to DocuSign as template-based envelopes, one
envelope per signer, and maps envelope state back onto SignatureStatus.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

from app.core.errors import ExternalProviderError
from app.core.logging import get_logger
from app.models.document_signature import SignatureStatus

from .base import (
    ESignatureProvider,
    ESignatureType,
    SignatureProofInfo,
    SignatureRequestInfo,
    SignatureRequestResult,
)

logger = get_logger(__name__)

COMBINED_DOCUMENT_ID = "combined"
CERTIFICATE_PROOF_TYPE = "docusign_combined_certificate"


class DocuSignAdapter(ESignatureProvider):
    """DocuSign e-signature adapter."""

    def __init__(
        self,
        base_url: str,
        account_id: str,
        access_token: str,
        template_id: str,
        user_id: Optional[str] = None,
        role_name: str = "Signer",
        timeout_seconds: int = 30,
        **config
    ):
        """
        Initialize DocuSign adapter.

        Args:
            base_url: DocuSign base URL (demo or production)
            account_id: DocuSign account ID
            access_token: OAuth 2.0 access token
            template_id: Template the signer envelope is built from
            user_id: DocuSign user ID, used by the health check
            role_name: Template role the signer is bound to
            timeout_seconds: Total HTTP timeout per call
            **config: Additional configuration
        """
        super().__init__(
            base_url=base_url,
            account_id=account_id,
            access_token=access_token,
            template_id=template_id,
            user_id=user_id,
            role_name=role_name,
            **config
        )
        self.base_url = base_url.rstrip('/')
        self.account_id = account_id
        self.access_token = access_token
        self.template_id = template_id
        self.user_id = user_id
        self.role_name = role_name

        self.api_base = f"{self.base_url}/restapi/v2.1"
        self.envelopes_endpoint = f"{self.api_base}/accounts/{self.account_id}/envelopes"

        # Session will be created lazily to avoid event loop issues during initialization
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = ClientTimeout(total=timeout_seconds, connect=min(10, timeout_seconds))

    def _get_provider_type(self) -> ESignatureType:
        return ESignatureType.DOCUSIGN

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Content-Type": "application/json",
                    "Accept": "application/json"
                }
            )
        return self._session

    async def initiate_signature_request(self, request: SignatureRequestInfo) -> SignatureRequestResult:
        """
        Create and send an envelope for the request's signer.

        The request reference travels as a custom field so the envelope can be
        traced back from the DocuSign console.
        """
        if not request.signer_email:
            raise ExternalProviderError(
                "DocuSign requires a signer email",
                provider=self.name,
                error_code="missing_signer_email",
            )

        payload = self._build_template_envelope_payload(request)
        try:
            async with self.session.post(self.envelopes_endpoint, json=payload) as response:
                await self._handle_api_error(response, "create_envelope")
                response_data = await response.json()
        except aiohttp.ClientError as e:
            logger.error("docusign.create_envelope.failed", error=str(e), request_reference=request.request_reference)
            raise ExternalProviderError(
                f"Failed to create envelope: {e}",
                provider=self.name,
                error_code="api_error",
            ) from e

        envelope_id = response_data.get("envelopeId")
        if not envelope_id:
            raise ExternalProviderError(
                "DocuSign did not return an envelope id",
                provider=self.name,
                error_code="missing_envelope_id",
                provider_response=response_data,
            )

        logger.info(
            "docusign.envelope.created",
            envelope_id=envelope_id,
            request_reference=request.request_reference,
        )
        return SignatureRequestResult(
            signature_request_id=request.signature_request_id,
            external_signature_id=envelope_id,
            status=self._map_status_from_docusign(response_data.get("status", "sent")),
            message=response_data.get("statusDateTime"),
            provider_response=response_data,
        )

    async def get_signature_request_status(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> SignatureRequestResult:
        envelope = await self._get_envelope(self._require_envelope_id(external_signature_id))
        return SignatureRequestResult(
            signature_request_id=signature_request_id,
            external_signature_id=external_signature_id,
            status=self._map_status_from_docusign(envelope.get("status", "sent")),
            message=envelope.get("voidedReason") or envelope.get("declinedReason"),
            completed_at=self._parse_datetime(envelope.get("completedDateTime")),
            provider_response=envelope,
        )

    async def cancel_signature_request(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> None:
        """Void the envelope. DocuSign has no softer cancel for sent envelopes."""
        envelope_id = self._require_envelope_id(external_signature_id)
        payload = {
            "status": "voided",
            "voidedReason": f"Signature request {signature_request_id} canceled",
        }
        try:
            async with self.session.put(f"{self.envelopes_endpoint}/{envelope_id}", json=payload) as response:
                await self._handle_api_error(response, "void_envelope")
        except aiohttp.ClientError as e:
            logger.error("docusign.void_envelope.failed", error=str(e), envelope_id=envelope_id)
            raise ExternalProviderError(
                f"Failed to void envelope: {e}",
                provider=self.name,
                error_code="api_error",
            ) from e
        logger.info("docusign.envelope.voided", envelope_id=envelope_id)

    async def get_signature_proof(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> SignatureProofInfo:
        envelope_id = self._require_envelope_id(external_signature_id)
        envelope = await self._get_envelope(envelope_id)
        if self._map_status_from_docusign(envelope.get("status", "")) != SignatureStatus.SIGNED:
            raise ExternalProviderError(
                f"Envelope {envelope_id} is not completed",
                provider=self.name,
                error_code="envelope_not_completed",
                provider_response=envelope,
            )
        return SignatureProofInfo(
            proof_url=f"{self.envelopes_endpoint}/{envelope_id}/documents/{COMBINED_DOCUMENT_ID}?certificate=true",
            signature_request_id=signature_request_id,
            external_signature_id=envelope_id,
            proof_type=CERTIFICATE_PROOF_TYPE,
            proof_date=self._parse_datetime(envelope.get("completedDateTime")) or datetime.now(timezone.utc),
            metadata={"envelope_status": envelope.get("status")},
        )

    async def validate_signature_proof(self, proof: SignatureProofInfo) -> bool:
        """A proof is valid when it points at an envelope DocuSign reports as completed."""
        envelope_id = proof.external_signature_id or self._envelope_id_from_url(proof.proof_url)
        if not envelope_id:
            return False
        envelope = await self._get_envelope(envelope_id)
        return envelope.get("status", "").lower() == "completed"

    async def health_check(self) -> bool:
        """Check if DocuSign API is healthy."""
        try:
            if self.user_id:
                endpoint = f"{self.api_base}/accounts/{self.account_id}/users/{self.user_id}"
            else:
                endpoint = f"{self.api_base}/accounts/{self.account_id}"

            async with self.session.get(endpoint) as response:
                return response.status == 200

        except aiohttp.ClientError as e:
            logger.error("docusign.health_check.failed", error=str(e))
            return False

    async def _get_envelope(self, envelope_id: str) -> Dict[str, Any]:
        try:
            async with self.session.get(f"{self.envelopes_endpoint}/{envelope_id}") as response:
                await self._handle_api_error(response, "get_envelope")
                return await response.json()
        except aiohttp.ClientError as e:
            logger.error("docusign.get_envelope.failed", error=str(e), envelope_id=envelope_id)
            raise ExternalProviderError(
                f"Failed to get envelope status: {e}",
                provider=self.name,
                error_code="api_error",
            ) from e

    def _require_envelope_id(self, external_signature_id: Optional[str]) -> str:
        if not external_signature_id:
            raise ExternalProviderError(
                "Signature request has not been dispatched to DocuSign",
                provider=self.name,
                error_code="missing_envelope_id",
            )
        return external_signature_id

    def _envelope_id_from_url(self, proof_url: str) -> Optional[str]:
        marker = "/envelopes/"
        if marker not in proof_url:
            return None
        return proof_url.split(marker, 1)[1].split("/", 1)[0] or None

    def _build_template_envelope_payload(self, request: SignatureRequestInfo) -> Dict[str, Any]:
        """Build envelope payload for template-based envelopes."""
        role = {
            "email": request.signer_email,
            "name": request.signer_name or request.signer_email,
            "roleName": self.role_name,
        }
        payload: Dict[str, Any] = {
            "templateId": self.template_id,
            "templateRoles": [role],
            "status": "sent",
            "emailSubject": f"Signature requested: {request.request_reference}",
            "customFields": {
                "textCustomFields": [
                    {"name": "request_reference", "value": request.request_reference, "show": "false"},
                    {"name": "document_id", "value": request.document_id, "show": "false"},
                ]
            },
        }
        if request.request_message:
            payload["emailBlurb"] = request.request_message
        return payload

    def _map_status_from_docusign(self, docusign_status: str) -> SignatureStatus:
        """Map DocuSign envelope status onto SignatureStatus."""
        status_mapping = {
            "completed": SignatureStatus.SIGNED,
            "signed": SignatureStatus.SIGNED,
            "declined": SignatureStatus.CANCELED,
            "voided": SignatureStatus.CANCELED,
            "deleted": SignatureStatus.CANCELED,
            "timed_out": SignatureStatus.EXPIRED,
            "expired": SignatureStatus.EXPIRED,
        }
        return status_mapping.get((docusign_status or "").lower(), SignatureStatus.PENDING)

    def _parse_datetime(self, datetime_str: Optional[str]) -> Optional[datetime]:
        """Parse DocuSign datetime string."""
        if not datetime_str:
            return None

        try:
            # DocuSign format: 2023-01-01T12:00:00.0000000Z
            value = datetime_str.replace('Z', '+00:00')
            if "." in value:
                head, tail = value.split(".", 1)
                fraction, _, offset = tail.partition("+")
                value = f"{head}.{fraction[:6]}" + (f"+{offset}" if offset else "")
            return datetime.fromisoformat(value)
        except (ValueError, AttributeError):
            return None

    async def _handle_api_error(self, response: aiohttp.ClientResponse, operation: str):
        """Translate a non-success DocuSign response into ExternalProviderError."""
        if response.status in [200, 201, 204]:
            return

        error_message = f"DocuSign API error in {operation}"
        error_code = "api_error"
        error_data: Optional[Dict[str, Any]] = None

        try:
            error_data = await response.json()
            error_message = error_data.get("message", error_message)
            error_code = error_data.get("errorCode", error_code)
        except (aiohttp.ContentTypeError, json.JSONDecodeError):
            error_message = await response.text() or error_message

        logger.warning(
            "docusign.api_error",
            operation=operation,
            status=response.status,
            error_code=error_code,
        )

        if response.status == 401:
            error_message, error_code = "Authentication failed - check access token", "AUTH_ERROR"
        elif response.status == 403:
            error_message, error_code = "Insufficient permissions", "PERMISSION_ERROR"
        elif response.status == 404:
            error_message, error_code = "Resource not found", "NOT_FOUND"
        elif response.status == 429:
            retry_after = response.headers.get('Retry-After', '60')
            error_message, error_code = f"Rate limit exceeded, retry after {retry_after}s", "RATE_LIMIT"
        elif response.status >= 500:
            error_message, error_code = "DocuSign server error", "SERVER_ERROR"

        raise ExternalProviderError(
            error_message,
            provider=self.name,
            error_code=error_code,
            provider_response=error_data,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

"""
Logalty E-signature Adapter

REST client for the Logalty signature service. Authenticates every call with
the X-API-Key / X-API-Secret header pair.
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


class LogaltyAdapter(ESignatureProvider):
    """Logalty e-signature adapter."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        api_secret: str,
        timeout_seconds: int = 30,
        **config
    ):
        super().__init__(api_url=api_url, api_key=api_key, **config)
        self.api_url = api_url.rstrip('/')
        self.api_key = api_key
        self.api_secret = api_secret
        self.requests_endpoint = f"{self.api_url}/signature-requests"

        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = ClientTimeout(total=timeout_seconds)

    def _get_provider_type(self) -> ESignatureType:
        return ESignatureType.LOGALTY

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "X-API-Key": self.api_key,
                    "X-API-Secret": self.api_secret,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._session

    async def initiate_signature_request(self, request: SignatureRequestInfo) -> SignatureRequestResult:
        payload = {
            "reference": request.request_reference,
            "documentId": request.document_id,
            "documentVersionId": request.document_version_id,
            "signer": {
                "partyId": request.signer_party_id,
                "name": request.signer_name,
                "email": request.signer_email,
            },
            "message": request.request_message,
            "expiresAt": request.expiration_date.isoformat() if request.expiration_date else None,
        }
        data = await self._request("POST", self.requests_endpoint, "initiate", payload=payload)

        external_id = data.get("id")
        if not external_id:
            raise ExternalProviderError(
                "Logalty did not return a request id",
                provider=self.name,
                error_code="missing_external_id",
                provider_response=data,
            )
        logger.info("logalty.request.created", external_signature_id=external_id, request_reference=request.request_reference)
        return SignatureRequestResult(
            signature_request_id=request.signature_request_id,
            external_signature_id=external_id,
            status=self._map_status(data.get("status")),
            message=data.get("message"),
            provider_response=data,
        )

    async def get_signature_request_status(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> SignatureRequestResult:
        external_id = self._require_external_id(external_signature_id)
        data = await self._request("GET", f"{self.requests_endpoint}/{external_id}", "status")
        return SignatureRequestResult(
            signature_request_id=signature_request_id,
            external_signature_id=external_id,
            status=self._map_status(data.get("status")),
            message=data.get("message"),
            completed_at=self._parse_datetime(data.get("completedAt")),
            provider_response=data,
        )

    async def cancel_signature_request(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> None:
        external_id = self._require_external_id(external_signature_id)
        await self._request("POST", f"{self.requests_endpoint}/{external_id}/cancel", "cancel")
        logger.info("logalty.request.canceled", external_signature_id=external_id)

    async def get_signature_proof(
        self,
        signature_request_id: str,
        external_signature_id: Optional[str],
    ) -> SignatureProofInfo:
        external_id = self._require_external_id(external_signature_id)
        data = await self._request("GET", f"{self.requests_endpoint}/{external_id}/proof", "proof")
        proof_url = data.get("proofUrl")
        if not proof_url:
            raise ExternalProviderError(
                "Logalty did not return a proof url",
                provider=self.name,
                error_code="missing_proof",
                provider_response=data,
            )
        return SignatureProofInfo(
            proof_url=proof_url,
            signature_request_id=signature_request_id,
            external_signature_id=external_id,
            proof_type=data.get("proofType", "logalty_evidence"),
            proof_date=self._parse_datetime(data.get("proofDate")) or datetime.now(timezone.utc),
            metadata={"hash": data.get("hash")} if data.get("hash") else None,
        )

    async def validate_signature_proof(self, proof: SignatureProofInfo) -> bool:
        payload = {"proofUrl": proof.proof_url, "externalId": proof.external_signature_id}
        data = await self._request("POST", f"{self.api_url}/proofs/validate", "validate_proof", payload=payload)
        return bool(data.get("valid", False))

    async def health_check(self) -> bool:
        try:
            async with self.session.get(f"{self.api_url}/health") as response:
                return response.status == 200
        except aiohttp.ClientError as e:
            logger.error("logalty.health_check.failed", error=str(e))
            return False

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            async with self.session.request(method, url, json=payload) as response:
                await self._handle_api_error(response, operation)
                if response.status == 204:
                    return {}
                return await response.json()
        except aiohttp.ClientError as e:
            logger.error("logalty.request.failed", operation=operation, error=str(e))
            raise ExternalProviderError(
                f"Logalty {operation} failed: {e}",
                provider=self.name,
                error_code="api_error",
            ) from e

    async def _handle_api_error(self, response: aiohttp.ClientResponse, operation: str) -> None:
        if response.status in (200, 201, 202, 204):
            return

        error_data: Optional[Dict[str, Any]] = None
        error_message = f"Logalty API error in {operation}"
        error_code = f"http_{response.status}"
        try:
            error_data = await response.json()
            error_message = error_data.get("message", error_message)
            error_code = error_data.get("code", error_code)
        except (aiohttp.ContentTypeError, json.JSONDecodeError):
            error_message = await response.text() or error_message

        logger.warning("logalty.api_error", operation=operation, status=response.status, error_code=error_code)
        raise ExternalProviderError(
            error_message,
            provider=self.name,
            error_code=error_code,
            provider_response=error_data,
        )

    def _require_external_id(self, external_signature_id: Optional[str]) -> str:
        if not external_signature_id:
            raise ExternalProviderError(
                "Signature request has not been dispatched to Logalty",
                provider=self.name,
                error_code="missing_external_id",
            )
        return external_signature_id

    def _map_status(self, logalty_status: Optional[str]) -> SignatureStatus:
        status_mapping = {
            "signed": SignatureStatus.SIGNED,
            "completed": SignatureStatus.SIGNED,
            "cancelled": SignatureStatus.CANCELED,
            "canceled": SignatureStatus.CANCELED,
            "rejected": SignatureStatus.CANCELED,
            "expired": SignatureStatus.EXPIRED,
        }
        return status_mapping.get((logalty_status or "").lower(), SignatureStatus.PENDING)

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except (ValueError, AttributeError):
            return None

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

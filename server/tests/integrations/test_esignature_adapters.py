"""
E-signature Integration Tests

Test suite for the DocuSign and Logalty adapters. HTTP traffic is replaced by
a mocked aiohttp session, so these tests never leave the process.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from app.core.errors import ExternalProviderError
from app.integrations.esignature.base import (
    ESignatureProvider,
    ESignatureType,
    SignatureProofInfo,
    SignatureRequestInfo,
)
from app.integrations.esignature.docusign_adapter import CERTIFICATE_PROOF_TYPE, DocuSignAdapter
from app.integrations.esignature.logalty_adapter import LogaltyAdapter
from app.models.document_signature import SignatureStatus


def mock_response(status: int, payload: Optional[Dict[str, Any]] = None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.headers = {}
    if payload is None:
        response.json = AsyncMock(side_effect=json.JSONDecodeError("no body", "", 0))
    else:
        response.json = AsyncMock(return_value=payload)
    response.text = AsyncMock(return_value=text)
    return response


def mock_session(**responses: MagicMock) -> MagicMock:
    """Session whose get/post/put/request calls yield the given responses as async context managers."""
    session = MagicMock()
    session.closed = False
    for method, response in responses.items():
        getattr(session, method).return_value.__aenter__.return_value = response
    return session


@pytest.fixture
def sample_request_info():
    return SignatureRequestInfo(
        signature_request_id="req-1",
        document_signature_id="sig-1",
        request_reference="SR-ABC123",
        document_id="doc-1",
        document_version_id="doc-1-v1",
        signer_party_id="party-1",
        signer_name="John Doe",
        signer_email="john@contoso.io",
        request_message="Please sign the agreement",
        expiration_date=datetime(2026, 12, 31, tzinfo=timezone.utc),
    )


class TestESignatureContract:
    """Contract tests for all e-signature providers."""

    def test_esignature_provider_interface_compliance(self):
        """Every adapter implements the signing operations."""
        required_methods = [
            "initiate_signature_request",
            "get_signature_request_status",
            "cancel_signature_request",
            "get_signature_proof",
            "validate_signature_proof",
            "health_check",
            "close",
        ]
        providers = [
            DocuSignAdapter(
                base_url="https://test.com", account_id="1", access_token="token", template_id="tpl"
            ),
            LogaltyAdapter(api_url="https://test.com", api_key="key", api_secret="secret"),
        ]

        for provider in providers:
            assert isinstance(provider, ESignatureProvider)
            for method_name in required_methods:
                assert callable(getattr(provider, method_name)), f"{type(provider).__name__}.{method_name}"


class TestDocuSignAdapter:
    """Test DocuSign e-signature adapter."""

    @pytest.fixture
    def docusign_config(self):
        return {
            "base_url": "https://demo.docusign.net",
            "account_id": "123456789",
            "access_token": "test_access_token",
            "template_id": "template_12345",
            "user_id": "test_user_id",
        }

    @pytest.fixture
    def docusign_adapter(self, docusign_config):
        return DocuSignAdapter(**docusign_config)

    def test_adapter_initialization(self, docusign_adapter, docusign_config):
        assert docusign_adapter.provider_type == ESignatureType.DOCUSIGN
        assert docusign_adapter.name == "docusign"
        assert docusign_adapter.template_id == docusign_config["template_id"]
        # Session is created lazily
        assert docusign_adapter._session is None

    async def test_initiate_creates_template_envelope(self, docusign_adapter, sample_request_info):
        docusign_adapter._session = mock_session(
            post=mock_response(201, {"envelopeId": "envelope_12345", "status": "sent"})
        )

        result = await docusign_adapter.initiate_signature_request(sample_request_info)

        assert result.signature_request_id == "req-1"
        assert result.external_signature_id == "envelope_12345"
        assert result.status == SignatureStatus.PENDING

        url = docusign_adapter._session.post.call_args[0][0]
        payload = docusign_adapter._session.post.call_args[1]["json"]
        assert url == "https://demo.docusign.net/restapi/v2.1/accounts/123456789/envelopes"
        assert payload["templateId"] == "template_12345"
        assert payload["templateRoles"] == [
            {"email": "john@contoso.io", "name": "John Doe", "roleName": "Signer"}
        ]
        assert payload["emailBlurb"] == "Please sign the agreement"
        assert payload["status"] == "sent"

    async def test_initiate_requires_signer_email(self, docusign_adapter, sample_request_info):
        sample_request_info.signer_email = None
        docusign_adapter._session = mock_session()

        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.initiate_signature_request(sample_request_info)

        assert exc_info.value.error_code == "missing_signer_email"
        docusign_adapter._session.post.assert_not_called()

    async def test_initiate_without_envelope_id(self, docusign_adapter, sample_request_info):
        docusign_adapter._session = mock_session(post=mock_response(201, {"status": "sent"}))

        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.initiate_signature_request(sample_request_info)

        assert exc_info.value.error_code == "missing_envelope_id"

    async def test_initiate_network_error(self, docusign_adapter, sample_request_info):
        session = MagicMock()
        session.closed = False
        session.post.side_effect = aiohttp.ClientConnectionError("connection refused")
        docusign_adapter._session = session

        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.initiate_signature_request(sample_request_info)

        assert exc_info.value.provider == "docusign"
        assert exc_info.value.error_code == "api_error"

    @pytest.mark.parametrize(
        "status_code, error_code",
        [(401, "AUTH_ERROR"), (403, "PERMISSION_ERROR"), (404, "NOT_FOUND"), (429, "RATE_LIMIT"), (503, "SERVER_ERROR")],
    )
    async def test_api_errors_are_classified(self, docusign_adapter, status_code, error_code):
        docusign_adapter._session = mock_session(get=mock_response(status_code, {"message": "nope"}))

        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.get_signature_request_status("req-1", "envelope_12345")

        assert exc_info.value.error_code == error_code

    async def test_get_status_completed(self, docusign_adapter):
        docusign_adapter._session = mock_session(
            get=mock_response(
                200,
                {
                    "envelopeId": "envelope_12345",
                    "status": "completed",
                    "completedDateTime": "2026-01-15T10:30:00.1234567Z",
                },
            )
        )

        result = await docusign_adapter.get_signature_request_status("req-1", "envelope_12345")

        assert result.status == SignatureStatus.SIGNED
        assert result.completed_at == datetime(2026, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)

    async def test_status_requires_dispatch(self, docusign_adapter):
        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.get_signature_request_status("req-1", None)

        assert exc_info.value.error_code == "missing_envelope_id"

    async def test_cancel_voids_the_envelope(self, docusign_adapter):
        docusign_adapter._session = mock_session(put=mock_response(200, {}))

        await docusign_adapter.cancel_signature_request("req-1", "envelope_12345")

        url = docusign_adapter._session.put.call_args[0][0]
        payload = docusign_adapter._session.put.call_args[1]["json"]
        assert url.endswith("/envelopes/envelope_12345")
        assert payload["status"] == "voided"

    async def test_cancel_failure_propagates(self, docusign_adapter):
        docusign_adapter._session = mock_session(put=mock_response(400, {"errorCode": "ENVELOPE_CANNOT_VOID"}))

        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.cancel_signature_request("req-1", "envelope_12345")

        assert exc_info.value.error_code == "ENVELOPE_CANNOT_VOID"

    async def test_proof_for_completed_envelope(self, docusign_adapter):
        docusign_adapter._session = mock_session(get=mock_response(200, {"status": "completed"}))

        proof = await docusign_adapter.get_signature_proof("req-1", "envelope_12345")

        assert proof.proof_type == CERTIFICATE_PROOF_TYPE
        assert proof.external_signature_id == "envelope_12345"
        assert proof.proof_url.endswith("/envelopes/envelope_12345/documents/combined?certificate=true")

    async def test_proof_for_open_envelope_is_refused(self, docusign_adapter):
        docusign_adapter._session = mock_session(get=mock_response(200, {"status": "sent"}))

        with pytest.raises(ExternalProviderError) as exc_info:
            await docusign_adapter.get_signature_proof("req-1", "envelope_12345")

        assert exc_info.value.error_code == "envelope_not_completed"

    async def test_validate_proof_reads_envelope_from_url(self, docusign_adapter):
        docusign_adapter._session = mock_session(get=mock_response(200, {"status": "completed"}))
        proof = SignatureProofInfo(
            proof_url=f"{docusign_adapter.envelopes_endpoint}/envelope_999/documents/combined?certificate=true"
        )

        assert await docusign_adapter.validate_signature_proof(proof) is True
        assert docusign_adapter._session.get.call_args[0][0].endswith("/envelopes/envelope_999")

    async def test_validate_proof_without_envelope(self, docusign_adapter):
        assert await docusign_adapter.validate_signature_proof(SignatureProofInfo(proof_url="https://x/y")) is False

    @pytest.mark.parametrize(
        "remote, expected",
        [
            ("sent", SignatureStatus.PENDING),
            ("delivered", SignatureStatus.PENDING),
            ("completed", SignatureStatus.SIGNED),
            ("declined", SignatureStatus.CANCELED),
            ("voided", SignatureStatus.CANCELED),
            ("timed_out", SignatureStatus.EXPIRED),
        ],
    )
    def test_status_mapping(self, docusign_adapter, remote, expected):
        assert docusign_adapter._map_status_from_docusign(remote) == expected


class TestLogaltyAdapter:
    """Test Logalty e-signature adapter."""

    @pytest.fixture
    def logalty_adapter(self):
        return LogaltyAdapter(api_url="https://api.logalty.test/", api_key="key", api_secret="secret")

    async def test_initiate(self, logalty_adapter, sample_request_info):
        logalty_adapter._session = mock_session(request=mock_response(201, {"id": "lg-1", "status": "sent"}))

        result = await logalty_adapter.initiate_signature_request(sample_request_info)

        assert result.external_signature_id == "lg-1"
        assert result.status == SignatureStatus.PENDING
        method, url = logalty_adapter._session.request.call_args[0]
        payload = logalty_adapter._session.request.call_args[1]["json"]
        assert (method, url) == ("POST", "https://api.logalty.test/signature-requests")
        assert payload["reference"] == "SR-ABC123"
        assert payload["signer"]["partyId"] == "party-1"
        assert payload["expiresAt"] == "2026-12-31T00:00:00+00:00"

    async def test_initiate_without_id(self, logalty_adapter, sample_request_info):
        logalty_adapter._session = mock_session(request=mock_response(201, {"status": "sent"}))

        with pytest.raises(ExternalProviderError) as exc_info:
            await logalty_adapter.initiate_signature_request(sample_request_info)

        assert exc_info.value.error_code == "missing_external_id"

    async def test_status_signed(self, logalty_adapter):
        logalty_adapter._session = mock_session(
            request=mock_response(200, {"status": "SIGNED", "completedAt": "2026-02-01T09:00:00Z"})
        )

        result = await logalty_adapter.get_signature_request_status("req-1", "lg-1")

        assert result.status == SignatureStatus.SIGNED
        assert result.completed_at == datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)

    async def test_cancel_with_empty_response(self, logalty_adapter):
        logalty_adapter._session = mock_session(request=mock_response(204))

        await logalty_adapter.cancel_signature_request("req-1", "lg-1")

        method, url = logalty_adapter._session.request.call_args[0]
        assert (method, url) == ("POST", "https://api.logalty.test/signature-requests/lg-1/cancel")

    async def test_remote_rejection(self, logalty_adapter):
        logalty_adapter._session = mock_session(
            request=mock_response(409, {"code": "already_signed", "message": "Request already signed"})
        )

        with pytest.raises(ExternalProviderError) as exc_info:
            await logalty_adapter.cancel_signature_request("req-1", "lg-1")

        assert exc_info.value.error_code == "already_signed"
        assert exc_info.value.message == "Request already signed"

    async def test_error_without_json_body(self, logalty_adapter):
        logalty_adapter._session = mock_session(request=mock_response(502, None, text="Bad Gateway"))

        with pytest.raises(ExternalProviderError) as exc_info:
            await logalty_adapter.get_signature_request_status("req-1", "lg-1")

        assert exc_info.value.error_code == "http_502"
        assert exc_info.value.message == "Bad Gateway"

    async def test_proof_and_validation(self, logalty_adapter):
        logalty_adapter._session = mock_session(
            request=mock_response(200, {"proofUrl": "https://evidence.logalty.test/lg-1", "hash": "abc"})
        )

        proof = await logalty_adapter.get_signature_proof("req-1", "lg-1")

        assert proof.proof_type == "logalty_evidence"
        assert proof.metadata == {"hash": "abc"}

        logalty_adapter._session = mock_session(request=mock_response(200, {"valid": True}))
        assert await logalty_adapter.validate_signature_proof(proof) is True
        payload = logalty_adapter._session.request.call_args[1]["json"]
        assert payload == {"proofUrl": "https://evidence.logalty.test/lg-1", "externalId": "lg-1"}

    async def test_health_check(self, logalty_adapter):
        logalty_adapter._session = mock_session(get=mock_response(200, {}))

        assert await logalty_adapter.health_check() is True

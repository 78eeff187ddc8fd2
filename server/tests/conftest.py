"""
Shared fixtures for the e-signature workflow test suite.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("EXPIRATION_SWEEP_ENABLED", "false")

from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings
from app.db.session import create_engine_from_settings, init_models
from app.integrations.esignature.base import (
    ESignatureProvider,
    ESignatureProviderRegistry,
    ESignatureType,
    SignatureProofInfo,
    SignatureRequestInfo,
    SignatureRequestResult,
)
from app.models.document_signature import SignatureStatus
from app.schemas.document_signature import DocumentSignatureCreate
from app.services import document_signature_service
from app.services.esignature_service import ESignatureService


TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeProvider(ESignatureProvider):
    """In-memory provider that records every call it receives."""

    def __init__(self, label: str, remote_status: SignatureStatus = SignatureStatus.PENDING):
        super().__init__()
        self.label = label
        self.remote_status = remote_status
        self.proof_valid = True
        self.fail_with: Optional[Exception] = None
        self.calls: list[tuple[str, Optional[str]]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self.label

    def _get_provider_type(self) -> ESignatureType:
        return ESignatureType.DOCUSIGN

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def initiate_signature_request(self, request: SignatureRequestInfo) -> SignatureRequestResult:
        self.calls.append(("initiate", request.signature_request_id))
        self._maybe_fail()
        return SignatureRequestResult(
            signature_request_id=request.signature_request_id,
            external_signature_id=f"{self.label}-{request.request_reference}",
            status=SignatureStatus.PENDING,
        )

    async def get_signature_request_status(self, signature_request_id, external_signature_id):
        self.calls.append(("status", signature_request_id))
        self._maybe_fail()
        return SignatureRequestResult(
            signature_request_id=signature_request_id,
            external_signature_id=external_signature_id,
            status=self.remote_status,
        )

    async def cancel_signature_request(self, signature_request_id, external_signature_id) -> None:
        self.calls.append(("cancel", signature_request_id))
        self._maybe_fail()

    async def get_signature_proof(self, signature_request_id, external_signature_id) -> SignatureProofInfo:
        self.calls.append(("proof", signature_request_id))
        self._maybe_fail()
        return SignatureProofInfo(
            proof_url=f"https://{self.label}.example.com/proofs/{external_signature_id}",
            signature_request_id=signature_request_id,
            external_signature_id=external_signature_id,
            proof_type=f"{self.label}_certificate",
            proof_date=datetime.now(timezone.utc),
        )

    async def validate_signature_proof(self, proof: SignatureProofInfo) -> bool:
        self.calls.append(("validate_proof", proof.signature_request_id))
        self._maybe_fail()
        return self.proof_valid

    async def close(self) -> None:
        self.closed = True


@pytest_asyncio.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Fresh in-memory database per test."""
    engine = create_engine_from_settings(Settings(_env_file=None, database_url=TEST_DATABASE_URL))
    await init_models(engine)

    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
def make_provider():
    """Build extra in-memory providers by label."""
    return FakeProvider


@pytest.fixture
def acme() -> FakeProvider:
    return FakeProvider("acme")


@pytest.fixture
def globex() -> FakeProvider:
    return FakeProvider("globex")


@pytest.fixture
def registry(acme, globex) -> ESignatureProviderRegistry:
    return ESignatureProviderRegistry(providers=[acme, globex], default_provider="acme")


@pytest.fixture
def esignature_service(registry) -> ESignatureService:
    return ESignatureService(registry)


@pytest.fixture
def make_document_signature(session):
    """Create a committed document signature; keyword overrides go to DocumentSignatureCreate."""

    async def _make(**overrides):
        data = {
            "document_id": "doc-1",
            "document_version_id": "doc-1-v1",
            "signer_party_id": "party-1",
            "signer_name": "Ada Lovelace",
            "signer_email": "ada@analytical-engines.org",
        }
        data.update(overrides)
        signature = await document_signature_service.create_document_signature(
            session, DocumentSignatureCreate(**data), actor="tester"
        )
        await session.commit()
        return signature

    return _make

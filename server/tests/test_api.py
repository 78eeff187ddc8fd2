"""
HTTP surface tests: routes, error mapping and the e-signature endpoints.
"""

from datetime import datetime, timedelta, timezone

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.dependencies.database import get_db
from app.main import app
from app.models.document_signature import SignatureStatus


@pytest_asyncio.fixture
async def client(session, registry):
    async def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.provider_registry = registry

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


async def _document_signature(client, **overrides):
    payload = {
        "document_id": "doc-1",
        "signer_party_id": "party-1",
        "signer_name": "Ada Lovelace",
        "signer_email": "ada@analytical-engines.org",
    }
    payload.update(overrides)
    response = await client.post("/document-signatures", json=payload, headers={"X-User-Id": "api-user"})
    assert response.status_code == 201
    return response.json()


async def test_initiate_poll_and_fully_signed(client, acme):
    signature = await _document_signature(client)

    initiated = await client.post(
        "/e-signatures", params={"provider_name": "acme"}, json={"document_signature_id": signature["id"]}
    )
    assert initiated.status_code == 201
    request = initiated.json()
    assert request["request_status"] == "pending"
    assert request["provider_name"] == "acme"

    acme.remote_status = SignatureStatus.SIGNED
    polled = await client.get(f"/e-signatures/{request['id']}/status")
    assert polled.status_code == 200
    assert polled.json()["request_status"] == "signed"

    fully_signed = await client.get("/document-signatures/documents/doc-1/fully-signed")
    assert fully_signed.json() == {"document_id": "doc-1", "fully_signed": True}


async def test_cancel_after_signed_maps_to_conflict(client, acme):
    signature = await _document_signature(client)
    request = (await client.post("/e-signatures", json={"document_signature_id": signature["id"]})).json()
    acme.remote_status = SignatureStatus.SIGNED
    await client.get(f"/e-signatures/{request['id']}/status")

    response = await client.post(f"/e-signatures/{request['id']}/cancel")

    assert response.status_code == 409
    assert response.json()["code"] == "invalid_state_transition"


async def test_unknown_provider_maps_to_not_found(client):
    signature = await _document_signature(client)

    response = await client.post(
        "/e-signatures", params={"provider_name": "unknown"}, json={"document_signature_id": signature["id"]}
    )

    assert response.status_code == 404
    assert response.json()["code"] == "provider_not_found"


async def test_provider_failure_maps_to_bad_gateway(client, acme):
    signature = await _document_signature(client)
    acme.fail_with = RuntimeError("timeout")

    response = await client.post("/e-signatures", json={"document_signature_id": signature["id"]})

    assert response.status_code == 502
    assert response.json()["code"] == "external_provider_error"
    listing = await client.get("/signature-requests", params={"document_signature_id": signature["id"]})
    assert listing.json()["total"] == 1
    assert listing.json()["items"][0]["request_status"] == "pending"


async def test_missing_request_maps_to_not_found(client):
    response = await client.get("/signature-requests/does-not-exist")

    assert response.status_code == 404
    assert response.json()["details"] == {"resource": "SignatureRequest", "id": "does-not-exist"}


async def test_stale_version_maps_to_conflict(client):
    signature = await _document_signature(client)
    request = (await client.post("/signature-requests", json={"document_signature_id": signature["id"]})).json()

    response = await client.put(
        f"/signature-requests/{request['id']}",
        json={
            "document_signature_id": signature["id"],
            "request_reference": request["request_reference"],
            "request_status": "pending",
            "version": request["version"] + 1,
        },
    )

    assert response.status_code == 409
    assert response.json()["code"] == "concurrent_modification"


async def test_duplicate_reference_maps_to_conflict(client):
    signature = await _document_signature(client)
    body = {"document_signature_id": signature["id"], "request_reference": "REF-DUP"}
    assert (await client.post("/signature-requests", json=body)).status_code == 201

    response = await client.post("/signature-requests", json=body)

    assert response.status_code == 409
    assert response.json()["code"] == "integrity_error"


async def test_process_expired_endpoint(client):
    signature = await _document_signature(client)
    expired_at = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    request = (
        await client.post(
            "/signature-requests",
            json={"document_signature_id": signature["id"], "expiration_date": expired_at},
        )
    ).json()

    first = await client.post("/signature-requests/process-expired")
    second = await client.post("/signature-requests/process-expired")

    assert [item["id"] for item in first.json()["expired"]] == [request["id"]]
    assert first.json()["expired"][0]["version"] == request["version"] + 1
    assert first.json()["expired"][0]["completed_at"] is None
    assert second.json()["expired"] == []


async def test_notify_and_remind(client):
    signature = await _document_signature(client)
    request = (await client.post("/signature-requests", json={"document_signature_id": signature["id"]})).json()

    notified = await client.post(f"/signature-requests/{request['id']}/notify")
    reminded = await client.post(f"/signature-requests/{request['id']}/remind")

    assert notified.json()["notification_sent"] is True
    assert reminded.json()["reminder_sent"] is True
    assert reminded.json()["request_status"] == "pending"


async def test_document_signature_cancel_rules(client):
    signed = await _document_signature(client, signature_status="signed")
    pending = await _document_signature(client, signer_party_id="party-2")

    rejected = await client.post(f"/document-signatures/{signed['id']}/cancel")
    accepted = await client.post(f"/document-signatures/{pending['id']}/cancel")

    assert rejected.status_code == 409
    assert accepted.json()["signature_status"] == "canceled"
    summary = (await client.get("/document-signatures/documents/doc-1/summary")).json()
    assert summary["total"] == 2
    assert summary["fully_signed"] is True


async def test_provider_records_and_tenant_default(client):
    first = (
        await client.post(
            "/signature-providers", json={"name": "Acme", "provider_code": "acme", "tenant_id": "tenant-a"}
        )
    ).json()
    second = (
        await client.post(
            "/signature-providers", json={"name": "Globex", "provider_code": "globex", "tenant_id": "tenant-a"}
        )
    ).json()

    await client.post(f"/signature-providers/{first['id']}/set-default", params={"tenant_id": "tenant-a"})
    await client.post(f"/signature-providers/{second['id']}/set-default", params={"tenant_id": "tenant-a"})

    default = await client.get("/signature-providers/default", params={"tenant_id": "tenant-a"})
    assert default.json()["id"] == second["id"]
    providers = (await client.get("/signature-providers", params={"tenant_id": "tenant-a"})).json()
    assert sum(1 for item in providers if item["is_default"]) == 1


async def test_registered_providers_and_system_default(client):
    listed = await client.get("/e-signatures/providers")
    assert listed.json() == {"providers": ["acme", "globex"], "default_provider": "acme"}

    changed = await client.put("/e-signatures/providers/default/globex")
    assert changed.json()["default_provider"] == "globex"

    missing = await client.put("/e-signatures/providers/default/ghost")
    assert missing.status_code == 404


async def test_proof_persist_and_validate(client, acme):
    signature = await _document_signature(client)
    request = (await client.post("/e-signatures", json={"document_signature_id": signature["id"]})).json()

    proof = await client.get(f"/e-signatures/{request['id']}/proof", params={"persist": "true"})
    assert proof.status_code == 200
    stored = (await client.get(f"/signature-proofs/by-request/{request['id']}")).json()
    assert [item["proof_url"] for item in stored] == [proof.json()["proof_url"]]

    validated = await client.post("/e-signatures/validate-proof", json={"proof": proof.json()})
    assert validated.json() == {"valid": True, "provider": "acme"}


async def test_verify_signature_endpoint(client, acme):
    signature = await _document_signature(client)
    request = (await client.post("/e-signatures", json={"document_signature_id": signature["id"]})).json()
    acme.remote_status = SignatureStatus.SIGNED
    await client.get(f"/e-signatures/{request['id']}/status")

    verified = await client.post(f"/signature-verifications/verify/{signature['id']}")

    assert verified.status_code == 200
    assert verified.json()["verification_status"] == "valid"
    latest = await client.get(f"/signature-verifications/by-document-signature/{signature['id']}/latest")
    assert latest.json()["id"] == verified.json()["id"]


async def test_health_reports_providers(client):
    response = await client.get("/health")

    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == {"status": "healthy"}
    assert body["checks"]["providers"] == {"acme": "healthy", "globex": "healthy"}

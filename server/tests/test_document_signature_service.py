import pytest

from app.core.errors import ConcurrentModificationError, InvalidStateTransitionError, NotFoundError
from app.models.document_signature import SignatureStatus
from app.schemas.document_signature import DocumentSignatureCreate, DocumentSignatureUpdate
from app.services import document_signature_service


class TestFullySigned:
    async def test_document_without_signers_is_not_fully_signed(self, session):
        assert await document_signature_service.is_document_fully_signed(session, "doc-empty") is False

    async def test_any_pending_record_blocks(self, session, make_document_signature):
        await make_document_signature(signature_status=SignatureStatus.SIGNED)
        await make_document_signature(signer_party_id="party-2", signature_status=SignatureStatus.SIGNED)
        await make_document_signature(signer_party_id="party-3")

        assert await document_signature_service.is_document_fully_signed(session, "doc-1") is False

    async def test_signed_with_canceled_and_expired_is_fully_signed(self, session, make_document_signature):
        await make_document_signature(signature_status=SignatureStatus.SIGNED)
        await make_document_signature(signer_party_id="party-2", signature_status=SignatureStatus.CANCELED)
        await make_document_signature(signer_party_id="party-3", signature_status=SignatureStatus.EXPIRED)

        assert await document_signature_service.is_document_fully_signed(session, "doc-1") is True

    async def test_only_canceled_records_is_not_fully_signed(self, session, make_document_signature):
        await make_document_signature(signature_status=SignatureStatus.CANCELED)

        assert await document_signature_service.is_document_fully_signed(session, "doc-1") is False

    async def test_summary_counts_every_status(self, session, make_document_signature):
        await make_document_signature(signature_status=SignatureStatus.SIGNED)
        await make_document_signature(signer_party_id="party-2")

        summary = await document_signature_service.get_document_signing_summary(session, "doc-1")

        assert summary.total == 2
        assert summary.status_counts[SignatureStatus.SIGNED] == 1
        assert summary.status_counts[SignatureStatus.PENDING] == 1
        assert summary.status_counts[SignatureStatus.EXPIRED] == 0
        assert summary.fully_signed is False


class TestCancel:
    async def test_cancel_signed_fails(self, session, make_document_signature):
        signature = await make_document_signature(signature_status=SignatureStatus.SIGNED)

        with pytest.raises(InvalidStateTransitionError):
            await document_signature_service.cancel_document_signature(session, signature.id)

        stored = await document_signature_service.get_document_signature(session, signature.id)
        assert stored.signature_status == SignatureStatus.SIGNED

    @pytest.mark.parametrize("status", [SignatureStatus.PENDING, SignatureStatus.EXPIRED])
    async def test_cancel_pending_or_expired(self, session, make_document_signature, status):
        signature = await make_document_signature(signature_status=status)

        canceled = await document_signature_service.cancel_document_signature(session, signature.id, "tester")

        assert canceled.signature_status == SignatureStatus.CANCELED
        assert canceled.updated_by == "tester"

    async def test_cancel_canceled_is_unchanged(self, session, make_document_signature):
        signature = await make_document_signature(signature_status=SignatureStatus.CANCELED)
        version = signature.version

        again = await document_signature_service.cancel_document_signature(session, signature.id)

        assert again.signature_status == SignatureStatus.CANCELED
        assert again.version == version

    async def test_cancel_unknown(self, session):
        with pytest.raises(NotFoundError):
            await document_signature_service.cancel_document_signature(session, "missing")


class TestLifecycle:
    async def test_initiate_forces_pending(self, session):
        signature = await document_signature_service.initiate_signing_process(
            session,
            DocumentSignatureCreate(
                document_id="doc-9",
                signer_party_id="party-9",
                signature_status=SignatureStatus.SIGNED,
            ),
        )

        assert signature.signature_status == SignatureStatus.PENDING

    async def test_update_with_stale_version(self, session, make_document_signature):
        signature = await make_document_signature()

        with pytest.raises(ConcurrentModificationError):
            await document_signature_service.update_document_signature(
                session,
                signature.id,
                DocumentSignatureUpdate(
                    document_id="doc-1",
                    signer_party_id="party-1",
                    signature_status=SignatureStatus.PENDING,
                    version=signature.version + 1,
                ),
            )

    async def test_update_cannot_reopen_a_signed_signature(self, session, make_document_signature):
        signature = await make_document_signature(signature_status=SignatureStatus.SIGNED)

        with pytest.raises(InvalidStateTransitionError):
            await document_signature_service.update_document_signature(
                session,
                signature.id,
                DocumentSignatureUpdate(
                    document_id="doc-1",
                    signer_party_id="party-1",
                    signature_status=SignatureStatus.PENDING,
                    version=signature.version,
                ),
            )

        assert signature.signature_status == SignatureStatus.SIGNED

    async def test_update_keeping_status_is_allowed(self, session, make_document_signature):
        signature = await make_document_signature(signature_status=SignatureStatus.SIGNED)

        updated = await document_signature_service.update_document_signature(
            session,
            signature.id,
            DocumentSignatureUpdate(
                document_id="doc-1",
                signer_party_id="party-1",
                signer_name="Ada King",
                signature_status=SignatureStatus.SIGNED,
                version=signature.version,
            ),
        )

        assert updated.signer_name == "Ada King"
        assert updated.version == 2

    async def test_queries(self, session, make_document_signature):
        await make_document_signature()
        await make_document_signature(signer_party_id="party-2", document_version_id="doc-1-v2")
        await make_document_signature(document_id="doc-2", signature_status=SignatureStatus.SIGNED)

        assert len(await document_signature_service.list_by_document(session, "doc-1")) == 2
        assert len(await document_signature_service.list_by_document_version(session, "doc-1-v2")) == 1
        assert len(await document_signature_service.list_by_signer_party(session, "party-1")) == 2
        signed = await document_signature_service.list_by_signature_status(session, SignatureStatus.SIGNED)
        assert [item.document_id for item in signed] == ["doc-2"]

    async def test_delete(self, session, make_document_signature):
        signature = await make_document_signature()

        await document_signature_service.delete_document_signature(session, signature.id)

        with pytest.raises(NotFoundError):
            await document_signature_service.get_document_signature(session, signature.id)

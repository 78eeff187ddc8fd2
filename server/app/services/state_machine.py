from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from app.core.errors import InvalidStateTransitionError
from app.models.document_signature import DocumentSignature, SignatureStatus
from app.models.signature_request import SignatureRequest


ALLOWED_TRANSITIONS: dict[SignatureStatus, tuple[SignatureStatus, ...]] = {
    SignatureStatus.PENDING: (SignatureStatus.SIGNED, SignatureStatus.CANCELED, SignatureStatus.EXPIRED),
    SignatureStatus.SIGNED: (),
    SignatureStatus.CANCELED: (),
    SignatureStatus.EXPIRED: (),
}


@dataclass(slots=True)
class TransitionResult:
    changed: bool
    previous: SignatureStatus
    current: SignatureStatus


def can_transition(current: SignatureStatus, target: SignatureStatus) -> bool:
    allowed: Iterable[SignatureStatus] | None = ALLOWED_TRANSITIONS.get(current)
    return allowed is not None and target in allowed


def ensure_transition(current: SignatureStatus, target: SignatureStatus, *, resource: str = "signature request") -> None:
    if not can_transition(current, target):
        raise InvalidStateTransitionError(current, target, resource=resource)


def advance_request(
    request: SignatureRequest,
    target: SignatureStatus,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """
    Move a request to ``target``.

    Re-asserting the current status is a no-op rather than a transition, so a
    provider poll that reports SIGNED for an already SIGNED request succeeds.
    """
    previous = request.request_status
    if previous == target:
        return TransitionResult(False, previous, previous)

    ensure_transition(previous, target)
    request.request_status = target
    if target == SignatureStatus.SIGNED and request.completed_at is None:
        request.completed_at = now or datetime.now(timezone.utc)
    return TransitionResult(True, previous, target)


def mirror_onto_document_signature(
    signature: DocumentSignature,
    target: SignatureStatus,
    *,
    now: datetime | None = None,
) -> bool:
    """Follow a request transition on its owning document signature while that is still pending."""
    if signature.signature_status != SignatureStatus.PENDING or target == SignatureStatus.PENDING:
        return False
    signature.signature_status = target
    if target == SignatureStatus.SIGNED and signature.signed_at is None:
        signature.signed_at = now or datetime.now(timezone.utc)
    return True


SIGNATURE_TRANSITIONS: dict[SignatureStatus, tuple[SignatureStatus, ...]] = {
    SignatureStatus.PENDING: (SignatureStatus.SIGNED, SignatureStatus.CANCELED, SignatureStatus.EXPIRED),
    SignatureStatus.EXPIRED: (SignatureStatus.PENDING, SignatureStatus.CANCELED),
    SignatureStatus.SIGNED: (),
    SignatureStatus.CANCELED: (),
}


def ensure_signature_transition(current: SignatureStatus, target: SignatureStatus) -> None:
    """Document signatures may also be reopened or withdrawn after their request expired."""
    if current == target:
        return
    if target not in SIGNATURE_TRANSITIONS.get(current, ()):
        raise InvalidStateTransitionError(current, target, resource="document signature")


def reopen_document_signature(signature: DocumentSignature) -> bool:
    """Put an expired signature back to PENDING for a fresh request; signed or canceled ones are closed."""
    if signature.signature_status == SignatureStatus.PENDING:
        return False
    ensure_signature_transition(signature.signature_status, SignatureStatus.PENDING)
    signature.signature_status = SignatureStatus.PENDING
    return True

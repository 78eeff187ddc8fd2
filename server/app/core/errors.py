"""
Error taxonomy for the signature workflow.

Every error raised across a service boundary is one of these kinds, so callers
can tell "no such request" apart from "the provider call failed".
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SignatureWorkflowError(Exception):
    """Base class for all signature workflow errors."""

    status_code = 500
    code = "signature_workflow_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(SignatureWorkflowError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} not found with ID: {identifier}",
            {"resource": resource, "id": identifier},
        )
        self.resource = resource
        self.identifier = identifier


class ProviderNotFoundError(SignatureWorkflowError):
    status_code = 404
    code = "provider_not_found"

    def __init__(self, provider_name: str):
        super().__init__(
            f"E-signature provider not found: {provider_name}",
            {"provider": provider_name},
        )
        self.provider_name = provider_name


class NoDefaultProviderError(SignatureWorkflowError):
    status_code = 503
    code = "no_default_provider"

    def __init__(self, tenant_id: Optional[str] = None):
        message = "Default e-signature provider not configured"
        if tenant_id:
            message = f"{message} for tenant {tenant_id}"
        super().__init__(message, {"tenant_id": tenant_id})
        self.tenant_id = tenant_id


class InvalidStateTransitionError(SignatureWorkflowError):
    status_code = 409
    code = "invalid_state_transition"

    def __init__(self, current: Any, target: Any, resource: str = "signature request"):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            f"Cannot move {resource} from {current_value} to {target_value}",
            {"current": current_value, "target": target_value},
        )
        self.current = current
        self.target = target


class ExternalProviderError(SignatureWorkflowError):
    """The provider call itself failed (network, remote rejection, bad response)."""

    status_code = 502
    code = "external_provider_error"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        error_code: Optional[str] = None,
        provider_response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, {"provider": provider, "error_code": error_code})
        self.provider = provider
        self.error_code = error_code
        self.provider_response = provider_response


class ConcurrentModificationError(SignatureWorkflowError):
    status_code = 409
    code = "concurrent_modification"

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} {identifier} was modified concurrently; reload and retry",
            {"resource": resource, "id": identifier},
        )
        self.resource = resource
        self.identifier = identifier

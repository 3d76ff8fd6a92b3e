"""
Error taxonomy for components and the host.

Every error carries a stable ``kind`` so the engine, CLI and HTTP API can
report it without string matching. All of them are terminal for the
transaction in which they are raised: the host reverts the state changes of
the whole top-level call.
"""

from __future__ import annotations

from typing import Any, Dict


class ContractError(Exception):
    """Base class for errors raised by component logic."""

    kind = "contract_error"

    def __init__(self, message: str = "", **details: Any) -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ContractError):
    """Malformed input: unknown message tag, zero code id, bad address."""

    kind = "validation_error"


class AuthorizationError(ContractError):
    """The sender lacks the role the operation requires."""

    kind = "authorization_error"


class CorrelationError(ContractError):
    """A reply token is unknown or its operation was already resolved."""

    kind = "correlation_error"


class EligibilityError(ContractError):
    """The eligibility oracle denied the actor or could not be reached."""

    kind = "eligibility_error"


class WindowError(ContractError):
    """Minting is disabled or the block time is outside the mint window."""

    kind = "window_error"


class QuotaExceededError(ContractError):
    """The actor already minted the per-address limit."""

    kind = "quota_exceeded"


class TransportError(ContractError):
    """Query envelope could not be encoded, dispatched or decoded."""

    kind = "transport_error"


class DeployFailedError(ContractError):
    """A deploy reply delivered a failure outcome."""

    kind = "deploy_failed"


class NotFoundError(ContractError):
    """A storage item, component or token does not exist."""

    kind = "not_found"


class HostError(ContractError):
    """Environment level failure: unknown code id, unloadable component."""

    kind = "host_error"


def error_kind(exc: BaseException) -> str:
    """Return the taxonomy kind of ``exc`` (``internal_error`` for foreign errors)."""
    if isinstance(exc, ContractError):
        return exc.kind
    return "internal_error"

"""
Service-wide exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes and error codes everywhere.

Usage:
    from template_governance.core.exceptions import NotFoundError, StaleDefaultConflict

    raise NotFoundError(resource="ChangeRequest", resource_id=request_id)
    raise StaleDefaultConflict("invoice", expected="invoice_v1.0.0", actual="invoice_v1.1.0")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "ChangeRequest").
        resource_id: The key that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a unique constraint.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


# ── Governance errors ────────────────────────────────────────────────────────


class GovernanceError(Exception):
    """Base class for change-governance failures.

    Subclasses set ``code`` (machine-readable, see ``utils.errors.E``) and
    ``http_status``.  ``details`` is rendered verbatim in the API response.
    """

    code = "ERR_GOVERNANCE"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class StaleDefaultConflict(GovernanceError):
    """The from-version no longer matches the live default. Refetch and retry."""

    code = "ERR_STALE_DEFAULT"
    http_status = 409

    def __init__(self, category: str, expected: str, actual: str | None) -> None:
        super().__init__(
            f"Default {category} template is {actual!r}, not {expected!r}",
            details={"category": category, "expected": expected, "current_default": actual},
        )


class ConcurrentChangeConflict(GovernanceError):
    code = "ERR_CONCURRENT_CHANGE"
    http_status = 409

    def __init__(self, category: str, active_request_id: str | None = None) -> None:
        super().__init__(
            f"Another change request is already active for {category}",
            details={"category": category, "active_request_id": active_request_id},
        )


class UnknownApprover(GovernanceError):
    code = "ERR_UNKNOWN_APPROVER"
    http_status = 403

    def __init__(self, role: str, identity: str) -> None:
        super().__init__(
            f"{identity} is not a required approver for role {role}",
            details={"role": role, "identity": identity},
        )


class AlreadyApproved(GovernanceError):
    code = "ERR_ALREADY_APPROVED"
    http_status = 409

    def __init__(self, role: str, identity: str) -> None:
        super().__init__(
            f"{role} approval by {identity} is already recorded",
            details={"role": role, "identity": identity},
        )


class ConfirmationTextMismatch(GovernanceError):
    """Submitted confirmation text differs from the stored text.

    ``details`` names the first differing clause and its expected wording
    so the caller can show exactly what must be typed.
    """

    code = "ERR_CONFIRMATION_MISMATCH"
    http_status = 422


class SafetyCheckFailed(GovernanceError):
    code = "GOVERNANCE_BLOCK"
    http_status = 422

    def __init__(self, failures: list[dict]) -> None:
        names = ", ".join(f["check_name"] for f in failures)
        super().__init__(
            f"Blocking safety checks failed: {names}",
            details={"blocking_failures": failures},
        )


class SwapVerificationFailed(GovernanceError):
    """The default pointer did not move; it was rolled back and the request failed."""

    code = "ERR_SWAP_VERIFICATION"
    http_status = 500


class EmergencyRollbackFailed(GovernanceError):
    """The rollback after a failed swap did not restore the previous default.

    Registry state is ambiguous and needs manual intervention.
    """

    code = "ERR_EMERGENCY_ROLLBACK"
    http_status = 500


class InvalidRequestState(GovernanceError):
    code = "ERR_CONFLICT_STATE"
    http_status = 409

    def __init__(self, request_id: str, status: str, operation: str) -> None:
        super().__init__(
            f"Cannot {operation} change request {request_id} in status {status!r}",
            details={"request_id": request_id, "status": status, "operation": operation},
        )


class ValidationServiceUnavailable(Exception):
    """Transient failure talking to the template validation backend; retried."""

"""Standardised API error responses.

Usage
-----
    from template_governance.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Change request not found")
    return api_error(E.VALIDATION_REQUIRED, "category is required")
    return api_error(exc.code, str(exc), status=exc.http_status, details=exc.details)
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for standard application errors
     • GOVERNANCE_ prefix for safety-gate errors
    """

    # Validation – HTTP 400 / 422
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_RULE = "ERR_VALIDATION_RULE"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    STALE_DEFAULT = "ERR_STALE_DEFAULT"
    CONCURRENT_CHANGE = "ERR_CONCURRENT_CHANGE"
    ALREADY_APPROVED = "ERR_ALREADY_APPROVED"

    # Permissions – HTTP 403
    UNKNOWN_APPROVER = "ERR_UNKNOWN_APPROVER"

    # Confirmation – HTTP 422
    CONFIRMATION_MISMATCH = "ERR_CONFIRMATION_MISMATCH"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"
    SWAP_VERIFICATION = "ERR_SWAP_VERIFICATION"
    EMERGENCY_ROLLBACK = "ERR_EMERGENCY_ROLLBACK"

    # Safety gate
    GOVERNANCE_BLOCK = "GOVERNANCE_BLOCK"
    GOVERNANCE_WARN = "GOVERNANCE_WARN"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_RULE: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.STALE_DEFAULT: 409,
    E.CONCURRENT_CHANGE: 409,
    E.ALREADY_APPROVED: 409,
    E.UNKNOWN_APPROVER: 403,
    E.CONFIRMATION_MISMATCH: 422,
    E.DATABASE: 500,
    E.INTERNAL: 500,
    E.SWAP_VERIFICATION: 500,
    E.EMERGENCY_ROLLBACK: 500,
    E.GOVERNANCE_BLOCK: 422,
    E.GOVERNANCE_WARN: 200,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (failing clause, blocking checks, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """
    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status

"""
Approval workflow: which roles must sign off, and whether they have.

Approvals arrive in any order; quorum is a set-membership check over the
required roles, never a sequence check.  An approval is a one-way
ratchet: there is no revoke.
"""

from __future__ import annotations

from datetime import datetime, timezone

from template_governance.core.exceptions import AlreadyApproved, UnknownApprover, ValidationError
from template_governance.models.change_request import StakeholderApproval
from template_governance.services.stakeholder_directory import StakeholderDirectory

APPROVAL_MATRIX = {
    "low":      ["technical_lead"],
    "medium":   ["technical_lead", "design_lead"],
    "high":     ["technical_lead", "design_lead", "product_owner"],
    "critical": ["technical_lead", "design_lead", "product_owner", "business_owner"],
}


def required_roles(risk_level: str) -> list[str]:
    try:
        return list(APPROVAL_MATRIX[risk_level])
    except KeyError:
        raise ValidationError(
            f"Unknown risk level {risk_level!r}",
            details={"risk_level": f"must be one of {list(APPROVAL_MATRIX)}"},
        ) from None


def build_approvals(risk_level: str, directory: StakeholderDirectory) -> list[StakeholderApproval]:
    """One unapproved, required StakeholderApproval per role for ``risk_level``."""
    approvals = []
    for index, role in enumerate(required_roles(risk_level)):
        person = directory.resolve(role)
        approvals.append(StakeholderApproval(
            stakeholder_role=role,
            stakeholder_name=person.name,
            stakeholder_email=person.email,
            sequence=index,
            required=True,
            approved=False,
            conditions=[],
        ))
    return approvals


def find_approval(approvals, role: str, identity: str) -> StakeholderApproval:
    """Return the entry for (role, identity) or raise UnknownApprover."""
    wanted = (identity or "").strip().lower()
    for approval in approvals:
        if approval.stakeholder_role == role and approval.stakeholder_email.lower() == wanted:
            return approval
    raise UnknownApprover(role, identity)


def record_approval(approval: StakeholderApproval, notes: str | None = None,
                    conditions: list | None = None, now: datetime | None = None) -> StakeholderApproval:
    if approval.approved:
        raise AlreadyApproved(approval.stakeholder_role, approval.stakeholder_email)
    approval.approved = True
    approval.approved_at = now or datetime.now(timezone.utc)
    approval.approval_notes = notes
    approval.conditions = list(conditions or [])
    return approval


def quorum_reached(approvals) -> bool:
    """True when every required role has approved."""
    required = {a.stakeholder_role for a in approvals if a.required}
    approved = {a.stakeholder_role for a in approvals if a.required and a.approved}
    return bool(required) and required <= approved


def pending_roles(approvals) -> list[str]:
    return [a.stakeholder_role for a in approvals if a.required and not a.approved]


def approver_identities(approvals) -> list[str]:
    return [a.stakeholder_email for a in approvals if a.approved]

"""
Confirmation text: the exact sentence a confirmer must type to deploy.

The text is built once when a change request is opened and stored
verbatim.  Confirmation compares against the stored copy only, so the
date in the attribution clause never drifts.

This is a friction control against accidental or scripted deployment,
not an authentication mechanism.
"""

from __future__ import annotations

from datetime import date

from template_governance.services.impact_assessor import ImpactAssessment

HIGH_RISK_CLAUSE = "I understand this is a high-risk change that may impact active business operations."
MIGRATION_CLAUSE = "I confirm that data migration has been completed and verified."
TRAINING_CLAUSE = "I confirm that affected users have been trained on the changes."


def build_clauses(
    category: str,
    from_version: str,
    to_version: str,
    requester: str,
    impact: ImpactAssessment,
    current_date: date,
) -> list[str]:
    clauses = [
        f"I confirm changing the default {category} template from version {from_version} to version {to_version}."
    ]
    if impact.is_high_risk:
        clauses.append(HIGH_RISK_CLAUSE)
    if impact.breaking_changes:
        clauses.append(f"I acknowledge the breaking changes: {', '.join(impact.breaking_changes)}.")
    if impact.data_migration_required:
        clauses.append(MIGRATION_CLAUSE)
    if impact.user_training_required:
        clauses.append(TRAINING_CLAUSE)
    clauses.append(
        f"I understand that rollback to version {from_version} is available and will take "
        f"approximately {impact.rollback_time_estimate} to complete."
    )
    clauses.append(f"Change requested by {requester} on {current_date.isoformat()}.")
    return clauses


def join_clauses(clauses: list[str]) -> str:
    return " ".join(clauses)


def generate_confirmation_text(
    category: str,
    from_version: str,
    to_version: str,
    reason: str,
    requester: str,
    impact: ImpactAssessment,
    current_date: date,
) -> str:
    """Return the confirmation sentence for a change.

    ``reason`` is accepted for completeness of the change context but does
    not appear in the text; free-form reasons would make the sentence
    impractical to retype.
    """
    return join_clauses(build_clauses(category, from_version, to_version, requester, impact, current_date))


def confirmation_matches(submitted: str | None, expected: str) -> bool:
    """Trim both sides, then require byte-for-byte equality."""
    return (submitted or "").strip() == expected.strip()


def first_mismatched_clause(submitted: str | None, clauses: list[str]) -> dict | None:
    """Describe the first clause where ``submitted`` departs from ``clauses``.

    ``clauses`` is the list ``build_clauses`` produced for the request, so
    a full stop inside a clause (a breaking-change note, say) never
    shifts the reported index.  ``submitted_clause`` is the typed text at
    that position, cut to the expected clause's length.

    Returns None when the texts match.
    """
    if confirmation_matches(submitted, join_clauses(clauses)):
        return None
    got = (submitted or "").strip()
    pos = 0
    spacing_off = False
    for index, clause in enumerate(clauses):
        if index:
            rest = got[pos:]
            gap = len(rest) - len(rest.lstrip())
            spacing_off = spacing_off or rest[:gap] != " "
            pos += gap
        typed = got[pos:pos + len(clause)]
        if typed != clause:
            return {
                "clause_index": index,
                "clause_count": len(clauses),
                "expected_clause": clause,
                "submitted_clause": typed,
            }
        pos += len(clause)
    if got[pos:].strip():
        return {
            "clause_index": len(clauses),
            "clause_count": len(clauses),
            "expected_clause": "",
            "submitted_clause": got[pos:].strip(),
        }
    # Same clauses, different spacing between them
    return {
        "clause_index": None,
        "clause_count": len(clauses),
        "expected_clause": "",
        "submitted_clause": "",
        "hint": "Clauses must be separated by exactly one space",
    }

"""
Impact Assessor: classify a proposed default change.

Pure function over version metadata: semver distance between the two
versions plus the breaking-change list and migration / training flags
attached to the target.  No writes; safe for UI previews.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

from template_governance.core.exceptions import ValidationError
from template_governance.services.version_registry import VersionRegistry, parse_semver

MAJOR_ROLLBACK_ESTIMATE = "15-30 minutes"
STANDARD_ROLLBACK_ESTIMATE = "5-10 minutes"

_DEFAULT_USER_IMPACT = {
    "major": "Significant changes to document layout; users should review generated documents",
    "minor": "Visible improvements to document appearance; no workflow changes",
    "patch": "Minimal impact expected",
}


@dataclass(frozen=True)
class ImpactAssessment:
    risk_level: str
    change_kind: str
    breaking_changes: list[str] = field(default_factory=list)
    user_impact_summary: str = ""
    rollback_time_estimate: str = STANDARD_ROLLBACK_ESTIMATE
    data_migration_required: bool = False
    user_training_required: bool = False
    rollback_safe: bool = True

    @property
    def is_high_risk(self) -> bool:
        return self.risk_level in ("high", "critical")

    def to_dict(self) -> dict:
        return asdict(self)


def classify_change(from_number: str, to_number: str, has_breaking_changes: bool = False) -> str:
    """Return ``major`` / ``minor`` / ``patch`` for a version pair."""
    old = parse_semver(from_number)
    new = parse_semver(to_number)
    if old[0] != new[0] or has_breaking_changes:
        return "major"
    if old[1] != new[1]:
        return "minor"
    return "patch"


def risk_for(change_kind: str, data_migration_required: bool) -> str:
    if change_kind == "major":
        return "critical" if data_migration_required else "high"
    if change_kind == "minor":
        return "medium"
    return "low"


def assess(category: str, from_version: str, to_version: str,
           registry: VersionRegistry | None = None) -> ImpactAssessment:
    """Assess moving ``category``'s default from ``from_version`` to ``to_version``."""
    registry = registry or VersionRegistry()
    current = registry.get_version(from_version)
    target = registry.get_version(to_version)
    for version in (current, target):
        if version.category != category:
            raise ValidationError(
                f"{version.version_id} is not a {category} template",
                details={"category": category, "version_id": version.version_id},
            )

    breaking = list(target.breaking_changes or [])
    kind = classify_change(current.version_number, target.version_number, bool(breaking))
    migration = bool(target.data_migration_required)
    training = bool(target.user_training_required)

    return ImpactAssessment(
        risk_level=risk_for(kind, migration),
        change_kind=kind,
        breaking_changes=breaking,
        user_impact_summary=target.user_impact or _DEFAULT_USER_IMPACT[kind],
        rollback_time_estimate=MAJOR_ROLLBACK_ESTIMATE if kind == "major" else STANDARD_ROLLBACK_ESTIMATE,
        data_migration_required=migration,
        user_training_required=training,
        rollback_safe=bool(target.rollback_safe) and bool(current.rollback_safe),
    )

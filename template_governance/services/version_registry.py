"""
Version Registry: template catalog, current-default pointers, history ledger.

The default pointer for a category is the one piece of shared mutable
state in the system.  It is only moved by:

    swap_default   compare-and-swap, used by the change orchestrator's confirm step
    force_default  unconditional write, used only for emergency rollback
    seed_default   first-time creation of the pointer for a category

Nothing here commits; callers own the transaction.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from template_governance.core.exceptions import ConflictError, NotFoundError, ValidationError
from template_governance.models import db
from template_governance.models.template import (
    ACCEPTANCE_CHECKLIST_KEYS,
    HISTORY_ACTIONS,
    TEMPLATE_CATEGORIES,
    VALIDATION_STATUSES,
    TemplateDefault,
    TemplateVersion,
    VersionHistoryEntry,
    make_version_id,
)

logger = logging.getLogger(__name__)

_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


def parse_semver(version_number: str) -> tuple[int, int, int]:
    """Parse ``MAJOR.MINOR.PATCH``; raises ValidationError otherwise."""
    match = _SEMVER_RE.match((version_number or "").strip())
    if not match:
        raise ValidationError(
            f"Invalid version number {version_number!r}; expected MAJOR.MINOR.PATCH",
            details={"version_number": version_number},
        )
    return tuple(int(part) for part in match.groups())


def validate_category(category: str) -> str:
    if category not in TEMPLATE_CATEGORIES:
        raise ValidationError(
            f"Unknown template category {category!r}",
            details={"category": f"must be one of {sorted(TEMPLATE_CATEGORIES)}"},
        )
    return category


class VersionRegistry:
    """Database-backed registry.  Subclass to plug in a different store."""

    # ── Catalog ───────────────────────────────────────────────────────────

    def register_version(self, category: str, version_number: str, *, created_by: str = "system",
                         **metadata) -> TemplateVersion:
        """Register an immutable template version.

        ``metadata`` keys map onto TemplateVersion columns (title,
        breaking_changes, acceptance_checklist, bundle_size_kb, …).
        """
        validate_category(category)
        version_number = (version_number or "").strip()
        parse_semver(version_number)
        version_id = make_version_id(category, version_number)
        if db.session.get(TemplateVersion, version_id) is not None:
            raise ConflictError("TemplateVersion", "version_id", version_id)

        checklist = metadata.pop("acceptance_checklist", None) or {}
        unknown = set(checklist) - set(ACCEPTANCE_CHECKLIST_KEYS)
        if unknown:
            raise ValidationError(
                "Unknown acceptance checklist items",
                details={"acceptance_checklist": sorted(unknown)},
            )
        status = metadata.pop("validation_status", "pending")
        if status not in VALIDATION_STATUSES:
            raise ValidationError(f"Invalid validation_status {status!r}")
        breaking = [str(b).strip() for b in (metadata.pop("breaking_changes", None) or []) if str(b).strip()]

        columns = set(TemplateVersion.__table__.columns.keys()) - {
            "version_id", "category", "version_number", "created_by", "created_at",
        }
        unknown_fields = [k for k in metadata if k not in columns]
        if unknown_fields:
            raise ValidationError("Unknown template version fields", details={"fields": unknown_fields})

        version = TemplateVersion(
            version_id=version_id,
            category=category,
            version_number=version_number,
            acceptance_checklist={k: bool(checklist.get(k, False)) for k in ACCEPTANCE_CHECKLIST_KEYS},
            validation_status=status,
            breaking_changes=breaking,
            created_by=created_by,
            **metadata,
        )
        db.session.add(version)
        try:
            db.session.flush()
        except IntegrityError as exc:
            db.session.rollback()
            raise ConflictError("TemplateVersion", "version_id", version_id) from exc

        logger.info(
            "Template version %s registered", version_id,
            extra={"category": category, "event_type": "template_version.registered"},
        )
        return version

    def get_version(self, version_id: str) -> TemplateVersion:
        version = db.session.get(TemplateVersion, version_id)
        if version is None:
            raise NotFoundError(resource="TemplateVersion", resource_id=version_id)
        return version

    def list_versions(self, category: str | None = None) -> list[TemplateVersion]:
        stmt = select(TemplateVersion)
        if category:
            stmt = stmt.where(TemplateVersion.category == category)
        stmt = stmt.order_by(TemplateVersion.category, TemplateVersion.created_at)
        return list(db.session.execute(stmt).scalars())

    # ── Default pointer ───────────────────────────────────────────────────

    def get_current_default(self, category: str) -> str | None:
        """Return the live default version id, read straight from the table."""
        return db.session.execute(
            select(TemplateDefault.version_id).where(TemplateDefault.category == category)
        ).scalar_one_or_none()

    def list_defaults(self) -> list[TemplateDefault]:
        return list(
            db.session.execute(select(TemplateDefault).order_by(TemplateDefault.category)).scalars()
        )

    def swap_default(self, category: str, from_version: str, to_version: str) -> bool:
        """Move the pointer only if it still equals ``from_version``.

        Single conditional UPDATE, so readers see either the old or the new
        value and never an absent pointer.  Returns False when the
        compare fails.
        """
        result = db.session.execute(
            update(TemplateDefault)
            .where(
                TemplateDefault.category == category,
                TemplateDefault.version_id == from_version,
            )
            .values(
                version_id=to_version,
                revision=TemplateDefault.revision + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="fetch")
        )
        swapped = result.rowcount == 1
        if not swapped:
            logger.warning(
                "Default swap rejected: %s is no longer %s", category, from_version,
                extra={"category": category, "event_type": "template_default.swap_rejected"},
            )
        return swapped

    def force_default(self, category: str, version_id: str) -> None:
        """Unconditionally point ``category`` at ``version_id`` (emergency rollback)."""
        result = db.session.execute(
            update(TemplateDefault)
            .where(TemplateDefault.category == category)
            .values(
                version_id=version_id,
                revision=TemplateDefault.revision + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise NotFoundError(resource="TemplateDefault", resource_id=category)
        logger.warning(
            "Default for %s forced to %s", category, version_id,
            extra={"category": category, "event_type": "template_default.forced"},
        )

    def seed_default(self, category: str, version_id: str, actor: str = "system") -> TemplateDefault | None:
        """Create the pointer for a category that has none yet.

        Writes a ``created`` ledger entry.  Returns None when the category
        is already seeded.
        """
        validate_category(category)
        if db.session.get(TemplateDefault, category) is not None:
            return None
        version = self.get_version(version_id)
        if version.category != category:
            raise ValidationError(f"{version_id} does not belong to category {category}")

        pointer = TemplateDefault(category=category, version_id=version_id)
        db.session.add(pointer)
        self.append_history(category, VersionHistoryEntry(
            action="created",
            from_version=None,
            to_version=version_id,
            change_reason="Initial default",
            impact_level="low",
            requested_by=actor,
            approved_by=[],
            rollback_safe=version.rollback_safe,
        ))
        return pointer

    # ── Ledger ────────────────────────────────────────────────────────────

    def append_history(self, category: str, entry: VersionHistoryEntry) -> VersionHistoryEntry:
        """Append ``entry`` to the category ledger with the next sequence number."""
        if entry.action not in HISTORY_ACTIONS:
            raise ValidationError(f"Invalid history action {entry.action!r}")
        last = db.session.execute(
            select(func.max(VersionHistoryEntry.sequence)).where(VersionHistoryEntry.category == category)
        ).scalar()
        entry.category = category
        entry.sequence = (last or 0) + 1
        db.session.add(entry)
        db.session.flush()
        return entry

    def get_history(self, category: str) -> list[VersionHistoryEntry]:
        stmt = (
            select(VersionHistoryEntry)
            .where(VersionHistoryEntry.category == category)
            .order_by(VersionHistoryEntry.sequence)
        )
        return list(db.session.execute(stmt).scalars())

    def was_previous_default(self, category: str, version_id: str) -> bool:
        """True if ``version_id`` has been the default of ``category`` before."""
        stmt = (
            select(func.count(VersionHistoryEntry.id))
            .where(
                VersionHistoryEntry.category == category,
                VersionHistoryEntry.to_version == version_id,
            )
        )
        return (db.session.execute(stmt).scalar() or 0) > 0


def seed_baseline_defaults(version_number: str = "1.0.0", actor: str = "system",
                           registry: VersionRegistry | None = None) -> list[str]:
    """Register ``{category}_v{version_number}`` and make it the default for
    every category that has no default yet.  Returns the seeded categories.
    """
    registry = registry or VersionRegistry()
    seeded = []
    for category in sorted(TEMPLATE_CATEGORIES):
        version_id = make_version_id(category, version_number)
        if db.session.get(TemplateVersion, version_id) is None:
            registry.register_version(
                category, version_number,
                created_by=actor,
                title=f"{category.title()} baseline",
                template_hash=f"baseline-{category}-{version_number}",
                validation_status="passed",
                acceptance_checklist={key: True for key in ACCEPTANCE_CHECKLIST_KEYS},
                accessibility_score=100,
                print_fidelity_score=100,
            )
        if registry.seed_default(category, version_id, actor=actor) is not None:
            seeded.append(category)
    return seeded

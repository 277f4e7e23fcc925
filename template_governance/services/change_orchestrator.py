"""
Change Orchestrator: lifecycle of a default-template change request.

    request_change ─▶ pending_approval ──approve (quorum + safe)──▶ pending_confirmation
                                                                        │
                                               confirm (exact text) ────┤
                                                                        ▼
                                                         deployed │ failed
    pending_approval │ pending_confirmation ──cancel──▶ cancelled

Only ``confirm`` moves the default pointer, through the registry's
compare-and-swap.  The swap is verified by re-reading the pointer; if the
read disagrees the pointer is forced back to the previous version, the
request fails and no ledger entry is written.  If that rollback cannot be
verified either, the emergency contact is paged before the error is
raised.

Every mutating operation runs under the category lock and commits exactly
once per outcome.  Notifications go out after the commit and are
best-effort.  Audit events are written before the commit, inside their
own savepoints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from template_governance.core.exceptions import (
    ConcurrentChangeConflict,
    ConfirmationTextMismatch,
    EmergencyRollbackFailed,
    InvalidRequestState,
    NotFoundError,
    SafetyCheckFailed,
    StaleDefaultConflict,
    SwapVerificationFailed,
    ValidationError,
)
from template_governance.models import db
from template_governance.models.change_request import (
    REQUEST_STATUSES,
    TERMINAL_STATUSES,
    ChangeRequest,
    validate_request_transition,
)
from template_governance.models.template import VersionHistoryEntry
from template_governance.services import approval_workflow
from template_governance.services.audit_logger import AuditLogger, get_audit_logger
from template_governance.services.category_lock import category_lock
from template_governance.services.confirmation_text import (
    build_clauses,
    confirmation_matches,
    first_mismatched_clause,
    generate_confirmation_text,
    join_clauses,
)
from template_governance.services.impact_assessor import assess
from template_governance.services.notification import NotificationService
from template_governance.services.stakeholder_directory import (
    ConfigStakeholderDirectory,
    StakeholderDirectory,
)
from template_governance.services.template_validation import (
    MetadataValidationService,
    TemplateValidationService,
    ValidationReport,
    run_safety_checks,
)
from template_governance.services.version_registry import VersionRegistry, validate_category

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


@dataclass
class ApprovalResult:
    quorum_reached: bool
    transitioned: bool
    status: str
    pending_roles: list[str] = field(default_factory=list)
    blocking_failures: list[dict] = field(default_factory=list)
    warnings: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "quorum_reached": self.quorum_reached,
            "transitioned": self.transitioned,
            "status": self.status,
            "pending_roles": self.pending_roles,
            "blocking_failures": self.blocking_failures,
            "warnings": self.warnings,
        }


class ChangeOrchestrator:
    """Coordinates registry, assessor, approvals, validation, audit and notifications.

    Every collaborator can be injected; the defaults read the Flask app
    config lazily, so one instance can live on ``app.extensions``.
    """

    def __init__(
        self,
        registry: VersionRegistry | None = None,
        validator: TemplateValidationService | None = None,
        directory: StakeholderDirectory | None = None,
        notifier=None,
        audit: AuditLogger | None = None,
        clock=None,
    ) -> None:
        self.registry = registry or VersionRegistry()
        self.validator = validator or MetadataValidationService()
        self.directory = directory or ConfigStakeholderDirectory()
        self.notifier = notifier or NotificationService
        self._audit = audit
        self.clock = clock or _utcnow

    @property
    def audit(self) -> AuditLogger:
        return self._audit or get_audit_logger()

    # ═════════════════════════════════════════════════════════════════════
    #  Operations
    # ═════════════════════════════════════════════════════════════════════

    def request_change(self, category: str, to_version: str, reason: str, requester: str,
                       from_version: str | None = None) -> ChangeRequest:
        """Open a change request for ``category``'s default template.

        ``from_version`` defaults to the live default; when given it must
        still be the live default.
        """
        validate_category(category)
        reason = (reason or "").strip()
        requester = (requester or "").strip()
        to_version = (to_version or "").strip()
        missing = [name for name, value in
                   (("reason", reason), ("requester", requester), ("new_version", to_version)) if not value]
        if missing:
            raise ValidationError("Missing required fields", details={f: "required" for f in missing})

        with category_lock(category):
            live = self.registry.get_current_default(category)
            if live is None:
                raise NotFoundError(resource="TemplateDefault", resource_id=category)
            if from_version is not None and from_version != live:
                raise StaleDefaultConflict(category, expected=from_version, actual=live)
            if to_version == live:
                raise ValidationError(f"{to_version} is already the default {category} template")

            active = self._active_request(category)
            if active is not None:
                raise ConcurrentChangeConflict(category, active.id)

            impact = assess(category, live, to_version, self.registry)
            now = self.clock()
            clauses = build_clauses(category, live, to_version, requester, impact, now.date())
            approvals = approval_workflow.build_approvals(impact.risk_level, self.directory)
            report = self._run_checks(category, to_version)

            req = ChangeRequest(
                category=category,
                from_version=live,
                to_version=to_version,
                active_category=category,
                change_reason=reason,
                requested_by=requester,
                requested_at=now,
                risk_level=impact.risk_level,
                change_kind=impact.change_kind,
                breaking_changes=list(impact.breaking_changes),
                user_impact_summary=impact.user_impact_summary,
                rollback_time_estimate=impact.rollback_time_estimate,
                data_migration_required=impact.data_migration_required,
                user_training_required=impact.user_training_required,
                rollback_safe=impact.rollback_safe,
                emergency_contact=self._emergency_contact(impact.risk_level),
                confirmation_text=join_clauses(clauses),
                confirmation_clauses=clauses,
                status="pending_approval",
                approvals=approvals,
            )
            self._store_report(req, report, now)
            db.session.add(req)
            try:
                db.session.flush()
            except IntegrityError as exc:
                # Another worker opened a request between our check and insert
                db.session.rollback()
                raise ConcurrentChangeConflict(category) from exc

            self.audit.log(
                "change_request.created",
                entity_type="change_request", entity_id=req.id,
                actor=requester, category=category,
                diff={
                    "from_version": live,
                    "to_version": to_version,
                    "risk_level": impact.risk_level,
                    "required_roles": [a.stakeholder_role for a in approvals],
                    "safety_checks_passed": report.passed,
                },
            )
            db.session.commit()

        logger.info(
            "Change request %s opened: %s %s → %s (%s risk)",
            req.id, category, live, to_version, impact.risk_level,
            extra={"category": category, "change_request_id": req.id,
                   "event_type": "change_request.created"},
        )
        self._notify(
            recipients=[a.stakeholder_email for a in req.approvals],
            title=f"Approval needed: {category} template {live} → {to_version}",
            message=(
                f"{requester} requested a {impact.risk_level}-risk change.\n"
                f"Reason: {reason}\nImpact: {impact.user_impact_summary}"
            ),
            category="approval", severity="warning" if impact.is_high_risk else "info",
            entity_type="change_request", entity_id=req.id,
        )
        return req

    def approve(self, request_id: str, role: str, identity: str,
                notes: str | None = None, conditions: list | None = None) -> ApprovalResult:
        """Record one stakeholder approval and advance the request at quorum."""
        req = self.get_request(request_id)
        with category_lock(req.category):
            db.session.refresh(req)
            if req.status != "pending_approval":
                raise InvalidRequestState(req.id, req.status, "approve")
            approval = approval_workflow.find_approval(req.approvals, role, identity)
            approval_workflow.record_approval(approval, notes, conditions, now=self.clock())

            quorum = approval_workflow.quorum_reached(req.approvals)
            self.audit.log(
                "change_request.approved",
                entity_type="change_request", entity_id=req.id,
                actor=approval.stakeholder_email, category=req.category,
                diff={
                    "role": role,
                    "notes": notes,
                    "conditions": approval.conditions,
                    "quorum_reached": quorum,
                },
            )
            transitioned = False
            if quorum and req.safety_checks_passed:
                self._transition(req, "pending_confirmation")
                transitioned = True
                self.audit.log(
                    "change_request.ready_for_confirmation",
                    entity_type="change_request", entity_id=req.id,
                    actor="system", category=req.category,
                    diff={"status": {"old": "pending_approval", "new": "pending_confirmation"},
                          "warnings": [w["check_name"] for w in req.safety_warnings]},
                )
            elif quorum:
                self.audit.log(
                    "change_request.quorum_blocked",
                    entity_type="change_request", entity_id=req.id,
                    actor="system", category=req.category,
                    diff={"blocking_failures": [f["check_name"] for f in req.blocking_failures]},
                )
            db.session.commit()
            result = self._approval_result(req, quorum, transitioned)

        if transitioned:
            self._notify_ready_for_confirmation(req)
        elif quorum:
            self._notify(
                recipients=[req.requested_by],
                title=f"Change {req.id[:8]} approved but blocked by safety checks",
                message="Blocking failures:\n" + _format_checks(req.blocking_failures),
                category="safety", severity="error",
                entity_type="change_request", entity_id=req.id,
            )
        return result

    def confirm(self, request_id: str, confirmation_text: str, confirmer: str) -> VersionHistoryEntry:
        """Deploy the change.  Returns the new ledger entry."""
        confirmer = (confirmer or "").strip()
        if not confirmer:
            raise ValidationError("Missing required fields", details={"confirmed_by": "required"})

        req = self.get_request(request_id)
        with category_lock(req.category):
            db.session.refresh(req)
            if req.status != "pending_confirmation":
                raise InvalidRequestState(req.id, req.status, "confirm")

            # Step 1: exact text
            if not confirmation_matches(confirmation_text, req.confirmation_text):
                self._reject_confirmation(req, confirmation_text, confirmer)

            # Step 2: fresh safety run
            now = self.clock()
            report = self._run_checks(req.category, req.to_version)
            self._store_report(req, report, now)
            if not report.passed:
                failures = [c.to_dict() for c in report.blocking_failures]
                self.audit.log(
                    "change_request.safety_check_failed",
                    entity_type="change_request", entity_id=req.id,
                    actor=confirmer, category=req.category,
                    diff={"blocking_failures": [f["check_name"] for f in failures], "stage": "confirm"},
                )
                db.session.commit()
                raise SafetyCheckFailed(failures)

            # Step 3: ledger entry, not yet persisted
            entry = VersionHistoryEntry(
                action="rollback" if self.registry.was_previous_default(req.category, req.to_version)
                else "set_default",
                from_version=req.from_version,
                to_version=req.to_version,
                request_id=req.id,
                change_reason=req.change_reason,
                impact_level=req.risk_level,
                breaking_changes=list(req.breaking_changes or []),
                requested_by=req.requested_by,
                approved_by=approval_workflow.approver_identities(req.approvals),
                confirmed_by=confirmer,
                confirmation_text=confirmation_text.strip(),
                requested_at=req.requested_at,
                confirmed_at=now,
                rollback_safe=req.rollback_safe,
                emergency_contact=req.emergency_contact,
                safety_checks_passed=report.passed,
                acceptance_checklist_passed=_check_passed(report, "acceptance_checklist"),
                safety_results=[c.to_dict() for c in report.checks],
            )

            # Steps 4-5: compare-and-swap, then verify by re-reading
            swapped = False
            failure = None
            try:
                swapped = self.registry.swap_default(req.category, req.from_version, req.to_version)
                if not swapped:
                    failure = f"Default {req.category} template is no longer {req.from_version}; swap rejected"
                else:
                    live = self.registry.get_current_default(req.category)
                    if live != req.to_version:
                        failure = f"Post-swap verification read {live!r}, expected {req.to_version!r}"
            except SQLAlchemyError as exc:
                logger.exception("Default swap for %s raised", req.category)
                db.session.rollback()
                swapped = False
                failure = f"Default swap failed: {exc.__class__.__name__}"
                req = self.get_request(request_id)
            except Exception as exc:  # registry backends outside the database
                logger.exception("Default swap for %s raised", req.category)
                failure = f"Default swap failed: {exc.__class__.__name__}: {exc}"
                if not swapped:
                    swapped = self._swap_landed(req.category, req.to_version)
            if failure:
                self._fail_deployment(req, failure, rollback_needed=swapped, actor=confirmer)

            # Step 6: ledger, terminal state
            entry.deployed_at = self.clock()
            self.registry.append_history(req.category, entry)
            self._transition(req, "deployed")
            req.confirmed_by = confirmer
            req.confirmed_at = now
            req.deployed_at = entry.deployed_at
            self.audit.log(
                "change_request.deployed",
                entity_type="change_request", entity_id=req.id,
                actor=confirmer, category=req.category,
                diff={
                    "from_version": req.from_version,
                    "to_version": req.to_version,
                    "history_sequence": entry.sequence,
                    "action": entry.action,
                },
            )
            db.session.commit()

        logger.info(
            "Default %s template is now %s (request %s)", req.category, req.to_version, req.id,
            extra={"category": req.category, "change_request_id": req.id,
                   "event_type": "change_request.deployed"},
        )
        self._notify(
            recipients=[req.requested_by] + approval_workflow.approver_identities(req.approvals),
            title=f"Deployed: {req.category} template {req.to_version}",
            message=f"Confirmed by {confirmer}. Rollback to {req.from_version} takes "
                    f"approximately {req.rollback_time_estimate}.",
            category="deployment", severity="success",
            entity_type="change_request", entity_id=req.id,
        )
        return entry

    def cancel(self, request_id: str, reason: str, actor: str) -> ChangeRequest:
        reason = (reason or "").strip()
        actor = (actor or "").strip()
        missing = [name for name, value in (("reason", reason), ("actor", actor)) if not value]
        if missing:
            raise ValidationError("Missing required fields", details={f: "required" for f in missing})

        req = self.get_request(request_id)
        with category_lock(req.category):
            db.session.refresh(req)
            old_status = req.status
            if not validate_request_transition(old_status, "cancelled"):
                raise InvalidRequestState(req.id, old_status, "cancel")
            self._transition(req, "cancelled")
            req.cancelled_by = actor
            req.cancelled_reason = reason
            self.audit.log(
                "change_request.cancelled",
                entity_type="change_request", entity_id=req.id,
                actor=actor, category=req.category,
                diff={"status": {"old": old_status, "new": "cancelled"}, "reason": reason},
            )
            db.session.commit()

        logger.info(
            "Change request %s cancelled by %s", req.id, actor,
            extra={"category": req.category, "change_request_id": req.id,
                   "event_type": "change_request.cancelled"},
        )
        self._notify(
            recipients=[req.requested_by] + [a.stakeholder_email for a in req.approvals],
            title=f"Cancelled: {req.category} template change to {req.to_version}",
            message=f"Cancelled by {actor}: {reason}",
            category="approval", severity="info",
            entity_type="change_request", entity_id=req.id,
        )
        return req

    def recheck_safety(self, request_id: str, actor: str) -> ApprovalResult:
        """Re-run safety checks for a request held back at quorum.

        Advances to ``pending_confirmation`` when quorum is met and the
        checks now pass.
        """
        req = self.get_request(request_id)
        with category_lock(req.category):
            db.session.refresh(req)
            if req.status != "pending_approval":
                raise InvalidRequestState(req.id, req.status, "recheck safety for")
            report = self._run_checks(req.category, req.to_version)
            self._store_report(req, report, self.clock())
            quorum = approval_workflow.quorum_reached(req.approvals)
            transitioned = quorum and report.passed
            if transitioned:
                self._transition(req, "pending_confirmation")
            self.audit.log(
                "change_request.safety_rechecked",
                entity_type="change_request", entity_id=req.id,
                actor=actor or "system", category=req.category,
                diff={"passed": report.passed, "quorum_reached": quorum, "transitioned": transitioned},
            )
            db.session.commit()
            result = self._approval_result(req, quorum, transitioned)

        if transitioned:
            self._notify_ready_for_confirmation(req)
        return result

    # ── Reads ─────────────────────────────────────────────────────────────

    def get_request(self, request_id: str) -> ChangeRequest:
        req = db.session.get(ChangeRequest, request_id)
        if req is None:
            raise NotFoundError(resource="ChangeRequest", resource_id=request_id)
        return req

    def get_active_requests(self, category: str | None = None) -> list[ChangeRequest]:
        stmt = select(ChangeRequest).where(ChangeRequest.status.not_in(sorted(TERMINAL_STATUSES)))
        if category:
            stmt = stmt.where(ChangeRequest.category == category)
        return list(db.session.execute(stmt.order_by(ChangeRequest.requested_at)).scalars())

    def list_requests(self, category: str | None = None, status: str | None = None) -> list[ChangeRequest]:
        stmt = select(ChangeRequest)
        if category:
            stmt = stmt.where(ChangeRequest.category == category)
        if status:
            if status not in REQUEST_STATUSES:
                raise ValidationError(f"Unknown status {status!r}")
            stmt = stmt.where(ChangeRequest.status == status)
        return list(db.session.execute(stmt.order_by(ChangeRequest.requested_at.desc())).scalars())

    def preview_impact(self, category: str, to_version: str, requester: str = "you") -> dict:
        """Impact, approvers and confirmation text a request would get today. No writes."""
        validate_category(category)
        live = self.registry.get_current_default(category)
        if live is None:
            raise NotFoundError(resource="TemplateDefault", resource_id=category)
        impact = assess(category, live, to_version, self.registry)
        return {
            "category": category,
            "from_version": live,
            "to_version": to_version,
            "impact": impact.to_dict(),
            "required_roles": approval_workflow.required_roles(impact.risk_level),
            "confirmation_text_preview": generate_confirmation_text(
                category, live, to_version, "", requester, impact, self.clock().date(),
            ),
        }

    # ═════════════════════════════════════════════════════════════════════
    #  Internals
    # ═════════════════════════════════════════════════════════════════════

    def _active_request(self, category: str) -> ChangeRequest | None:
        return db.session.execute(
            select(ChangeRequest).where(ChangeRequest.active_category == category)
        ).scalar_one_or_none()

    def _transition(self, req: ChangeRequest, new_status: str) -> None:
        if not validate_request_transition(req.status, new_status):
            raise InvalidRequestState(req.id, req.status, f"move to {new_status}")
        req.status = new_status
        if new_status in TERMINAL_STATUSES:
            req.active_category = None
            req.closed_at = self.clock()

    def _run_checks(self, category: str, version_id: str) -> ValidationReport:
        attempts = current_app.config.get("VALIDATION_RETRY_ATTEMPTS", 3)
        return run_safety_checks(self.validator, category, version_id, attempts=attempts)

    @staticmethod
    def _store_report(req: ChangeRequest, report: ValidationReport, checked_at: datetime) -> None:
        req.safety_results = [c.to_dict() for c in report.checks]
        req.safety_checks_passed = report.passed
        req.safety_checked_at = checked_at

    @staticmethod
    def _emergency_contact(risk_level: str) -> str:
        contacts = current_app.config.get("EMERGENCY_CONTACTS", {})
        if risk_level == "critical" and contacts.get("critical"):
            return contacts["critical"]
        return contacts.get("default", "")

    @staticmethod
    def _approval_result(req: ChangeRequest, quorum: bool, transitioned: bool) -> ApprovalResult:
        return ApprovalResult(
            quorum_reached=quorum,
            transitioned=transitioned,
            status=req.status,
            pending_roles=approval_workflow.pending_roles(req.approvals),
            blocking_failures=req.blocking_failures,
            warnings=req.safety_warnings,
        )

    def _reject_confirmation(self, req: ChangeRequest, submitted: str | None, confirmer: str):
        """Record a mismatch, commit, raise.  The request stays pending_confirmation."""
        req.mismatch_count = (req.mismatch_count or 0) + 1
        clause = first_mismatched_clause(submitted, req.confirmation_clauses or [req.confirmation_text])
        logger.warning(
            "Confirmation text mismatch #%d on request %s by %s",
            req.mismatch_count, req.id, confirmer,
            extra={"category": req.category, "change_request_id": req.id,
                   "event_type": "change_request.confirmation_mismatch",
                   "security_code": "confirmation_mismatch"},
        )
        self.audit.log(
            "change_request.confirmation_mismatch",
            entity_type="change_request", entity_id=req.id,
            actor=confirmer, category=req.category,
            diff={"mismatch_count": req.mismatch_count, "clause_index": clause["clause_index"]},
        )
        db.session.commit()
        raise ConfirmationTextMismatch(
            "Confirmation text does not match the required text",
            details={
                "request_id": req.id,
                "expected_text": req.confirmation_text,
                "mismatch_count": req.mismatch_count,
                **clause,
            },
        )

    def _fail_deployment(self, req: ChangeRequest, reason: str, *, rollback_needed: bool, actor: str):
        """Roll the pointer back if it moved, fail the request, raise."""
        category, previous = req.category, req.from_version
        if rollback_needed:
            restored, rollback_error = None, None
            try:
                self.registry.force_default(category, previous)
                restored = self.registry.get_current_default(category)
            except Exception as exc:  # any registry fault makes the state ambiguous
                rollback_error = exc
                logger.exception("Emergency rollback of %s raised", category)
            if restored != previous:
                self._fail_emergency(req.id, reason, restored, rollback_error, actor)
            current = previous
        else:
            # The swap never wrote; whatever moved the pointer is left alone
            current = self.registry.get_current_default(category)

        self._transition(req, "failed")
        req.failure_reason = reason
        self.audit.log(
            "change_request.failed",
            entity_type="change_request", entity_id=req.id,
            actor=actor, category=category,
            diff={"reason": reason, "rolled_back": rollback_needed, "current_default": current},
        )
        db.session.commit()
        logger.error(
            "Deployment of %s failed; default %s is %s: %s", req.to_version, category, current, reason,
            extra={"category": category, "change_request_id": req.id,
                   "event_type": "change_request.failed"},
        )
        self._notify(
            recipients=[req.requested_by, req.emergency_contact],
            title=f"ACTION REQUIRED: {category} template deployment failed",
            message=f"{reason}\nThe default is {current}. Request {req.id} is closed as failed.",
            category="deployment", severity="error",
            entity_type="change_request", entity_id=req.id,
        )
        raise SwapVerificationFailed(
            reason,
            details={"request_id": req.id, "category": category, "current_default": current},
        )

    def _swap_landed(self, category: str, to_version: str) -> bool:
        """After a swap raised: did the write reach the store anyway?

        An unreadable pointer counts as moved, so it gets forced back.
        """
        try:
            return self.registry.get_current_default(category) == to_version
        except Exception:
            logger.exception("Default for %s unreadable after a failed swap", category)
            return True

    def _fail_emergency(self, request_id, reason, observed, rollback_error, actor):
        """The rollback could not be verified: record, page a human, raise."""
        # Discard whatever this transaction did to the pointer before recording the failure
        db.session.rollback()
        req = self.get_request(request_id)
        category = req.category
        detail = (
            f"{reason}. Emergency rollback to {req.from_version} failed"
            + (f": {rollback_error}" if rollback_error else f"; default reads {observed!r}")
        )
        if validate_request_transition(req.status, "failed"):
            self._transition(req, "failed")
        req.failure_reason = detail
        self.audit.log(
            "change_request.emergency_rollback_failed",
            entity_type="change_request", entity_id=req.id,
            actor=actor, category=category,
            diff={"reason": reason, "observed_default": observed, "expected_default": req.from_version},
        )
        db.session.commit()
        try:
            self.notifier.escalate_emergency(
                contact=req.emergency_contact,
                title=f"EMERGENCY: {category} default template state is ambiguous",
                message=f"{detail}\nManual intervention required for request {req.id}.",
                entity_type="change_request", entity_id=req.id,
            )
        except Exception:
            logger.critical(
                "Escalation for request %s could not be delivered", req.id, exc_info=True,
                extra={"category": category, "security_code": "emergency_rollback_failed"},
            )
        raise EmergencyRollbackFailed(
            detail,
            details={
                "request_id": req.id,
                "category": category,
                "expected_default": req.from_version,
                "observed_default": observed,
                "emergency_contact": req.emergency_contact,
            },
        )

    def _notify_ready_for_confirmation(self, req: ChangeRequest) -> None:
        warnings = req.safety_warnings
        message = "All required approvals received. Type exactly:\n\n" + req.confirmation_text
        if warnings:
            message += "\n\nWarnings to review before confirming:\n" + _format_checks(warnings)
        self._notify(
            recipients=[req.requested_by],
            title=f"Ready to confirm: {req.category} template {req.to_version}",
            message=message,
            category="confirmation", severity="warning" if warnings else "info",
            entity_type="change_request", entity_id=req.id,
        )

    def _notify(self, **kwargs) -> None:
        try:
            self.notifier.send(**kwargs)
        except Exception:
            logger.exception("Notification '%s' failed", kwargs.get("title"))


def _check_passed(report: ValidationReport, name: str) -> bool:
    return all(c.passed for c in report.checks if c.check_name == name)


def _format_checks(checks: list[dict]) -> str:
    return "\n".join(f"- {c['check_name']}: {c.get('error_message') or 'failed'}" for c in checks)


def get_orchestrator() -> ChangeOrchestrator:
    """The app's orchestrator (``app.extensions["change_orchestrator"]``)."""
    orchestrator = current_app.extensions.get("change_orchestrator")
    if orchestrator is None:
        orchestrator = current_app.extensions["change_orchestrator"] = ChangeOrchestrator()
    return orchestrator

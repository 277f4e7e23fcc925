"""
Template validation: automated safety checks for a template version.

``TemplateValidationService.validate(category, version_id)`` returns a
ValidationReport.  The change orchestrator calls it when a request is
opened and again, fresh, immediately before the default is swapped.

The default implementation derives the checks from the metadata the build
pipeline records on TemplateVersion (compilation status, acceptance
checklist, bundle size, render time, accessibility and print scores).

Severity:
    blocking  a failure stops approval → confirmation and the deploy itself
    warning   recorded and shown to approvers / the confirmer, never blocks
    info      recorded only
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field

from flask import current_app

from template_governance.core.exceptions import NotFoundError, ValidationServiceUnavailable
from template_governance.models import db
from template_governance.models.template import ACCEPTANCE_CHECKLIST_KEYS, TemplateVersion

logger = logging.getLogger(__name__)

SEVERITIES = ("blocking", "warning", "info")


@dataclass
class SafetyCheckResult:
    check_name: str
    severity: str
    passed: bool
    check_type: str = "automated"
    error_message: str | None = None
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ValidationReport:
    passed: bool
    checks: list[SafetyCheckResult] = field(default_factory=list)
    score: int = 0

    @property
    def blocking_failures(self) -> list[SafetyCheckResult]:
        return [c for c in self.checks if c.severity == "blocking" and not c.passed]

    @property
    def warnings(self) -> list[SafetyCheckResult]:
        return [c for c in self.checks if c.severity == "warning" and not c.passed]

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "score": self.score,
            "checks": [c.to_dict() for c in self.checks],
        }

    @classmethod
    def from_checks(cls, checks: list[SafetyCheckResult]) -> "ValidationReport":
        passed = not any(c.severity == "blocking" and not c.passed for c in checks)
        score = round(100 * sum(1 for c in checks if c.passed) / len(checks)) if checks else 0
        return cls(passed=passed, checks=checks, score=score)


class TemplateValidationService:
    """Interface for the validation backend."""

    def validate(self, category: str, version_id: str) -> ValidationReport:
        raise NotImplementedError


class MetadataValidationService(TemplateValidationService):
    """Checks derived from the build metadata stored on TemplateVersion."""

    def __init__(self, thresholds: dict | None = None) -> None:
        self._thresholds = thresholds

    def _limit(self, key: str):
        if self._thresholds and key in self._thresholds:
            return self._thresholds[key]
        return current_app.config[key]

    def validate(self, category: str, version_id: str) -> ValidationReport:
        version = db.session.get(TemplateVersion, version_id)
        if version is None:
            raise NotFoundError(resource="TemplateVersion", resource_id=version_id)

        checks = [
            _timed("template_compilation", "blocking", self._compilation, version),
            _timed("acceptance_checklist", "blocking", self._checklist, version),
            _timed("security_scan", "blocking", self._security, version),
            _timed("performance_budget", "warning", self._performance, version),
            _timed("accessibility_score", "warning", self._accessibility, version),
            _timed("print_fidelity", "info", self._print_fidelity, version),
        ]
        # Over the hard budget the performance check becomes blocking
        for check in checks:
            if check.check_name == "performance_budget" and (check.error_message or "").startswith("Over hard"):
                check.severity = "blocking"
        return ValidationReport.from_checks(checks)

    # ── Individual checks: return None on pass, else an error message ─────

    @staticmethod
    def _compilation(version):
        if version.validation_status != "passed":
            return f"Template build status is {version.validation_status!r}"
        if not version.template_hash:
            return "Template hash missing; artifact was not built"
        return None

    @staticmethod
    def _checklist(version):
        checklist = version.acceptance_checklist or {}
        missing = [k for k in ACCEPTANCE_CHECKLIST_KEYS if not checklist.get(k)]
        if missing:
            return f"Acceptance checklist incomplete: {', '.join(missing)}"
        return None

    @staticmethod
    def _security(version):
        if not (version.acceptance_checklist or {}).get("no_dynamic_js"):
            return "Template may execute dynamic JavaScript"
        return None

    def _performance(self, version):
        problems, hard = [], False
        if version.bundle_size_kb is not None:
            if version.bundle_size_kb > self._limit("BUNDLE_SIZE_FAIL_KB"):
                hard = True
                problems.append(f"bundle {version.bundle_size_kb:.0f}KB > {self._limit('BUNDLE_SIZE_FAIL_KB')}KB")
            elif version.bundle_size_kb > self._limit("BUNDLE_SIZE_WARN_KB"):
                problems.append(f"bundle {version.bundle_size_kb:.0f}KB > {self._limit('BUNDLE_SIZE_WARN_KB')}KB")
        if version.render_time_ms is not None:
            if version.render_time_ms > self._limit("RENDER_TIME_FAIL_MS"):
                hard = True
                problems.append(f"render {version.render_time_ms:.0f}ms > {self._limit('RENDER_TIME_FAIL_MS')}ms")
            elif version.render_time_ms > self._limit("RENDER_TIME_WARN_MS"):
                problems.append(f"render {version.render_time_ms:.0f}ms > {self._limit('RENDER_TIME_WARN_MS')}ms")
        if not problems:
            return None
        prefix = "Over hard limit" if hard else "Over budget"
        return f"{prefix}: {'; '.join(problems)}"

    def _accessibility(self, version):
        minimum = self._limit("MIN_ACCESSIBILITY_SCORE")
        if version.accessibility_score is None:
            return "Accessibility score not reported"
        if version.accessibility_score < minimum:
            return f"Accessibility score {version.accessibility_score} < {minimum}"
        return None

    def _print_fidelity(self, version):
        minimum = self._limit("MIN_PRINT_FIDELITY_SCORE")
        if version.print_fidelity_score is not None and version.print_fidelity_score < minimum:
            return f"Print fidelity score {version.print_fidelity_score} < {minimum}"
        return None


def _timed(name, severity, check, version) -> SafetyCheckResult:
    start = time.perf_counter()
    error = check(version)
    return SafetyCheckResult(
        check_name=name,
        severity=severity,
        passed=error is None,
        error_message=error,
        execution_time_ms=round((time.perf_counter() - start) * 1000, 3),
    )


def run_safety_checks(service: TemplateValidationService, category: str, version_id: str,
                      attempts: int = 3) -> ValidationReport:
    """Call ``service.validate`` with retries on transient unavailability.

    When every attempt fails the result is a single failing blocking
    ``validation_service`` check: an unreachable validator never lets a
    change through.
    """
    last_error = None
    for attempt in range(1, max(attempts, 1) + 1):
        try:
            return service.validate(category, version_id)
        except ValidationServiceUnavailable as exc:
            last_error = exc
            logger.warning(
                "Template validation unavailable (attempt %d/%d): %s", attempt, attempts, exc,
                extra={"category": category, "event_type": "validation.retry"},
            )
    logger.error(
        "Template validation gave up after %d attempts for %s", attempts, version_id,
        extra={"category": category, "event_type": "validation.unavailable"},
    )
    return ValidationReport.from_checks([
        SafetyCheckResult(
            check_name="validation_service",
            severity="blocking",
            passed=False,
            error_message=f"Validation service unavailable: {last_error}",
        )
    ])

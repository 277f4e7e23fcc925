"""
Shared pytest fixtures for the template governance test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - seeded: baseline invoice/estimate/receipt v1.0.0 set as default
    - make_version: factory that registers a template version
    - orchestrator: ChangeOrchestrator wired to in-memory collaborators
"""

from datetime import datetime, timezone

import pytest

from template_governance import create_app
from template_governance.core.exceptions import ValidationServiceUnavailable
from template_governance.models import db as _db
from template_governance.models.template import ACCEPTANCE_CHECKLIST_KEYS
from template_governance.services.audit_logger import AuditLogger
from template_governance.services.change_orchestrator import ChangeOrchestrator
from template_governance.services.stakeholder_directory import Stakeholder, StakeholderDirectory
from template_governance.services.template_validation import (
    SafetyCheckResult,
    TemplateValidationService,
    ValidationReport,
)
from template_governance.services.version_registry import VersionRegistry, seed_baseline_defaults

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)

STAKEHOLDERS = {
    "technical_lead": ("Tess Lead", "tess@example.com"),
    "design_lead": ("Dana Design", "dana@example.com"),
    "product_owner": ("Pat Owner", "pat@example.com"),
    "business_owner": ("Bo Business", "bo@example.com"),
}

GOOD_METADATA = {
    "validation_status": "passed",
    "template_hash": "sha256:9f2c",
    "acceptance_checklist": {key: True for key in ACCEPTANCE_CHECKLIST_KEYS},
    "bundle_size_kb": 42.0,
    "render_time_ms": 120.0,
    "accessibility_score": 97,
    "print_fidelity_score": 99,
}


# ── In-memory collaborators ──────────────────────────────────────────────


class FixedDirectory(StakeholderDirectory):
    def resolve(self, role):
        name, email = STAKEHOLDERS[role]
        return Stakeholder(role=role, name=name, email=email)


class ScriptedValidator(TemplateValidationService):
    """All checks pass unless a failure was scripted for the version."""

    def __init__(self):
        self.failures = {}
        self.unavailable = 0
        self.calls = []

    def fail(self, version_id, check_name="security_scan", severity="blocking",
             message="Template may execute dynamic JavaScript"):
        self.failures.setdefault(version_id, []).append(
            SafetyCheckResult(check_name=check_name, severity=severity, passed=False, error_message=message)
        )

    def clear(self, version_id):
        self.failures.pop(version_id, None)

    def validate(self, category, version_id):
        self.calls.append(version_id)
        if self.unavailable:
            self.unavailable -= 1
            raise ValidationServiceUnavailable("validator timed out")
        failed = {c.check_name for c in self.failures.get(version_id, [])}
        checks = [
            SafetyCheckResult(check_name=name, severity="blocking", passed=True)
            for name in ("template_compilation", "acceptance_checklist", "security_scan")
            if name not in failed
        ]
        checks.extend(self.failures.get(version_id, []))
        return ValidationReport.from_checks(checks)


class RecordingNotifier:
    def __init__(self):
        self.sent = []
        self.escalations = []

    def send(self, **kwargs):
        self.sent.append(kwargs)
        return len(kwargs.get("recipients") or [])

    def escalate_emergency(self, **kwargs):
        self.escalations.append(kwargs)
        return 1

    def titles(self):
        return [n["title"] for n in self.sent]


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Governance fixtures ──────────────────────────────────────────────────


@pytest.fixture()
def registry():
    return VersionRegistry()


@pytest.fixture()
def seeded(registry):
    """invoice/estimate/receipt v1.0.0 registered and set as default."""
    seed_baseline_defaults("1.0.0", registry=registry)
    _db.session.commit()
    return registry


@pytest.fixture()
def make_version(registry):
    """Register a version that passes every metadata check; overrides win."""

    def _make(category, version_number, **overrides):
        metadata = dict(GOOD_METADATA)
        metadata.update(overrides)
        version = registry.register_version(category, version_number, created_by="build-bot", **metadata)
        _db.session.commit()
        return version

    return _make


@pytest.fixture()
def validator():
    return ScriptedValidator()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def audit():
    return AuditLogger(attempts=2)


@pytest.fixture()
def stakeholders():
    """role -> approver email used by the fixed directory."""
    return {role: email for role, (_name, email) in STAKEHOLDERS.items()}


@pytest.fixture()
def build_orchestrator(seeded, validator, notifier, audit):
    """Factory; pass ``registry=`` to swap in a faulty registry."""

    def _build(registry=None):
        return ChangeOrchestrator(
            registry=registry or seeded,
            validator=validator,
            directory=FixedDirectory(),
            notifier=notifier,
            audit=audit,
            clock=lambda: FIXED_NOW,
        )

    return _build


@pytest.fixture()
def orchestrator(build_orchestrator):
    return build_orchestrator()

"""
Approval workflow and stakeholder directory tests.

Tests cover:
  - risk level → required roles matrix
  - role resolution through the configured directory
  - approvals in any order; quorum is a set check
  - duplicate approval and unknown approver are rejected
"""

from datetime import datetime, timezone

import pytest

from template_governance.core.exceptions import AlreadyApproved, UnknownApprover, ValidationError
from template_governance.services import approval_workflow as wf
from template_governance.services.stakeholder_directory import ConfigStakeholderDirectory, Stakeholder

pytestmark = pytest.mark.unit


class _Directory:
    def resolve(self, role):
        return Stakeholder(role=role, name=role.title(), email=f"{role.replace('_', '-')}@example.com")


def _approvals(risk):
    return wf.build_approvals(risk, _Directory())


class TestMatrix:
    @pytest.mark.parametrize("risk, count", [("low", 1), ("medium", 2), ("high", 3), ("critical", 4)])
    def test_required_role_count(self, risk, count):
        assert len(wf.required_roles(risk)) == count

    def test_roles_are_cumulative(self):
        assert wf.required_roles("critical")[:3] == wf.required_roles("high")

    def test_unknown_risk(self):
        with pytest.raises(ValidationError):
            wf.required_roles("extreme")

    def test_build_approvals(self):
        approvals = _approvals("medium")
        assert [a.stakeholder_role for a in approvals] == ["technical_lead", "design_lead"]
        assert all(a.required and not a.approved for a in approvals)
        assert approvals[1].stakeholder_email == "design-lead@example.com"


class TestQuorum:
    def test_any_order(self):
        approvals = _approvals("high")
        for role in ("product_owner", "technical_lead"):
            approval = wf.find_approval(approvals, role, f"{role.replace('_', '-')}@example.com")
            wf.record_approval(approval)
            assert wf.quorum_reached(approvals) is False
        wf.record_approval(wf.find_approval(approvals, "design_lead", "design-lead@example.com"))
        assert wf.quorum_reached(approvals) is True
        assert wf.pending_roles(approvals) == []

    @pytest.mark.parametrize("risk", ["low", "medium", "high", "critical"])
    def test_partial_sets_never_reach_quorum(self, risk):
        approvals = _approvals(risk)
        for approval in approvals[:-1]:
            wf.record_approval(approval)
            assert wf.quorum_reached(approvals) is False
        wf.record_approval(approvals[-1])
        assert wf.quorum_reached(approvals) is True

    def test_empty_list_is_not_quorum(self):
        assert wf.quorum_reached([]) is False

    def test_identity_match_is_case_insensitive(self):
        approvals = _approvals("low")
        assert wf.find_approval(approvals, "technical_lead", " Technical-Lead@Example.com ") is approvals[0]

    def test_record_captures_notes_and_conditions(self):
        approval = _approvals("low")[0]
        wf.record_approval(approval, notes="LGTM", conditions=["ship after month-end close"])
        assert approval.approved_at is not None
        assert approval.conditions == ["ship after month-end close"]
        assert wf.approver_identities([approval]) == ["technical-lead@example.com"]

    def test_record_uses_supplied_time(self):
        approval = _approvals("low")[0]
        at = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)
        wf.record_approval(approval, now=at)
        assert approval.approved_at == at


class TestRejections:
    def test_wrong_identity(self):
        with pytest.raises(UnknownApprover):
            wf.find_approval(_approvals("low"), "technical_lead", "mallory@example.com")

    def test_role_not_required(self):
        with pytest.raises(UnknownApprover):
            wf.find_approval(_approvals("low"), "design_lead", "design-lead@example.com")

    def test_duplicate_approval(self):
        approval = _approvals("low")[0]
        wf.record_approval(approval)
        with pytest.raises(AlreadyApproved):
            wf.record_approval(approval)


class TestConfigDirectory:
    def test_resolves_from_app_config(self):
        person = ConfigStakeholderDirectory().resolve("product_owner")
        assert person.email == "product-owner@example.com"

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            ConfigStakeholderDirectory({}).resolve("technical_lead")

    def test_invalid_email(self):
        directory = ConfigStakeholderDirectory({"technical_lead": {"name": "T", "email": "not-an-email"}})
        with pytest.raises(ValidationError):
            directory.resolve("technical_lead")

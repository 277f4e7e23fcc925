"""
Impact assessor unit tests: change classification and risk derivation.
"""

import pytest

from template_governance.core.exceptions import ValidationError
from template_governance.services.impact_assessor import (
    MAJOR_ROLLBACK_ESTIMATE,
    STANDARD_ROLLBACK_ESTIMATE,
    assess,
    classify_change,
    risk_for,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("old, new, breaking, kind", [
    ("1.0.0", "2.0.0", False, "major"),
    ("1.0.0", "1.1.0", False, "minor"),
    ("1.0.0", "1.0.1", False, "patch"),
    ("1.0.0", "1.0.1", True, "major"),
    ("2.3.0", "1.9.9", False, "major"),
])
def test_classify_change(old, new, breaking, kind):
    assert classify_change(old, new, breaking) == kind


@pytest.mark.parametrize("kind, migration, risk", [
    ("major", True, "critical"),
    ("major", False, "high"),
    ("minor", True, "medium"),
    ("patch", False, "low"),
])
def test_risk_for(kind, migration, risk):
    assert risk_for(kind, migration) == risk


class TestAssess:
    def test_minor_change(self, seeded, make_version):
        make_version("invoice", "1.1.0", user_impact="New logo placement")
        impact = assess("invoice", "invoice_v1.0.0", "invoice_v1.1.0", seeded)
        assert impact.risk_level == "medium"
        assert impact.change_kind == "minor"
        assert impact.user_impact_summary == "New logo placement"
        assert impact.rollback_time_estimate == STANDARD_ROLLBACK_ESTIMATE
        assert impact.is_high_risk is False

    def test_major_with_migration_is_critical(self, seeded, make_version):
        make_version(
            "estimate", "2.0.0",
            breaking_changes=["Line items regrouped"],
            data_migration_required=True,
            user_training_required=True,
        )
        impact = assess("estimate", "estimate_v1.0.0", "estimate_v2.0.0", seeded)
        assert impact.risk_level == "critical"
        assert impact.breaking_changes == ["Line items regrouped"]
        assert impact.data_migration_required is True
        assert impact.user_training_required is True
        assert impact.rollback_time_estimate == MAJOR_ROLLBACK_ESTIMATE

    def test_breaking_patch_is_high(self, seeded, make_version):
        make_version("receipt", "1.0.1", breaking_changes=["Footer removed"])
        impact = assess("receipt", "receipt_v1.0.0", "receipt_v1.0.1", seeded)
        assert impact.change_kind == "major"
        assert impact.risk_level == "high"

    def test_training_flag_comes_from_metadata_only(self, seeded, make_version):
        make_version("receipt", "2.0.0", breaking_changes=["Footer removed"])
        impact = assess("receipt", "receipt_v1.0.0", "receipt_v2.0.0", seeded)
        assert impact.user_training_required is False

    def test_default_user_impact_text(self, seeded, make_version):
        make_version("invoice", "1.0.1")
        impact = assess("invoice", "invoice_v1.0.0", "invoice_v1.0.1", seeded)
        assert impact.risk_level == "low"
        assert impact.user_impact_summary == "Minimal impact expected"

    def test_rollback_unsafe_target(self, seeded, make_version):
        make_version("invoice", "1.1.0", rollback_safe=False)
        assert assess("invoice", "invoice_v1.0.0", "invoice_v1.1.0", seeded).rollback_safe is False

    def test_cross_category_rejected(self, seeded):
        with pytest.raises(ValidationError):
            assess("invoice", "invoice_v1.0.0", "receipt_v1.0.0", seeded)

    def test_assess_has_no_side_effects(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        before = seeded.get_current_default("invoice")
        assess("invoice", "invoice_v1.0.0", "invoice_v1.1.0", seeded)
        assess("invoice", "invoice_v1.0.0", "invoice_v1.1.0", seeded)
        assert seeded.get_current_default("invoice") == before
        assert len(seeded.get_history("invoice")) == 1

"""
Version registry unit tests.

Tests cover:
  - version registration, semver parsing, duplicate / unknown fields
  - baseline seeding is idempotent and writes a "created" ledger entry
  - compare-and-swap on the default pointer
  - force_default for emergency rollback
  - ledger ordering and rollback detection
"""

import pytest

from template_governance.core.exceptions import ConflictError, NotFoundError, ValidationError
from template_governance.models import db
from template_governance.models.template import TemplateDefault, VersionHistoryEntry
from template_governance.services.version_registry import (
    parse_semver,
    seed_baseline_defaults,
    validate_category,
)

pytestmark = pytest.mark.unit


class TestParsing:
    def test_parse_semver(self):
        assert parse_semver("2.10.3") == (2, 10, 3)

    @pytest.mark.parametrize("raw", ["", "1.0", "v1.0.0", "1.0.0-beta", "a.b.c", None])
    def test_parse_semver_rejects(self, raw):
        with pytest.raises(ValidationError):
            parse_semver(raw)

    def test_validate_category(self):
        assert validate_category("receipt") == "receipt"
        with pytest.raises(ValidationError):
            validate_category("purchase_order")


class TestRegisterVersion:
    def test_register_builds_version_id(self, registry):
        version = registry.register_version("invoice", "1.2.0", title="Branding refresh")
        assert version.version_id == "invoice_v1.2.0"
        assert version.validation_status == "pending"
        assert version.acceptance_checklist["pdf_fidelity"] is False

    def test_padded_version_number_is_trimmed(self, registry):
        version = registry.register_version("invoice", " 1.1.0 ")
        assert version.version_id == "invoice_v1.1.0"
        assert version.version_number == "1.1.0"
        assert registry.get_version("invoice_v1.1.0") is version

    def test_duplicate_version_conflicts(self, registry):
        registry.register_version("invoice", "1.2.0")
        with pytest.raises(ConflictError):
            registry.register_version("invoice", "1.2.0")

    def test_unknown_field_rejected(self, registry):
        with pytest.raises(ValidationError) as exc:
            registry.register_version("invoice", "1.2.0", colour="blue")
        assert exc.value.details == {"fields": ["colour"]}

    def test_identity_fields_cannot_be_overridden(self, registry):
        with pytest.raises(ValidationError):
            registry.register_version("invoice", "1.2.0", version_id="receipt_v9.9.9")

    def test_unknown_checklist_item_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.register_version("invoice", "1.2.0", acceptance_checklist={"looks_nice": True})

    def test_blank_breaking_changes_dropped(self, registry):
        version = registry.register_version("invoice", "2.0.0", breaking_changes=["New layout", "  "])
        assert version.breaking_changes == ["New layout"]

    def test_get_version_not_found(self, registry):
        with pytest.raises(NotFoundError):
            registry.get_version("invoice_v7.0.0")

    def test_list_versions_by_category(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        ids = [v.version_id for v in seeded.list_versions("invoice")]
        assert ids == ["invoice_v1.0.0", "invoice_v1.1.0"]


class TestSeeding:
    def test_seed_sets_every_category(self, registry):
        seeded = seed_baseline_defaults("1.0.0", registry=registry)
        db.session.commit()
        assert seeded == ["estimate", "invoice", "receipt"]
        assert registry.get_current_default("invoice") == "invoice_v1.0.0"
        history = registry.get_history("estimate")
        assert [(e.sequence, e.action, e.to_version) for e in history] == [(1, "created", "estimate_v1.0.0")]

    def test_seed_is_idempotent(self, seeded):
        assert seed_baseline_defaults("1.0.0", registry=seeded) == []
        assert len(seeded.get_history("invoice")) == 1

    def test_seed_default_rejects_foreign_version(self, registry):
        registry.register_version("receipt", "1.0.0")
        with pytest.raises(ValidationError):
            registry.seed_default("invoice", "receipt_v1.0.0")


class TestDefaultPointer:
    def test_swap_succeeds_when_expected_matches(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        assert seeded.swap_default("invoice", "invoice_v1.0.0", "invoice_v1.1.0") is True
        assert seeded.get_current_default("invoice") == "invoice_v1.1.0"
        assert db.session.get(TemplateDefault, "invoice").revision == 2

    def test_swap_rejected_when_pointer_moved(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        make_version("invoice", "1.2.0")
        seeded.swap_default("invoice", "invoice_v1.0.0", "invoice_v1.1.0")
        assert seeded.swap_default("invoice", "invoice_v1.0.0", "invoice_v1.2.0") is False
        assert seeded.get_current_default("invoice") == "invoice_v1.1.0"

    def test_swap_leaves_other_categories_alone(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        seeded.swap_default("invoice", "invoice_v1.0.0", "invoice_v1.1.0")
        assert seeded.get_current_default("receipt") == "receipt_v1.0.0"

    def test_force_default(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        seeded.swap_default("invoice", "invoice_v1.0.0", "invoice_v1.1.0")
        seeded.force_default("invoice", "invoice_v1.0.0")
        assert seeded.get_current_default("invoice") == "invoice_v1.0.0"

    def test_force_default_unseeded_category(self, registry):
        with pytest.raises(NotFoundError):
            registry.force_default("invoice", "invoice_v1.0.0")

    def test_current_default_unseeded_is_none(self, registry):
        assert registry.get_current_default("invoice") is None


class TestLedger:
    def test_append_assigns_next_sequence(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        entry = seeded.append_history("invoice", VersionHistoryEntry(
            action="set_default", from_version="invoice_v1.0.0", to_version="invoice_v1.1.0",
        ))
        assert entry.sequence == 2
        assert [e.sequence for e in seeded.get_history("invoice")] == [1, 2]

    def test_sequences_are_per_category(self, seeded):
        assert seeded.get_history("receipt")[0].sequence == 1
        assert seeded.get_history("invoice")[0].sequence == 1

    def test_invalid_action_rejected(self, seeded):
        with pytest.raises(ValidationError):
            seeded.append_history("invoice", VersionHistoryEntry(action="deleted", to_version="invoice_v1.0.0"))

    def test_was_previous_default(self, seeded, make_version):
        make_version("invoice", "1.1.0")
        assert seeded.was_previous_default("invoice", "invoice_v1.0.0") is True
        assert seeded.was_previous_default("invoice", "invoice_v1.1.0") is False

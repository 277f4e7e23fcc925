"""
Template governance API tests (Flask test client, real collaborators).

Tests cover:
  - registry endpoints: register / list / get versions, defaults, history
  - change request lifecycle over HTTP with the configured directory
  - error rendering: codes, HTTP statuses, mismatch clause details
  - audit trail, notifications, health, seed CLI
"""

import pytest

from template_governance.models import db
from template_governance.models.template import ACCEPTANCE_CHECKLIST_KEYS
from template_governance.services.version_registry import seed_baseline_defaults

pytestmark = pytest.mark.integration

BASE = "/api/v1/template-governance"
REQUESTER = "alice@example.com"
TECH_LEAD = "tech-lead@example.com"
DESIGN_LEAD = "design-lead@example.com"


@pytest.fixture()
def baseline():
    seed_baseline_defaults("1.0.0")
    db.session.commit()


def _register(client, category, version_number, **overrides):
    body = {
        "category": category,
        "version_number": version_number,
        "title": f"{category} {version_number}",
        "validation_status": "passed",
        "template_hash": "sha256:77aa",
        "acceptance_checklist": {key: True for key in ACCEPTANCE_CHECKLIST_KEYS},
        "accessibility_score": 96,
        "print_fidelity_score": 98,
        "created_by": "build-bot",
    }
    body.update(overrides)
    res = client.post(f"{BASE}/versions", json=body)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _open(client, category="invoice", new_version="invoice_v1.1.0", **extra):
    body = {"category": category, "new_version": new_version, "reason": "Updated branding",
            "requester": REQUESTER}
    body.update(extra)
    return client.post(f"{BASE}/requests", json=body)


def _approve(client, rid, role, identity):
    return client.post(f"{BASE}/requests/{rid}/approve", json={"role": role, "identity": identity})


@pytest.fixture()
def ready_request(client, baseline):
    """Medium-risk invoice request in pending_confirmation."""
    _register(client, "invoice", "1.1.0")
    req = _open(client).get_json()
    assert _approve(client, req["id"], "technical_lead", TECH_LEAD).status_code == 200
    res = _approve(client, req["id"], "design_lead", DESIGN_LEAD)
    assert res.get_json()["status"] == "pending_confirmation"
    return req


# ═════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═════════════════════════════════════════════════════════════════════════


class TestRegistryAPI:
    def test_register_version(self, client, baseline):
        data = _register(client, "receipt", "1.1.0", breaking_changes=[])
        assert data["version_id"] == "receipt_v1.1.0"
        assert data["created_by"] == "build-bot"

    def test_register_duplicate(self, client, baseline):
        res = client.post(f"{BASE}/versions", json={"category": "invoice", "version_number": "1.0.0"})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_register_requires_fields(self, client):
        res = client.post(f"{BASE}/versions", json={"category": "invoice"})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_register_bad_semver(self, client):
        res = client.post(f"{BASE}/versions", json={"category": "invoice", "version_number": "1.1"})
        assert res.status_code == 422

    def test_register_rejects_non_list_breaking_changes(self, client):
        res = client.post(f"{BASE}/versions",
                          json={"category": "invoice", "version_number": "1.1.0", "breaking_changes": "all"})
        assert res.status_code == 400

    def test_list_and_get_versions(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        res = client.get(f"{BASE}/versions?category=invoice")
        assert [v["version_id"] for v in res.get_json()["items"]] == ["invoice_v1.0.0", "invoice_v1.1.0"]
        assert client.get(f"{BASE}/versions/invoice_v1.1.0").get_json()["title"] == "invoice 1.1.0"
        assert client.get(f"{BASE}/versions/invoice_v9.9.9").status_code == 404

    def test_defaults(self, client, baseline):
        items = client.get(f"{BASE}/defaults").get_json()["items"]
        assert {d["category"]: d["version_id"] for d in items} == {
            "estimate": "estimate_v1.0.0", "invoice": "invoice_v1.0.0", "receipt": "receipt_v1.0.0",
        }
        res = client.get(f"{BASE}/defaults/invoice")
        assert res.get_json() == {"category": "invoice", "version_id": "invoice_v1.0.0"}

    def test_default_unknown_category(self, client):
        assert client.get(f"{BASE}/defaults/purchase_order").status_code == 422

    def test_default_unseeded(self, client):
        assert client.get(f"{BASE}/defaults/invoice").status_code == 404

    def test_history(self, client, baseline):
        data = client.get(f"{BASE}/defaults/receipt/history").get_json()
        assert data["total"] == 1
        assert data["items"][0]["action"] == "created"


# ═════════════════════════════════════════════════════════════════════════
# LIFECYCLE
# ═════════════════════════════════════════════════════════════════════════


class TestChangeRequestAPI:
    def test_create_request(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        res = _open(client, from_version="invoice_v1.0.0")
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "pending_approval"
        assert data["risk_level"] == "medium"
        assert data["confirmation_text"].startswith("I confirm changing the default invoice template")
        assert [a["stakeholder_email"] for a in data["approvals"]] == [TECH_LEAD, DESIGN_LEAD]
        assert data["safety_checks_passed"] is True

    def test_create_accepts_to_version_alias(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        body = {"category": "invoice", "to_version": "invoice_v1.1.0", "reason": "r", "requester": REQUESTER}
        assert client.post(f"{BASE}/requests", json=body).status_code == 201

    def test_create_requires_json(self, client):
        res = client.post(f"{BASE}/requests", data="nope", content_type="text/plain")
        assert res.status_code == 400

    def test_stale_from_version(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        res = _open(client, from_version="invoice_v0.1.0")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_STALE_DEFAULT"

    def test_concurrent_change(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        _register(client, "invoice", "1.2.0")
        first = _open(client).get_json()
        res = _open(client, new_version="invoice_v1.2.0")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONCURRENT_CHANGE"
        assert res.get_json()["details"]["active_request_id"] == first["id"]

    def test_unknown_approver(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        rid = _open(client).get_json()["id"]
        res = _approve(client, rid, "technical_lead", "mallory@example.com")
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_UNKNOWN_APPROVER"

    def test_already_approved(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        rid = _open(client).get_json()["id"]
        _approve(client, rid, "technical_lead", TECH_LEAD)
        res = _approve(client, rid, "technical_lead", TECH_LEAD)
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_ALREADY_APPROVED"

    def test_approve_validates_conditions(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        rid = _open(client).get_json()["id"]
        res = client.post(f"{BASE}/requests/{rid}/approve",
                          json={"role": "technical_lead", "identity": TECH_LEAD, "conditions": "none"})
        assert res.status_code == 400

    def test_confirm_deploys(self, client, ready_request):
        res = client.post(f"{BASE}/requests/{ready_request['id']}/confirm", json={
            "confirmation_text": ready_request["confirmation_text"],
            "confirmed_by": REQUESTER,
        })
        assert res.status_code == 201
        entry = res.get_json()
        assert entry["to_version"] == "invoice_v1.1.0"
        assert entry["approved_by"] == [TECH_LEAD, DESIGN_LEAD]
        assert client.get(f"{BASE}/defaults/invoice").get_json()["version_id"] == "invoice_v1.1.0"
        assert client.get(f"{BASE}/requests/{ready_request['id']}").get_json()["status"] == "deployed"

    def test_confirm_mismatch_explains_clause(self, client, ready_request):
        res = client.post(f"{BASE}/requests/{ready_request['id']}/confirm", json={
            "confirmation_text": "I confirm this change",
            "confirmed_by": REQUESTER,
        })
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_CONFIRMATION_MISMATCH"
        assert body["details"]["expected_text"] == ready_request["confirmation_text"]
        assert body["details"]["expected_clause"].startswith("I confirm changing")
        assert client.get(f"{BASE}/defaults/invoice").get_json()["version_id"] == "invoice_v1.0.0"

    def test_confirm_requires_text(self, client, ready_request):
        res = client.post(f"{BASE}/requests/{ready_request['id']}/confirm", json={"confirmed_by": REQUESTER})
        assert res.status_code == 400

    def test_confirm_blank_text_is_a_mismatch(self, client, ready_request):
        rid = ready_request["id"]
        res = client.post(f"{BASE}/requests/{rid}/confirm", json={
            "confirmation_text": "   ", "confirmed_by": REQUESTER,
        })
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_CONFIRMATION_MISMATCH"
        assert body["details"]["clause_index"] == 0
        assert client.get(f"{BASE}/requests/{rid}").get_json()["mismatch_count"] == 1
        actions = [log["action"] for log in client.get(f"/api/v1/audit?entity_id={rid}").get_json()["audit_logs"]]
        assert "change_request.confirmation_mismatch" in actions

    def test_confirm_before_quorum(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        req = _open(client).get_json()
        res = client.post(f"{BASE}/requests/{req['id']}/confirm", json={
            "confirmation_text": req["confirmation_text"], "confirmed_by": REQUESTER,
        })
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_blocked_at_quorum_then_recheck(self, client, baseline):
        _register(client, "invoice", "1.1.0", acceptance_checklist={"pdf_fidelity": True})
        rid = _open(client).get_json()["id"]
        _approve(client, rid, "technical_lead", TECH_LEAD)
        result = _approve(client, rid, "design_lead", DESIGN_LEAD).get_json()
        assert result["quorum_reached"] is True
        assert result["status"] == "pending_approval"
        assert {f["check_name"] for f in result["blocking_failures"]} == {"acceptance_checklist", "security_scan"}

        res = client.post(f"{BASE}/requests/{rid}/recheck", json={"actor": REQUESTER})
        assert res.get_json()["transitioned"] is False

    def test_cancel(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        rid = _open(client).get_json()["id"]
        res = client.post(f"{BASE}/requests/{rid}/cancel", json={"reason": "Superseded", "actor": REQUESTER})
        assert res.status_code == 200
        assert res.get_json()["status"] == "cancelled"
        assert client.get(f"{BASE}/requests/active").get_json()["total"] == 0

    def test_cancel_requires_reason(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        rid = _open(client).get_json()["id"]
        assert client.post(f"{BASE}/requests/{rid}/cancel", json={"actor": REQUESTER}).status_code == 422

    def test_list_and_get(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        rid = _open(client).get_json()["id"]
        data = client.get(f"{BASE}/requests?category=invoice&status=pending_approval").get_json()
        assert [r["id"] for r in data["items"]] == [rid]
        assert "approvals" not in data["items"][0]
        assert client.get(f"{BASE}/requests/active").get_json()["items"][0]["id"] == rid
        assert client.get(f"{BASE}/requests/does-not-exist").status_code == 404

    def test_impact_preview(self, client, baseline):
        _register(client, "estimate", "2.0.0", breaking_changes=["Totals moved"], data_migration_required=True)
        res = client.get(f"{BASE}/impact?category=estimate&to_version=estimate_v2.0.0&requester={REQUESTER}")
        data = res.get_json()
        assert data["impact"]["risk_level"] == "critical"
        assert len(data["required_roles"]) == 4
        assert f"Change requested by {REQUESTER}" in data["confirmation_text_preview"]

    def test_impact_preview_requires_params(self, client):
        assert client.get(f"{BASE}/impact?category=invoice").status_code == 400


# ═════════════════════════════════════════════════════════════════════════
# AUDIT, NOTIFICATIONS, HEALTH, CLI
# ═════════════════════════════════════════════════════════════════════════


class TestAuditAPI:
    def test_lifecycle_is_audited(self, client, ready_request):
        res = client.get(f"/api/v1/audit?entity_id={ready_request['id']}")
        actions = [log["action"] for log in res.get_json()["audit_logs"]]
        assert sorted(actions) == sorted([
            "change_request.created",
            "change_request.approved",
            "change_request.approved",
            "change_request.ready_for_confirmation",
        ])

    def test_action_prefix_filter(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        data = client.get("/api/v1/audit?action=template_version.").get_json()
        assert data["total"] == 1
        log = data["audit_logs"][0]
        assert log["entity_id"] == "invoice_v1.1.0"
        assert log["actor"] == "build-bot"
        assert client.get(f"/api/v1/audit/{log['id']}").status_code == 200

    def test_request_id_recorded(self, client, baseline):
        client.post(f"{BASE}/versions", headers={"X-Request-ID": "trace-42"}, json={
            "category": "receipt", "version_number": "1.0.1",
        })
        log = client.get("/api/v1/audit?entity_type=template_version").get_json()["audit_logs"][0]
        assert log["request_id"] == "trace-42"

    def test_audit_not_found(self, client):
        assert client.get("/api/v1/audit/999").status_code == 404


class TestNotificationAPI:
    def test_approvers_notified(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        _open(client)
        data = client.get(f"/api/v1/notifications?recipient={TECH_LEAD}").get_json()
        assert data["unread_count"] == 1
        assert data["items"][0]["title"].startswith("Approval needed")

    def test_mark_read(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        _open(client)
        nid = client.get(f"/api/v1/notifications?recipient={TECH_LEAD}").get_json()["items"][0]["id"]
        assert client.patch(f"/api/v1/notifications/{nid}/read").get_json()["is_read"] is True
        res = client.get(f"/api/v1/notifications/unread-count?recipient={TECH_LEAD}")
        assert res.get_json()["unread_count"] == 0
        assert client.patch("/api/v1/notifications/999/read").status_code == 404

    def test_mark_all_read(self, client, baseline):
        _register(client, "invoice", "1.1.0")
        _open(client)
        res = client.post("/api/v1/notifications/mark-all-read", json={"recipient": DESIGN_LEAD})
        assert res.get_json()["marked_read"] == 1


class TestHealthAndCLI:
    def test_ready(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_live_reports_unseeded(self, client):
        data = client.get("/api/v1/health/live").get_json()
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["registry"]["unseeded_categories"] == ["estimate", "invoice", "receipt"]

    def test_request_id_header_echoed(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"

    def test_unknown_route_is_json(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["error"] == "Not found"

    def test_seed_command(self, app, client):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed-template-defaults"])
        assert result.exit_code == 0, result.output
        assert client.get(f"{BASE}/defaults/estimate").get_json()["version_id"] == "estimate_v1.0.0"
        seeded = client.get("/api/v1/audit?action=template_default.seeded").get_json()
        assert seeded["total"] == 3

        again = runner.invoke(args=["seed-template-defaults"])
        assert again.exit_code == 0
        assert client.get(f"{BASE}/defaults/estimate/history").get_json()["total"] == 1

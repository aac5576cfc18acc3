"""Cost entry and proposal status transitions, their audit trail and notifications."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.audit import AuditLog
from projecthub.models.notification import Notification
from projecthub.models.workflow import COST_TRANSITIONS, PROPOSAL_TRANSITIONS, CostEntry, Proposal
from projecthub.services import cost_service, proposal_service, transition_guard
from projecthub.services.transition_guard import is_transition_allowed


@pytest.fixture()
def member(project, collaborator, add_member):
    add_member(project, collaborator)
    return collaborator


def _cost(project, creator, status="PENDING", amount="1250.50"):
    cost = CostEntry(project_id=project.id, created_by_id=creator.id, description="Hosting",
                     amount=Decimal(amount), category="SOFTWARE", status=status)
    db.session.add(cost)
    db.session.commit()
    return cost


def _proposal(project, creator, status="DRAFT", code="PRP-001"):
    proposal = Proposal(project_id=project.id, created_by_id=creator.id, code=code,
                        title="Phase 2 build", total_value=Decimal("48000"), status=status)
    db.session.add(proposal)
    db.session.commit()
    return proposal


def _status_changes():
    return AuditLog.query.filter(AuditLog.action.like("%_STATUS_CHANGE")).order_by(AuditLog.id).all()


# ═════════════════════════════════════════════════════════════════════════════
# Transition tables
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("status,action,allowed", [
    ("PENDING", "approve", True),
    ("PENDING", "reject", True),
    ("PENDING", "pay", False),
    ("APPROVED", "pay", True),
    ("APPROVED", "approve", False),
    ("REJECTED", "approve", False),
    ("PAID", "reject", False),
    ("PENDING", "archive", False),
])
def test_cost_transition_table(status, action, allowed):
    assert is_transition_allowed(COST_TRANSITIONS, status, action) is allowed


@pytest.mark.parametrize("status,action,allowed", [
    ("DRAFT", "send", True),
    ("SENT", "negotiate", True),
    ("SENT", "approve", True),
    ("NEGOTIATING", "approve", True),
    ("NEGOTIATING", "reject", True),
    ("DRAFT", "approve", False),
    ("APPROVED", "reject", False),
    ("REJECTED", "send", False),
])
def test_proposal_transition_table(status, action, allowed):
    assert is_transition_allowed(PROPOSAL_TRANSITIONS, status, action) is allowed


# ═════════════════════════════════════════════════════════════════════════════
# Cost entries
# ═════════════════════════════════════════════════════════════════════════════


class TestCostTransitions:
    def test_approve_stamps_and_audits_once(self, project, admin, member, principal):
        cost = _cost(project, member)
        result, err = cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))
        assert err is None
        assert result["status"] == "APPROVED"
        assert result["approved_by_id"] == admin.id
        assert result["approved_at"] is not None

        logs = _status_changes()
        assert len(logs) == 1
        assert logs[0].meta["oldStatus"] == "PENDING"
        assert logs[0].meta["newStatus"] == "APPROVED"
        assert logs[0].target_type == "COST_ENTRY"
        assert logs[0].actor_id == admin.id

    def test_approve_notifies_creator(self, project, admin, member, principal):
        cost = _cost(project, member)
        cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))
        notes = Notification.query.filter_by(user_id=member.id, type="COST_STATUS").all()
        assert len(notes) == 1
        assert notes[0].meta["status"] == "APPROVED"

    def test_no_self_notification(self, project, admin, principal):
        cost = _cost(project, admin)
        cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))
        assert Notification.query.count() == 0

    def test_pay_after_approve(self, project, admin, principal):
        cost = _cost(project, admin)
        cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))
        result, err = cost_service.transition_cost(project.id, cost.id, "pay", principal(admin))
        assert err is None
        assert result["status"] == "PAID"
        assert result["paid_at"] is not None
        assert len(_status_changes()) == 2

    def test_reject_does_not_stamp_approver(self, project, admin, principal):
        cost = _cost(project, admin)
        result, err = cost_service.transition_cost(project.id, cost.id, "reject", principal(admin))
        assert err is None
        assert result["status"] == "REJECTED"
        assert result["approved_by_id"] is None
        _, err = cost_service.transition_cost(project.id, cost.id, "pay", principal(admin))
        assert err["details"]["current_status"] == "REJECTED"

    @pytest.mark.parametrize("status", ["APPROVED", "REJECTED", "PAID"])
    def test_approve_from_terminal_status_conflicts(self, project, admin, principal, status):
        cost = _cost(project, admin, status=status)
        result, err = cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))
        assert result is None
        assert err["status"] == 409
        assert err["details"] == {"current_status": status, "attempted_status": "APPROVED"}

        db.session.expire_all()
        refreshed = db.session.get(CostEntry, cost.id)
        assert refreshed.status == status
        assert refreshed.approved_by_id is None
        assert _status_changes() == []
        assert Notification.query.count() == 0

    def test_pay_from_pending_conflicts(self, project, admin, principal):
        cost = _cost(project, admin)
        _, err = cost_service.transition_cost(project.id, cost.id, "pay", principal(admin))
        assert err["details"]["current_status"] == "PENDING"
        assert err["details"]["attempted_status"] == "PAID"

    def test_cost_in_other_project_is_not_found(self, project, admin, make_project, principal):
        other = make_project(admin, name="Other")
        cost = _cost(other, admin)
        _, err = cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))
        assert err["status"] == 404

    def test_unknown_action_raises(self, project, admin, principal):
        cost = _cost(project, admin)
        with pytest.raises(ValidationError):
            cost_service.transition_cost(project.id, cost.id, "refund", principal(admin))

    def test_create_and_summary(self, project, admin, principal):
        created, err = cost_service.create_cost(
            project.id, principal(admin), {"description": "Licences", "amount": "300.25", "category": "SOFTWARE"},
        )
        assert err is None
        assert created["status"] == "PENDING"
        _cost(project, admin, status="APPROVED", amount="100")
        _cost(project, admin, status="APPROVED", amount="50.50")

        totals = cost_service.cost_summary(project.id)
        assert Decimal(totals["PENDING"]) == Decimal("300.25")
        assert Decimal(totals["APPROVED"]) == Decimal("150.50")
        assert Decimal(totals["PAID"]) == 0
        assert AuditLog.query.filter_by(action="COST_CREATE").count() == 1

    @pytest.mark.parametrize("amount", [0, -5, "abc", "1.999", True])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValidationError):
            cost_service.parse_amount(amount)


# ═════════════════════════════════════════════════════════════════════════════
# Proposals
# ═════════════════════════════════════════════════════════════════════════════


class TestProposalTransitions:
    def test_full_path_to_approval(self, project, admin, principal):
        proposal = _proposal(project, admin)
        p = principal(admin)
        for action, expected in (("send", "SENT"), ("negotiate", "NEGOTIATING"), ("approve", "APPROVED")):
            result, err = proposal_service.transition_proposal(project.id, proposal.id, action, p)
            assert err is None
            assert result["status"] == expected
        assert result["approved_by_id"] == admin.id
        assert [log.meta["newStatus"] for log in _status_changes()] == ["SENT", "NEGOTIATING", "APPROVED"]

    def test_approval_notifies_only_active_members(self, project, admin, member, make_user, add_member, principal):
        former = make_user("COLLABORATOR")
        add_member(project, former, is_active=False)
        proposal = _proposal(project, admin, status="SENT")

        proposal_service.transition_proposal(project.id, proposal.id, "approve", principal(admin))

        recipients = sorted(n.user_id for n in Notification.query.filter_by(type="PROPOSAL_STATUS"))
        assert recipients == sorted([admin.id, member.id])

    def test_non_approval_transitions_do_not_notify(self, project, admin, member, principal):
        proposal = _proposal(project, admin)
        proposal_service.transition_proposal(project.id, proposal.id, "send", principal(admin))
        proposal_service.transition_proposal(project.id, proposal.id, "negotiate", principal(admin))
        proposal_service.transition_proposal(project.id, proposal.id, "reject", principal(admin))
        assert Notification.query.count() == 0

    def test_approve_draft_conflicts(self, project, admin, member, principal):
        proposal = _proposal(project, admin)
        _, err = proposal_service.transition_proposal(project.id, proposal.id, "approve", principal(admin))
        assert err["status"] == 409
        assert err["details"]["current_status"] == "DRAFT"
        assert Notification.query.count() == 0
        assert _status_changes() == []

    def test_duplicate_code_conflicts(self, project, admin, principal):
        _proposal(project, admin, code="PRP-7")
        _, err = proposal_service.create_proposal(project.id, principal(admin), {"code": "PRP-7", "title": "Again"})
        assert err["status"] == 409
        assert err["code"] == "ERR_CONFLICT_DUPLICATE"
        assert Proposal.query.count() == 1

    def test_same_code_allowed_in_another_project(self, project, admin, make_project, principal):
        other = make_project(admin, name="Other")
        _proposal(other, admin, code="PRP-7")
        created, err = proposal_service.create_proposal(
            project.id, principal(admin), {"code": "PRP-7", "title": "Scope", "total_value": 1200},
        )
        assert err is None
        assert created["code"] == "PRP-7"


# ═════════════════════════════════════════════════════════════════════════════
# Failed transitions leave nothing behind
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitionAtomicity:
    def test_failed_audit_keeps_cost_pending(self, monkeypatch, project, admin, member, principal):
        cost = _cost(project, member)

        def fail(**kwargs):
            raise SQLAlchemyError("audit insert failed")

        monkeypatch.setattr(transition_guard, "record_audit", fail)

        with pytest.raises(SQLAlchemyError):
            cost_service.transition_cost(project.id, cost.id, "approve", principal(admin))

        db.session.expire_all()
        stored = db.session.get(CostEntry, cost.id)
        assert stored.status == "PENDING"
        assert stored.approved_by_id is None
        assert stored.approved_at is None
        assert _status_changes() == []
        assert Notification.query.count() == 0

    def test_failed_member_notification_keeps_proposal_unapproved(
        self, monkeypatch, project, admin, member, principal,
    ):
        proposal = _proposal(project, admin, status="NEGOTIATING")
        original = proposal_service._notify_members

        def notify_then_fail(entity):
            original(entity)
            db.session.flush()
            raise SQLAlchemyError("notification insert failed")

        monkeypatch.setattr(proposal_service, "_notify_members", notify_then_fail)

        with pytest.raises(SQLAlchemyError):
            proposal_service.transition_proposal(project.id, proposal.id, "approve", principal(admin))

        db.session.expire_all()
        stored = db.session.get(Proposal, proposal.id)
        assert stored.status == "NEGOTIATING"
        assert stored.approved_by_id is None
        assert _status_changes() == []
        assert Notification.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# HTTP
# ═════════════════════════════════════════════════════════════════════════════


class TestWorkflowAPI:
    def test_conflict_response_shape(self, client, project, admin, auth_headers):
        cost = _cost(project, admin, status="PAID")
        res = client.post(f"/api/v1/projects/{project.id}/costs/{cost.id}/approve", headers=auth_headers(admin))
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_CONFLICT_STATE"
        assert body["details"] == {"current_status": "PAID", "attempted_status": "APPROVED"}

    def test_collaborator_member_cannot_approve(self, client, project, admin, member, auth_headers):
        cost = _cost(project, admin)
        res = client.post(f"/api/v1/projects/{project.id}/costs/{cost.id}/approve", headers=auth_headers(member))
        assert res.status_code == 403
        assert db.session.get(CostEntry, cost.id).status == "PENDING"

    def test_custom_permission_lets_member_approve(self, client, project, admin, collaborator, add_member, auth_headers):
        add_member(project, collaborator, custom_permissions={"cost:manage": True})
        cost = _cost(project, admin)
        res = client.post(f"/api/v1/projects/{project.id}/costs/{cost.id}/approve", headers=auth_headers(collaborator))
        assert res.status_code == 200
        assert res.get_json()["approved_by_id"] == collaborator.id

    def test_unknown_action_is_404(self, client, project, admin, auth_headers):
        cost = _cost(project, admin)
        res = client.post(f"/api/v1/projects/{project.id}/costs/{cost.id}/refund", headers=auth_headers(admin))
        assert res.status_code == 404
        assert res.get_json()["error"] == "Transition not found"

    def test_create_cost_and_list(self, client, project, admin, auth_headers):
        h = auth_headers(admin)
        res = client.post(f"/api/v1/projects/{project.id}/costs",
                          json={"description": "Design sprint", "amount": 4200}, headers=h)
        assert res.status_code == 201
        res = client.get(f"/api/v1/projects/{project.id}/costs?status=PENDING", headers=h)
        assert [c["description"] for c in res.get_json()["costs"]] == ["Design sprint"]

    def test_invalid_status_filter_is_400(self, client, project, admin, auth_headers):
        res = client.get(f"/api/v1/projects/{project.id}/costs?status=LOST", headers=auth_headers(admin))
        assert res.status_code == 400

    def test_proposal_lifecycle(self, client, project, admin, auth_headers):
        h = auth_headers(admin)
        res = client.post(f"/api/v1/projects/{project.id}/proposals",
                          json={"code": "PRP-100", "title": "Retainer", "total_value": "9000.00"}, headers=h)
        assert res.status_code == 201
        pid = res.get_json()["id"]
        assert client.post(f"/api/v1/projects/{project.id}/proposals/{pid}/send", headers=h).status_code == 200
        res = client.post(f"/api/v1/projects/{project.id}/proposals/{pid}/send", headers=h)
        assert res.status_code == 409
        assert res.get_json()["details"]["current_status"] == "SENT"

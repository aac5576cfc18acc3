"""Gantt items: creation and the all-or-nothing bulk update."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError

from projecthub.core.exceptions import ValidationError
from projecthub.models import db
from projecthub.models.audit import AuditLog
from projecthub.models.gantt import GanttItem
from projecthub.services import gantt_service


def _dt(day, month=4):
    return datetime(2026, month, day, tzinfo=timezone.utc)


def _item(project, title="Design", start=1, end=10, order=0):
    item = GanttItem(project_id=project.id, title=title, start_date=_dt(start), end_date=_dt(end), order=order)
    db.session.add(item)
    db.session.commit()
    return item


def _snapshot(*items):
    db.session.expire_all()
    return [db.session.get(GanttItem, i.id).to_dict() for i in items]


class TestBulkUpdate:
    def test_applies_all_changes_and_audits_once(self, project, admin, principal):
        a = _item(project, "Design", 1, 10, order=0)
        b = _item(project, "Build", 11, 20, order=1)

        result, err = gantt_service.bulk_update(project.id, principal(admin), [
            {"id": a.id, "order": 1, "progress": 100},
            {"id": b.id, "order": 0, "start_date": "2026-04-05T00:00:00Z", "parent_id": a.id},
        ])
        assert err is None
        assert [r["id"] for r in result] == [a.id, b.id]

        refreshed = {d["id"]: d for d in _snapshot(a, b)}
        assert refreshed[a.id]["order"] == 1
        assert refreshed[a.id]["progress"] == 100
        assert refreshed[b.id]["parent_id"] == a.id
        assert refreshed[b.id]["start_date"].startswith("2026-04-05")

        logs = AuditLog.query.filter_by(action="GANTT_BULK_UPDATE").all()
        assert len(logs) == 1
        assert logs[0].target_type == "PROJECT"
        assert logs[0].target_id == str(project.id)
        assert logs[0].meta == {"itemsUpdated": 2, "itemIds": [a.id, b.id]}

    def test_one_foreign_id_rejects_whole_batch(self, project, admin, make_project, principal):
        a = _item(project, "Design")
        b = _item(project, "Build")
        other = make_project(admin, name="Other")
        foreign = _item(other, "Elsewhere")
        before = _snapshot(a, b, foreign)

        with pytest.raises(ValidationError) as exc:
            gantt_service.bulk_update(project.id, principal(admin), [
                {"id": a.id, "order": 5},
                {"id": foreign.id, "order": 6},
                {"id": b.id, "order": 7},
            ])
        assert exc.value.details["invalid_ids"] == [foreign.id]
        assert str(foreign.id) in exc.value.details["items"]

        assert _snapshot(a, b, foreign) == before
        assert AuditLog.query.count() == 0

    def test_inactive_item_counts_as_invalid(self, project, admin, principal):
        a = _item(project)
        gone = _item(project, "Dropped")
        gone.is_active = False
        db.session.commit()

        with pytest.raises(ValidationError) as exc:
            gantt_service.bulk_update(project.id, principal(admin), [{"id": a.id}, {"id": gone.id}])
        assert exc.value.details["invalid_ids"] == [gone.id]

    def test_end_before_start_rejects_batch(self, project, admin, principal):
        a = _item(project, "Design", 1, 10)
        b = _item(project, "Build", 11, 20)
        before = _snapshot(a, b)

        with pytest.raises(ValidationError) as exc:
            gantt_service.bulk_update(project.id, principal(admin), [
                {"id": a.id, "order": 3},
                # Only end_date sent: checked against the stored start_date.
                {"id": b.id, "end_date": "2026-04-05T00:00:00Z"},
            ])
        assert f"item {b.id}" in exc.value.details
        assert _snapshot(a, b) == before

    def test_parent_must_be_another_item_of_the_project(self, project, admin, principal):
        a = _item(project)
        with pytest.raises(ValidationError):
            gantt_service.bulk_update(project.id, principal(admin), [{"id": a.id, "parent_id": a.id}])
        with pytest.raises(ValidationError):
            gantt_service.bulk_update(project.id, principal(admin), [{"id": a.id, "parent_id": 9999}])

    def test_parent_cycle_within_batch_rejects_batch(self, project, admin, principal):
        a = _item(project, "Design")
        b = _item(project, "Build")
        before = _snapshot(a, b)

        with pytest.raises(ValidationError) as exc:
            gantt_service.bulk_update(project.id, principal(admin), [
                {"id": a.id, "parent_id": b.id},
                {"id": b.id, "parent_id": a.id},
            ])

        assert exc.value.details[f"item {a.id}"] == "parent_id would create a cycle"
        assert _snapshot(a, b) == before
        assert AuditLog.query.filter_by(action="GANTT_BULK_UPDATE").count() == 0

    def test_parent_cycle_through_stored_links_rejects_batch(self, project, admin, principal):
        a = _item(project, "Design")
        b = _item(project, "Build")
        c = _item(project, "Test")
        b.parent_id = a.id
        c.parent_id = b.id
        db.session.commit()
        before = _snapshot(a, b, c)

        with pytest.raises(ValidationError) as exc:
            gantt_service.bulk_update(project.id, principal(admin), [{"id": a.id, "parent_id": c.id}])

        assert exc.value.details == {f"item {a.id}": "parent_id would create a cycle"}
        assert _snapshot(a, b, c) == before

    def test_reparenting_that_breaks_a_stored_chain_is_allowed(self, project, admin, principal):
        a = _item(project, "Design")
        b = _item(project, "Build")
        b.parent_id = a.id
        db.session.commit()

        _, err = gantt_service.bulk_update(project.id, principal(admin), [
            {"id": b.id, "parent_id": None},
            {"id": a.id, "parent_id": b.id},
        ])

        assert err is None
        refreshed = {d["id"]: d for d in _snapshot(a, b)}
        assert refreshed[a.id]["parent_id"] == b.id
        assert refreshed[b.id]["parent_id"] is None

    def test_failed_audit_rolls_back_every_item(self, monkeypatch, project, admin, principal):
        a = _item(project, "Design", 1, 10, order=0)
        b = _item(project, "Build", 11, 20, order=1)
        before = _snapshot(a, b)

        def fail(**kwargs):
            raise SQLAlchemyError("audit insert failed")

        monkeypatch.setattr(gantt_service, "record_audit", fail)

        with pytest.raises(SQLAlchemyError):
            gantt_service.bulk_update(project.id, principal(admin), [
                {"id": a.id, "order": 1, "progress": 50},
                {"id": b.id, "order": 0, "parent_id": a.id},
            ])

        assert _snapshot(a, b) == before
        assert AuditLog.query.count() == 0

    @pytest.mark.parametrize("items", [
        [],
        None,
        [{"order": 1}],
        [{"id": "1"}],
        [{"id": 1, "progress": 101}],
        [{"id": 1, "order": "first"}],
        [{"id": 1, "start_date": "next tuesday"}],
        [{"id": 1}, {"id": 1}],
    ])
    def test_malformed_payload(self, project, admin, principal, items):
        _item(project)
        with pytest.raises(ValidationError):
            gantt_service.bulk_update(project.id, principal(admin), items)
        assert AuditLog.query.count() == 0


class TestGanttAPI:
    def _url(self, project, suffix=""):
        return f"/api/v1/projects/{project.id}/gantt{suffix}"

    def test_create_list_and_bulk_update(self, client, project, admin, auth_headers):
        h = auth_headers(admin)
        res = client.post(self._url(project), json={
            "title": "Discovery", "start_date": "2026-05-01", "end_date": "2026-05-10",
        }, headers=h)
        assert res.status_code == 201
        item_id = res.get_json()["id"]

        res = client.patch(self._url(project, "/bulk-update"),
                           json={"items": [{"id": item_id, "progress": 40}]}, headers=h)
        assert res.status_code == 200
        assert res.get_json()["updated"] == 1
        assert res.get_json()["items"][0]["progress"] == 40

        res = client.get(self._url(project), headers=h)
        assert [i["title"] for i in res.get_json()["items"]] == ["Discovery"]

    def test_invalid_ids_in_response_details(self, client, project, admin, auth_headers):
        res = client.patch(self._url(project, "/bulk-update"),
                           json={"items": [{"id": 424242, "order": 1}]}, headers=auth_headers(admin))
        assert res.status_code == 400
        assert res.get_json()["details"]["invalid_ids"] == [424242]

    def test_create_rejects_inverted_dates(self, client, project, admin, auth_headers):
        res = client.post(self._url(project), json={
            "title": "Backwards", "start_date": "2026-05-10", "end_date": "2026-05-01",
        }, headers=auth_headers(admin))
        assert res.status_code == 400
        assert "end_date" in res.get_json()["details"]

    def test_collaborator_cannot_bulk_update(self, client, project, collaborator, add_member, auth_headers):
        add_member(project, collaborator)
        item = _item(project)
        res = client.patch(self._url(project, "/bulk-update"),
                           json={"items": [{"id": item.id, "order": 9}]}, headers=auth_headers(collaborator))
        assert res.status_code == 403

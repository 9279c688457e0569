"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end, with real bearer tokens
for the seeded employees.
"""

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient

from teamtasks.auth.jwt import create_access_token

# Seeded by the db_session fixture; owned by M1
PROJECT_ID = "P1"


def _create_task(test_client: TestClient, headers: dict, **fields) -> dict:
    response = test_client.post("/tasks", json={"title": "Test Task", **fields}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["task"]


class TestAuthentication:
    """Requests must carry a valid token for a known employee."""

    def test_health_needs_no_token(self, test_client):
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, test_client):
        response = test_client.get("/tasks")
        assert response.status_code == 401

    def test_invalid_token(self, test_client):
        response = test_client.get("/tasks", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_unknown_employee(self, test_client, auth_headers):
        response = test_client.get("/tasks", headers=auth_headers("X999"))
        assert response.status_code == 401

    def test_expired_token(self, test_client):
        token = create_access_token("E1", expires_in=timedelta(seconds=-1))
        response = test_client.get("/tasks", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestTaskEndpoints:
    """Test task API endpoints."""

    def test_create_task(self, test_client, auth_headers):
        """Test POST /tasks endpoint."""
        response = test_client.post(
            "/tasks",
            json={
                "title": "Write onboarding guide",
                "description": "For new hires",
                "priority": "7",
                "collaborators": ["E2"],
                "project_id": PROJECT_ID,
            },
            headers=auth_headers("E1"),
        )

        assert response.status_code == 201
        task = response.json()["task"]
        assert task["title"] == "Write onboarding guide"
        assert task["priority"] == 7
        assert task["status"] == "ongoing"
        assert task["owner_id"] == "E1"
        assert task["collaborators"] == ["E2"]
        assert task["version"] == 1
        assert task["is_recurring"] is False

    def test_create_out_of_range_priority_dropped(self, test_client, auth_headers):
        task = _create_task(test_client, auth_headers("E1"), priority=11)
        assert task["priority"] is None

    def test_create_non_ascii_digit_priority_dropped(self, test_client, auth_headers):
        task = _create_task(test_client, auth_headers("E1"), priority="²")
        assert task["priority"] is None

    def test_create_missing_title(self, test_client, auth_headers):
        response = test_client.post("/tasks", json={"description": "no title"}, headers=auth_headers("E1"))
        assert response.status_code == 422

    def test_create_assign_forbidden_for_staff(self, test_client, auth_headers):
        response = test_client.post(
            "/tasks", json={"title": "For E2", "owner_id": "E2"}, headers=auth_headers("E1"),
        )
        assert response.status_code == 403
        body = response.json()
        assert body["reason"] == "cannot_assign"
        assert "error" in body

    def test_hr_creates_unassigned(self, test_client, auth_headers):
        task = _create_task(test_client, auth_headers("H1"))
        assert task["status"] == "unassigned"

    def test_create_recurring(self, test_client, auth_headers):
        task = _create_task(
            test_client,
            auth_headers("E1"),
            due_date="2025-01-01",
            is_recurring=True,
            recurrence_pattern="Weekly",
            recurrence_max_count=4,
        )
        assert task["is_recurring"] is True
        assert task["recurrence_pattern"] == "weekly"
        assert task["recurrence_weekday"] == 3
        assert task["recurrence_max_count"] == 4
        assert task["recurrence_count"] == 1
        assert task["recurrence_series_id"]

    def test_create_recurring_without_due_date(self, test_client, auth_headers):
        response = test_client.post(
            "/tasks",
            json={"title": "Daily", "is_recurring": True, "recurrence_pattern": "daily"},
            headers=auth_headers("E1"),
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "recurrence_requires_due_date"

    def test_create_recurring_with_both_end_conditions(self, test_client, auth_headers):
        response = test_client.post(
            "/tasks",
            json={
                "title": "Daily",
                "due_date": "2025-01-01",
                "is_recurring": True,
                "recurrence_pattern": "daily",
                "recurrence_end_date": "2025-02-01",
                "recurrence_max_count": 3,
            },
            headers=auth_headers("E1"),
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "invalid_recurrence"

    def test_list_tasks(self, test_client, auth_headers):
        """Test GET /tasks endpoint."""
        _create_task(test_client, auth_headers("E1"), collaborators=["E2"])
        _create_task(test_client, auth_headers("E3"))

        response = test_client.get("/tasks", headers=auth_headers("E2"))

        assert response.status_code == 200
        assert len(response.json()["tasks"]) == 1

    def test_get_task_by_id(self, test_client, auth_headers):
        """Test GET /tasks/{task_id} endpoint."""
        created = _create_task(test_client, auth_headers("E1"))

        response = test_client.get(f"/tasks/{created['id']}", headers=auth_headers("E1"))

        assert response.status_code == 200
        assert response.json()["task"]["id"] == created["id"]

    def test_get_task_forbidden(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"))
        response = test_client.get(f"/tasks/{created['id']}", headers=auth_headers("E5"))
        assert response.status_code == 403

    def test_get_nonexistent_task(self, test_client, auth_headers):
        response = test_client.get("/tasks/nonexistent-id", headers=auth_headers("E1"))
        assert response.status_code == 404
        assert response.json()["reason"] == "task_not_found"


class TestTaskUpdates:
    def test_collaborator_updates_status(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"), collaborators=["E2"])

        response = test_client.put(
            f"/tasks/{created['id']}", json={"status": "under review"}, headers=auth_headers("E2"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["task"]["status"] == "under_review"
        assert data["task"]["version"] == 2
        assert data["roll_forward"] is None

    def test_collaborator_denied_priority(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"), collaborators=["E2"], priority=3)

        response = test_client.put(
            f"/tasks/{created['id']}", json={"status": "completed", "priority": 9}, headers=auth_headers("E2"),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "collaborator may only update status"
        task = test_client.get(f"/tasks/{created['id']}", headers=auth_headers("E1")).json()["task"]
        assert task["status"] == "ongoing"
        assert task["priority"] == 3

    def test_unknown_field_rejected(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"))
        response = test_client.put(
            f"/tasks/{created['id']}", json={"owner_id": "E2"}, headers=auth_headers("E1"),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "field not mutable: owner_id"

    def test_invalid_status(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"))
        response = test_client.put(
            f"/tasks/{created['id']}", json={"status": "done"}, headers=auth_headers("E1"),
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "invalid_status"

    def test_reopen_completed_task_conflicts(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"))
        test_client.put(f"/tasks/{created['id']}", json={"status": "completed"}, headers=auth_headers("E1"))
        response = test_client.put(
            f"/tasks/{created['id']}", json={"status": "ongoing"}, headers=auth_headers("E1"),
        )
        assert response.status_code == 409

    def test_completing_recurring_task_rolls_forward(self, test_client, auth_headers):
        created = _create_task(
            test_client,
            auth_headers("E1"),
            due_date="2025-01-31",
            is_recurring=True,
            recurrence_pattern="monthly",
            recurrence_max_count=3,
        )

        response = test_client.put(
            f"/tasks/{created['id']}", json={"status": "completed"}, headers=auth_headers("E1"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["task"]["status"] == "completed"
        assert data["roll_forward"]["status"] == "created"
        assert data["roll_forward"]["next_due_date"] == "2025-02-28"
        assert data["successor"]["due_date"] == "2025-02-28"
        assert data["successor"]["recurrence_count"] == 2

        retry = test_client.post(f"/tasks/{created['id']}/roll-forward", headers=auth_headers("E1"))
        assert retry.status_code == 200
        assert retry.json()["roll_forward"]["status"] == "existing"
        assert retry.json()["successor"]["id"] == data["successor"]["id"]

        history = test_client.get(f"/tasks/{created['id']}/recurrence-history", headers=auth_headers("E1"))
        assert [t["recurrence_count"] for t in history.json()["tasks"]] == [1, 2]

    def test_roll_forward_on_open_task_conflicts(self, test_client, auth_headers):
        created = _create_task(
            test_client, auth_headers("E1"), due_date="2025-01-01", is_recurring=True, recurrence_pattern="daily",
        )
        response = test_client.post(f"/tasks/{created['id']}/roll-forward", headers=auth_headers("E1"))
        assert response.status_code == 409
        assert response.json()["reason"] == "task_not_completed"


class TestPermissionsEndpoint:
    def test_collaborator_capabilities(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"), collaborators=["E2"])
        response = test_client.get(f"/tasks/{created['id']}/permissions", headers=auth_headers("E2"))
        assert response.status_code == 200
        data = response.json()
        assert data["rule"] == "collaborator"
        assert data["mutable_fields"] == ["status"]

    def test_project_manager_capabilities(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"), project_id=PROJECT_ID)
        response = test_client.get(f"/tasks/{created['id']}/permissions", headers=auth_headers("M1"))
        data = response.json()
        assert data["rule"] == "project_manager"
        assert "title" in data["mutable_fields"]

    def test_member_manager_denied_under_owner_policy(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"), project_id=PROJECT_ID)
        response = test_client.get(f"/tasks/{created['id']}/permissions", headers=auth_headers("M2"))
        assert response.status_code == 403

    def test_member_manager_allowed_under_member_policy(self, test_client, auth_headers, monkeypatch):
        created = _create_task(test_client, auth_headers("E1"), project_id=PROJECT_ID)
        monkeypatch.setenv("MANAGER_PROJECT_ACCESS", "member")
        response = test_client.get(f"/tasks/{created['id']}/permissions", headers=auth_headers("M2"))
        assert response.status_code == 200


class TestCollaboratorAndAssignEndpoints:
    def test_add_collaborator(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"))
        response = test_client.post(
            f"/tasks/{created['id']}/collaborators", json={"emp_id": "E3"}, headers=auth_headers("E1"),
        )
        assert response.status_code == 200
        assert response.json()["task"]["collaborators"] == ["E3"]

    def test_add_collaborator_requires_owner(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("E1"), collaborators=["E2"])
        response = test_client.post(
            f"/tasks/{created['id']}/collaborators", json={"emp_id": "E3"}, headers=auth_headers("E2"),
        )
        assert response.status_code == 403

    def test_assign(self, test_client, auth_headers):
        created = _create_task(test_client, auth_headers("H1"))
        response = test_client.post(
            f"/tasks/{created['id']}/assign", json={"owner_id": "E4"}, headers=auth_headers("H1"),
        )
        assert response.status_code == 200
        task = response.json()["task"]
        assert task["owner_id"] == "E4"
        assert task["status"] == "ongoing"


class TestSubtaskEndpoints:
    def test_subtask_lifecycle(self, test_client, auth_headers):
        parent = _create_task(test_client, auth_headers("E1"), collaborators=["E2"])

        created = test_client.post(
            "/subtasks",
            json={"parent_task_id": parent["id"], "title": "Gather feedback", "priority": 2},
            headers=auth_headers("E1"),
        )
        assert created.status_code == 201
        subtask = created.json()["subtask"]
        assert subtask["owner_id"] == "E1"
        assert subtask["status"] == "ongoing"

        updated = test_client.put(
            f"/subtasks/{subtask['id']}", json={"status": "completed"}, headers=auth_headers("E2"),
        )
        assert updated.status_code == 200
        assert updated.json()["subtask"]["status"] == "completed"

        listed = test_client.get(f"/tasks/task/{parent['id']}/subtasks", headers=auth_headers("E2"))
        assert [s["id"] for s in listed.json()["subtasks"]] == [subtask["id"]]

        deleted = test_client.delete(f"/subtasks/{subtask['id']}", headers=auth_headers("E1"))
        assert deleted.status_code == 200
        assert deleted.json() == {"success": True, "id": subtask["id"]}

        listed = test_client.get(f"/tasks/task/{parent['id']}/subtasks", headers=auth_headers("E1"))
        assert listed.json()["subtasks"] == []

    def test_subtask_for_missing_parent(self, test_client, auth_headers):
        response = test_client.post(
            "/subtasks", json={"parent_task_id": "missing", "title": "Orphan"}, headers=auth_headers("E1"),
        )
        assert response.status_code == 404

    def test_subtask_collaborator_cannot_rename(self, test_client, auth_headers):
        parent = _create_task(test_client, auth_headers("E1"))
        subtask = test_client.post(
            "/subtasks",
            json={"parent_task_id": parent["id"], "title": "Proofread", "collaborators": ["E3"]},
            headers=auth_headers("E1"),
        ).json()["subtask"]

        response = test_client.put(
            f"/subtasks/{subtask['id']}", json={"title": "Mine"}, headers=auth_headers("E3"),
        )
        assert response.status_code == 403


class TestNotificationEndpoints:
    def test_notifications_flow(self, test_client, auth_headers):
        _create_task(test_client, auth_headers("E1"), title="Shared work", collaborators=["E2"])

        listed = test_client.get("/notification", headers=auth_headers("E2"))
        assert listed.status_code == 200
        notifications = listed.json()["notifications"]
        assert len(notifications) == 1
        assert notifications[0]["type"] == "task_created"
        assert notifications[0]["read"] is False

        count = test_client.get("/notification/unread-count", headers=auth_headers("E2"))
        assert count.json() == {"count": 1}

        marked = test_client.patch(f"/notification/{notifications[0]['id']}/read", headers=auth_headers("E2"))
        assert marked.status_code == 200
        assert marked.json()["notification"]["read"] is True

        count = test_client.get("/notification/unread-count", headers=auth_headers("E2"))
        assert count.json() == {"count": 0}

    def test_cannot_mark_someone_elses_notification(self, test_client, auth_headers):
        _create_task(test_client, auth_headers("E1"), collaborators=["E2"])
        notification_id = test_client.get("/notification", headers=auth_headers("E2")).json()["notifications"][0]["id"]

        response = test_client.patch(f"/notification/{notification_id}/read", headers=auth_headers("E3"))
        assert response.status_code == 404

    def test_mark_all_read(self, test_client, auth_headers):
        _create_task(test_client, auth_headers("E1"), title="One", collaborators=["E2"])
        _create_task(test_client, auth_headers("E1"), title="Two", collaborators=["E2"])

        response = test_client.patch("/notification/mark-all-read", headers=auth_headers("E2"))
        assert response.json() == {"updated": 2}
        assert test_client.get("/notification/unread-count", headers=auth_headers("E2")).json() == {"count": 0}

    def test_assignment_notifies_new_owner(self, test_client, auth_headers):
        _create_task(test_client, auth_headers("M1"), title="Delegated", owner_id="E4")
        notifications = test_client.get("/notification", headers=auth_headers("E4")).json()["notifications"]
        assert [n["type"] for n in notifications] == ["task_assigned"]


class TestProjectTaskEndpoints:
    def test_project_owner_lists_project(self, test_client, auth_headers):
        scoped = _create_task(test_client, auth_headers("E1"), title="Scoped", project_id=PROJECT_ID)
        _create_task(test_client, auth_headers("E1"), title="Loose")

        response = test_client.get(f"/tasks/project/{PROJECT_ID}", headers=auth_headers("M1"))
        assert response.status_code == 200
        assert [t["id"] for t in response.json()["tasks"]] == [scoped["id"]]

    def test_project_member_forbidden(self, test_client, auth_headers):
        _create_task(test_client, auth_headers("E1"), project_id=PROJECT_ID)
        response = test_client.get(f"/tasks/project/{PROJECT_ID}", headers=auth_headers("E1"))
        assert response.status_code == 403

    def test_unknown_project(self, test_client, auth_headers):
        response = test_client.get("/tasks/project/P404", headers=auth_headers("D1"))
        assert response.status_code == 404
        assert response.json()["reason"] == "project_not_found"

    def test_bulk(self, test_client, auth_headers):
        scoped = _create_task(test_client, auth_headers("E1"), project_id=PROJECT_ID)

        response = test_client.post("/tasks/bulk", json={"project_ids": [PROJECT_ID]}, headers=auth_headers("H1"))
        assert response.status_code == 200
        assert [t["id"] for t in response.json()["tasks"]] == [scoped["id"]]

        denied = test_client.post("/tasks/bulk", json={"project_ids": [PROJECT_ID]}, headers=auth_headers("M2"))
        assert denied.status_code == 403

    def test_bulk_requires_ids(self, test_client, auth_headers):
        response = test_client.post("/tasks/bulk", json={"project_ids": []}, headers=auth_headers("H1"))
        assert response.status_code == 422


class TestHistoryEndpoint:
    def test_history(self, test_client, auth_headers):
        task = _create_task(test_client, auth_headers("E1"), collaborators=["E2"])
        test_client.put(f"/tasks/{task['id']}", json={"status": "under_review"}, headers=auth_headers("E2"))
        subtask = test_client.post(
            "/subtasks", json={"parent_task_id": task["id"], "title": "Checklist"}, headers=auth_headers("E1"),
        ).json()["subtask"]
        assert subtask["version"] == 1

        response = test_client.get(f"/tasks/{task['id']}/history", headers=auth_headers("E2"))
        assert response.status_code == 200
        history = response.json()["history"]
        assert [h["action"] for h in history] == ["task_create", "task_update", "subtask_create"]
        assert [h["editor_id"] for h in history] == ["E1", "E2", "E1"]
        assert history[1]["details"] == {"status": "under_review", "version": 2}
        assert history[2]["details"]["subtask_id"] == subtask["id"]

    def test_history_forbidden_for_stranger(self, test_client, auth_headers):
        task = _create_task(test_client, auth_headers("E1"))
        response = test_client.get(f"/tasks/{task['id']}/history", headers=auth_headers("E3"))
        assert response.status_code == 403


class TestDeadlineCheckEndpoint:
    def test_check_deadlines(self, test_client, auth_headers, monkeypatch):
        monkeypatch.setenv("DEADLINE_REMINDER_DAYS", "2")
        today = datetime.utcnow().date()
        _create_task(test_client, auth_headers("E1"), title="Soon", due_date=(today + timedelta(days=2)).isoformat())
        _create_task(test_client, auth_headers("E1"), title="Late", due_date=(today - timedelta(days=1)).isoformat())

        response = test_client.post("/notification/check-deadlines", headers=auth_headers("E3"))
        assert response.status_code == 200
        assert response.json() == {"checked_on": today.isoformat(), "upcoming": 1, "missed": 1}

        types = [n["type"] for n in test_client.get("/notification", headers=auth_headers("E1")).json()["notifications"]]
        assert sorted(types) == ["deadline_missed", "upcoming_deadline"]

        test_client.post("/notification/check-deadlines", headers=auth_headers("E3"))
        unread = test_client.get("/notification/unread-count", headers=auth_headers("E1")).json()
        assert unread == {"count": 2}

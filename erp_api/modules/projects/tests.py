"""
Tests for the Projects module

Projects, tasks with dependency validation, and the kanban and timeline
views.
"""

import pytest
from decimal import Decimal

from erp_api.modules.projects.schemas import ProjectCreate, ProjectUpdate, TaskCreate


# ===== FIXTURES =====

@pytest.fixture
def project(client, auth_headers, admin_user):
    response = client.post("/projects/", headers=auth_headers, json={
        "name": "Office Renovation",
        "start_date": "2024-03-01",
        "end_date": "2024-06-30",
        "status": "in-progress",
        "budget": "10000.00",
        "actual_cost": "2500.00",
        "progress": 25,
        "manager_id": admin_user["id"],
        "team": [admin_user["id"]],
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def create_task(client, auth_headers, project):
    def _create(title, **extra):
        payload = {"title": title}
        payload.update(extra)
        response = client.post(f"/projects/{project['id']}/tasks", headers=auth_headers, json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


# ===== VALIDATION =====

class TestProjectValidation:

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            ProjectCreate(name="Backwards", start_date="2024-05-01", end_date="2024-04-01")

    def test_progress_range(self):
        with pytest.raises(ValueError):
            ProjectCreate(name="Overachiever", start_date="2024-05-01", progress=120)

    def test_task_title_required(self):
        with pytest.raises(ValueError):
            TaskCreate(title=" ")

    def test_blank_code_on_update(self):
        with pytest.raises(ValueError):
            ProjectUpdate(code=" ")
        assert ProjectUpdate(code=None).code is None

    def test_task_due_before_start(self):
        with pytest.raises(ValueError):
            TaskCreate(title="Survey", start_date="2024-03-05", due_date="2024-03-01")


# ===== PROJECTS =====

class TestProjects:
    """Project endpoints"""

    def test_create_project_generates_code(self, project):
        assert project["code"] == "PRJ-001"
        assert project["status"] == "in-progress"
        assert Decimal(project["budget_variance"]) == Decimal("7500.00")

    def test_explicit_code_and_duplicates(self, client, auth_headers):
        payload = {"name": "Website", "code": "web-1", "start_date": "2024-01-01"}
        response = client.post("/projects/", headers=auth_headers, json=payload)
        assert response.json()["code"] == "WEB-1"

        response = client.post("/projects/", headers=auth_headers, json=payload)
        assert response.status_code == 409

    def test_generated_code_skips_typed_one(self, client, auth_headers):
        typed = client.post("/projects/", headers=auth_headers, json={
            "name": "Website", "code": "PRJ-001", "start_date": "2024-01-01"
        })
        assert typed.status_code == 201

        response = client.post("/projects/", headers=auth_headers, json={"name": "Intranet", "start_date": "2024-01-01"})
        assert response.status_code == 201
        assert response.json()["code"] == "PRJ-002"

    def test_update_with_blank_code(self, client, auth_headers, project):
        response = client.patch(f"/projects/{project['id']}", headers=auth_headers, json={"code": "  "})
        assert response.status_code == 422
        assert client.get(f"/projects/{project['id']}", headers=auth_headers).json()["code"] == "PRJ-001"

    def test_unknown_customer(self, client, auth_headers):
        response = client.post("/projects/", headers=auth_headers, json={
            "name": "Ghost", "start_date": "2024-01-01",
            "customer_id": "00000000-0000-0000-0000-000000000000"
        })
        assert response.status_code == 404

    def test_unknown_team_member(self, client, auth_headers):
        response = client.post("/projects/", headers=auth_headers, json={
            "name": "Ghost", "start_date": "2024-01-01",
            "team": ["00000000-0000-0000-0000-000000000000"]
        })
        assert response.status_code == 404

    def test_list_filters(self, client, auth_headers, project, admin_user):
        client.post("/projects/", headers=auth_headers, json={"name": "Archive Cleanup", "start_date": "2024-01-01"})

        assert client.get("/projects/", headers=auth_headers).json()["total"] == 2

        response = client.get("/projects/", headers=auth_headers, params={"status": "in-progress"})
        assert [p["name"] for p in response.json()["projects"]] == ["Office Renovation"]

        response = client.get("/projects/", headers=auth_headers, params={"manager_id": admin_user["id"]})
        assert response.json()["total"] == 1

        response = client.get("/projects/", headers=auth_headers, params={"search": "archive"})
        assert response.json()["projects"][0]["code"] == "PRJ-002"

    def test_completing_sets_full_progress(self, client, auth_headers, project):
        response = client.patch(f"/projects/{project['id']}", headers=auth_headers, json={"status": "completed"})
        assert response.status_code == 200
        assert response.json()["progress"] == 100

    def test_update_end_before_existing_start(self, client, auth_headers, project):
        response = client.patch(f"/projects/{project['id']}", headers=auth_headers, json={"end_date": "2024-01-01"})
        assert response.status_code == 400

    def test_delete_project_with_tasks(self, client, auth_headers, project, create_task):
        create_task("Demolition")
        response = client.delete(f"/projects/{project['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(f"/projects/{project['id']}", headers=auth_headers).status_code == 404


# ===== TASKS =====

class TestTasks:
    """Task endpoints and dependency rules"""

    def test_create_and_list(self, client, auth_headers, project, create_task):
        create_task("Plan layout", priority="high")
        create_task("Order furniture", status="done")

        response = client.get(f"/projects/{project['id']}/tasks", headers=auth_headers)
        assert {t["title"] for t in response.json()} == {"Plan layout", "Order furniture"}

        response = client.get(f"/projects/{project['id']}/tasks", headers=auth_headers, params={"status": "done"})
        assert [t["title"] for t in response.json()] == ["Order furniture"]

    def test_dependency_must_belong_to_project(self, client, auth_headers, project, create_task):
        other = client.post("/projects/", headers=auth_headers, json={"name": "Other", "start_date": "2024-01-01"}).json()
        foreign = client.post(f"/projects/{other['id']}/tasks", headers=auth_headers, json={"title": "Elsewhere"}).json()

        response = client.post(f"/projects/{project['id']}/tasks", headers=auth_headers, json={
            "title": "Depends on foreign", "dependencies": [foreign["id"]]
        })
        assert response.status_code == 400

    def test_self_dependency(self, client, auth_headers, project, create_task):
        task = create_task("Loop")
        response = client.patch(f"/projects/{project['id']}/tasks/{task['id']}", headers=auth_headers, json={
            "dependencies": [task["id"]]
        })
        assert response.status_code == 400

    def test_dependency_cycle(self, client, auth_headers, project, create_task):
        first = create_task("First")
        second = create_task("Second", dependencies=[first["id"]])
        third = create_task("Third", dependencies=[second["id"]])

        response = client.patch(f"/projects/{project['id']}/tasks/{first['id']}", headers=auth_headers, json={
            "dependencies": [third["id"]]
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Task dependencies cannot form a cycle"

    def test_update_task(self, client, auth_headers, project, create_task, admin_user):
        task = create_task("Paint walls")
        response = client.patch(f"/projects/{project['id']}/tasks/{task['id']}", headers=auth_headers, json={
            "status": "in-progress", "assignee_id": admin_user["id"]
        })
        assert response.status_code == 200
        assert response.json()["status"] == "in-progress"
        assert response.json()["assignee_id"] == admin_user["id"]

    def test_update_due_before_existing_start(self, client, auth_headers, project, create_task):
        task = create_task("Survey", start_date="2024-03-05")
        response = client.patch(f"/projects/{project['id']}/tasks/{task['id']}", headers=auth_headers, json={
            "due_date": "2024-03-01"
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Due date must be on or after the start date"

    def test_task_from_other_project_not_found(self, client, auth_headers, project, create_task):
        other = client.post("/projects/", headers=auth_headers, json={"name": "Other", "start_date": "2024-01-01"}).json()
        task = create_task("Mine")
        response = client.get(f"/projects/{other['id']}/tasks/{task['id']}", headers=auth_headers)
        assert response.status_code == 404

    def test_delete_task_drops_dependency(self, client, auth_headers, project, create_task):
        first = create_task("First")
        second = create_task("Second", dependencies=[first["id"]])

        response = client.delete(f"/projects/{project['id']}/tasks/{first['id']}", headers=auth_headers)
        assert response.status_code == 200

        remaining = client.get(f"/projects/{project['id']}/tasks/{second['id']}", headers=auth_headers).json()
        assert remaining["dependencies"] == []


# ===== VIEWS =====

class TestProjectViews:
    """Kanban board and timeline"""

    def test_kanban(self, client, auth_headers, project, create_task):
        create_task("Plan")
        create_task("Build", status="in-progress")
        create_task("Ship", status="done")

        response = client.get(f"/projects/{project['id']}/kanban", headers=auth_headers)
        assert response.status_code == 200
        columns = response.json()["columns"]
        assert list(columns) == ["todo", "in-progress", "done"]
        assert [t["title"] for t in columns["in-progress"]] == ["Build"]

    def test_timeline(self, client, auth_headers, project, create_task):
        create_task("Unscheduled")
        create_task("Fit out", start_date="2024-03-11", end_date="2024-03-20")
        create_task("Survey", start_date="2024-03-01", due_date="2024-03-05")

        response = client.get(f"/projects/{project['id']}/timeline", headers=auth_headers)
        assert response.status_code == 200
        rows = response.json()["tasks"]
        assert [r["title"] for r in rows] == ["Survey", "Fit out", "Unscheduled"]
        assert rows[0]["offset_days"] == 0
        assert rows[0]["duration_days"] == 5
        assert rows[1]["offset_days"] == 10
        assert rows[1]["duration_days"] == 10
        assert rows[2]["offset_days"] is None

    def test_requires_project_permission(self, client, make_user_headers):
        headers = make_user_headers(["inventory"])
        assert client.get("/projects/", headers=headers).status_code == 403

# ruff: noqa

from datetime import UTC, datetime, timedelta

from conftest import add_member, create_project, create_task


def test_task_for_missing_project_is_404(team):
    resp = team.client.post(
        "/api/tasks",
        json={"title": "Orphan", "project_id": 9999},
        headers=team.headers("manager"),
    )
    assert resp.status_code == 404
    assert resp.json()["success"] is False


def test_assignee_must_be_project_member(team):
    project = create_project(team)
    resp = team.client.post(
        "/api/tasks",
        json={"title": "Ship it", "project_id": project["id"], "assigned_to": team.ids["dev"]},
        headers=team.headers("manager"),
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "assigned_to"

    add_member(team, project["id"], "dev")
    task = create_task(team, project["id"], assigned_to=team.ids["dev"])
    assert task["assigned_to"] == team.ids["dev"]
    assert task["assignee"]["id"] == team.ids["dev"]


def test_developer_must_be_member_to_create_task(team):
    project = create_project(team)
    resp = team.client.post(
        "/api/tasks",
        json={"title": "Sneaky", "project_id": project["id"]},
        headers=team.headers("dev"),
    )
    assert resp.status_code == 403


def test_negative_estimate_is_rejected(team):
    project = create_project(team)
    resp = team.client.post(
        "/api/tasks",
        json={"title": "Bad", "project_id": project["id"], "estimated_hours": -1},
        headers=team.headers("manager"),
    )
    assert resp.status_code == 400


def test_status_update_normalizes_review_and_tracks_completion(team):
    client = team.client
    project = create_project(team)
    task = create_task(team, project["id"])

    review = client.put(f"/api/tasks/{task['id']}/status", json={"status": "review"}, headers=team.headers("manager"))
    assert review.status_code == 200
    assert review.json()["data"]["status"] == "in_review"
    assert review.json()["data"]["completed_at"] is None

    done = client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"}, headers=team.headers("manager"))
    assert done.json()["data"]["completed_at"] is not None

    reopened = client.put(f"/api/tasks/{task['id']}", json={"status": "todo"}, headers=team.headers("manager"))
    assert reopened.json()["data"]["completed_at"] is None


def test_assign_endpoint(team):
    project = create_project(team)
    add_member(team, project["id"], "dev")
    task = create_task(team, project["id"])
    resp = team.client.put(
        f"/api/tasks/{task['id']}/assign",
        json={"assigned_to": team.ids["dev"]},
        headers=team.headers("manager"),
    )
    assert resp.json()["data"]["assigned_to"] == team.ids["dev"]

    notes = team.client.get("/api/notifications", headers=team.headers("dev")).json()["data"]["items"]
    assert any(n["title"] == "Task assigned" for n in notes)


def test_delete_requires_creator_or_privileged(team):
    client = team.client
    project = create_project(team)
    add_member(team, project["id"], "dev")
    add_member(team, project["id"], "dev2")
    task = create_task(team, project["id"], by="dev")

    assert client.delete(f"/api/tasks/{task['id']}", headers=team.headers("dev2")).status_code == 403
    assert client.delete(f"/api/tasks/{task['id']}", headers=team.headers("dev")).status_code == 200
    assert client.get(f"/api/tasks/{task['id']}", headers=team.headers("manager")).status_code == 404


def test_task_filters_and_visibility(team):
    client = team.client
    mine = create_project(team, name="Mine")
    other = create_project(team, name="Other")
    add_member(team, mine["id"], "dev")
    yesterday = (datetime.now(UTC) - timedelta(days=1)).isoformat()
    create_task(team, mine["id"], title="Late", due_date=yesterday, priority="critical")
    create_task(team, mine["id"], title="Fine")
    create_task(team, other["id"], title="Elsewhere")

    dev_titles = {t["title"] for t in client.get("/api/tasks", headers=team.headers("dev")).json()["data"]["items"]}
    assert dev_titles == {"Late", "Fine"}

    overdue = client.get("/api/tasks", params={"overdue": "true"}, headers=team.headers("manager")).json()["data"]
    assert [t["title"] for t in overdue["items"]] == ["Late"]
    assert overdue["items"][0]["is_overdue"] is True

    searched = client.get("/api/tasks", params={"search": "else"}, headers=team.headers("manager")).json()["data"]
    assert [t["title"] for t in searched["items"]] == ["Elsewhere"]

    other_task_id = searched["items"][0]["id"]
    assert client.get(f"/api/tasks/{other_task_id}", headers=team.headers("dev")).status_code == 403


def test_my_tasks_and_project_tasks(team):
    client = team.client
    project = create_project(team)
    add_member(team, project["id"], "dev")
    create_task(team, project["id"], title="Assigned", assigned_to=team.ids["dev"])
    create_task(team, project["id"], title="Unassigned")

    mine = client.get("/api/tasks/my", headers=team.headers("dev")).json()["data"]
    assert [t["title"] for t in mine] == ["Assigned"]

    by_project = client.get(f"/api/tasks/project/{project['id']}", headers=team.headers("dev")).json()["data"]
    assert {t["title"] for t in by_project} == {"Assigned", "Unassigned"}


def test_overdue_flag_excludes_finished_tasks(team):
    client = team.client
    project = create_project(team)
    past = (datetime.now(UTC) - timedelta(days=3)).isoformat()
    future = (datetime.now(UTC) + timedelta(days=3)).isoformat()

    resp = client.post(
        "/api/tasks",
        json={"title": "Late", "project_id": project["id"], "due_date": past},
        headers=team.headers("manager"),
    )
    assert resp.status_code == 201
    late = resp.json()["data"]
    assert late["is_overdue"] is True

    finished = create_task(team, project["id"], title="Late but done", due_date=past, status="done")
    assert finished["is_overdue"] is False
    assert finished["completed_at"] is not None
    upcoming = create_task(team, project["id"], title="Upcoming", due_date=future)
    assert upcoming["is_overdue"] is False
    undated = create_task(team, project["id"], title="Someday")
    assert undated["is_overdue"] is False

    def titles(flag):
        resp = client.get("/api/tasks", params={"overdue": flag}, headers=team.headers("manager"))
        return sorted(t["title"] for t in resp.json()["data"]["items"])

    assert titles("true") == ["Late"]
    assert titles("false") == ["Late but done", "Someday", "Upcoming"]

    # Finishing the task clears the flag on the next read.
    done = client.put(f"/api/tasks/{late['id']}/status", json={"status": "done"}, headers=team.headers("manager"))
    assert done.json()["data"]["is_overdue"] is False
    assert client.get(f"/api/tasks/{late['id']}", headers=team.headers("manager")).json()["data"]["is_overdue"] is False
    assert titles("true") == []

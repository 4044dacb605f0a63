# ruff: noqa

from datetime import UTC, datetime, timedelta

from conftest import add_member, create_project, create_task


def test_dashboard_counts_and_overdue(team):
    client = team.client
    project = create_project(team, status="active")
    add_member(team, project["id"], "dev")
    past = (datetime.now(UTC) - timedelta(days=2)).isoformat()
    future = (datetime.now(UTC) + timedelta(days=2)).isoformat()
    late = create_task(team, project["id"], title="Late", due_date=past, assigned_to=team.ids["dev"])
    create_task(team, project["id"], title="Late but done", due_date=past, status="done")
    create_task(team, project["id"], title="Upcoming", due_date=future)

    resp = client.post(
        "/api/time-entries",
        json={"task_id": late["id"], "hours_spent": 2.5, "description": "triage"},
        headers=team.headers("dev"),
    )
    assert resp.status_code == 201

    data = client.get("/api/dashboard", headers=team.headers("admin")).json()["data"]
    assert data["projects"]["total"] == 1
    assert data["projects"]["active"] == 1
    assert data["tasks"]["total"] == 3
    assert data["tasks"]["completed"] == 1
    # Overdue excludes finished tasks.
    assert data["tasks"]["overdue"] == 1
    assert data["tasks"]["completion_rate"] == 33.33
    assert data["users"]["total"] == 5
    assert data["logged_hours"] == 2.5

    mine = client.get("/api/dashboard/user", headers=team.headers("dev")).json()["data"]
    assert mine["assigned_tasks"]["total"] == 1
    assert mine["logged_hours"] == 2.5

    per_project = client.get(f"/api/dashboard/project/{project['id']}", headers=team.headers("manager")).json()["data"]
    assert per_project["member_count"] == 2
    assert per_project["tasks"]["by_status"]["done"] == 1


def test_developer_dashboard_is_scoped(team):
    create_project(team)
    data = team.client.get("/api/dashboard", headers=team.headers("dev")).json()["data"]
    assert data["projects"]["total"] == 0
    assert data["users"]["total"] == 1


def test_dashboard_date_range_validation(team):
    client = team.client
    inverted = client.get(
        "/api/dashboard",
        params={"startDate": "2026-02-01T00:00:00", "endDate": "2026-01-01T00:00:00"},
        headers=team.headers("admin"),
    )
    assert inverted.status_code == 400

    too_long = client.get(
        "/api/dashboard",
        params={"startDate": "2022-01-01T00:00:00", "endDate": "2025-01-01T00:00:00"},
        headers=team.headers("admin"),
    )
    assert too_long.status_code == 400

    within = client.get(
        "/api/dashboard",
        params={"startDate": "2025-01-01T00:00:00", "endDate": "2025-06-01T00:00:00"},
        headers=team.headers("admin"),
    )
    assert within.status_code == 200
    assert within.json()["data"]["tasks"]["total"] == 0


def test_activity_log_records_changes(team):
    client = team.client
    project = create_project(team)
    client.put(f"/api/projects/{project['id']}", json={"status": "active"}, headers=team.headers("manager"))

    resp = client.get(
        f"/api/activities/entity/project/{project['id']}",
        params={"sortOrder": "asc"},
        headers=team.headers("admin"),
    )
    items = resp.json()["data"]["items"]
    assert [item["action"] for item in items] == ["created", "updated"]
    assert items[1]["old_values"] == {"status": "planning"}
    assert items[1]["new_values"] == {"status": "active"}
    assert items[1]["user"]["id"] == team.ids["manager"]

    single = client.get(f"/api/activities/{items[0]['id']}", headers=team.headers("manager"))
    assert single.json()["data"]["entity_type"] == "project"


def test_activity_filters_and_scoping(team):
    client = team.client
    create_project(team)
    by_user = client.get(f"/api/activities/user/{team.ids['manager']}", headers=team.headers("dev"))
    assert by_user.status_code == 403

    mine = client.get("/api/activities", headers=team.headers("dev")).json()["data"]
    assert mine["items"] == []

    ranged = client.get(
        "/api/activities",
        params={"startDate": "2000-01-01T00:00:00", "endDate": "2000-02-01T00:00:00"},
        headers=team.headers("admin"),
    )
    assert ranged.json()["data"]["pagination"]["total_items"] == 0

    bad = client.get(
        "/api/activities",
        params={"startDate": "2001-01-01T00:00:00", "endDate": "2000-02-01T00:00:00"},
        headers=team.headers("admin"),
    )
    assert bad.status_code == 400


def test_time_entries_are_owned(team):
    client = team.client
    project = create_project(team)
    add_member(team, project["id"], "dev")
    task = create_task(team, project["id"])
    entry = client.post(
        "/api/time-entries",
        json={"task_id": task["id"], "hours_spent": 1},
        headers=team.headers("dev"),
    ).json()["data"]

    assert client.post(
        "/api/time-entries",
        json={"task_id": task["id"], "hours_spent": 0},
        headers=team.headers("dev"),
    ).status_code == 400

    assert client.get("/api/time-entries", params={"user_id": team.ids["dev"]}, headers=team.headers("dev2")).status_code == 403
    listed = client.get("/api/time-entries", params={"user_id": team.ids["dev"]}, headers=team.headers("manager"))
    assert [e["id"] for e in listed.json()["data"]["items"]] == [entry["id"]]

    assert client.delete(f"/api/time-entries/{entry['id']}", headers=team.headers("manager")).status_code == 403
    assert client.delete(f"/api/time-entries/{entry['id']}", headers=team.headers("dev")).status_code == 200


def test_search_scopes_results(team):
    client = team.client
    visible = create_project(team, name="Rocket launch")
    create_project(team, name="Rocket secret")
    add_member(team, visible["id"], "dev")
    create_task(team, visible["id"], title="Fuel the rocket")

    dev = client.get("/api/search", params={"q": "rocket"}, headers=team.headers("dev")).json()["data"]
    assert [p["name"] for p in dev["projects"]] == ["Rocket launch"]
    assert [t["title"] for t in dev["tasks"]] == ["Fuel the rocket"]

    admin = client.get(
        "/api/search",
        params={"q": "rocket", "types": "projects"},
        headers=team.headers("admin"),
    ).json()["data"]
    assert admin["totals"] == {"projects": 2}
    assert admin["tasks"] == []

    assert client.get("/api/search", params={"q": "r"}, headers=team.headers("admin")).status_code == 400
    assert client.get(
        "/api/search",
        params={"q": "rocket", "types": "files"},
        headers=team.headers("admin"),
    ).status_code == 400

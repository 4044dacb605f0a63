# ruff: noqa

from conftest import add_member, create_project, create_task


def _setup(team):
    project = create_project(team)
    add_member(team, project["id"], "dev")
    add_member(team, project["id"], "dev2")
    task = create_task(team, project["id"], by="dev", assigned_to=team.ids["dev2"])
    return project, task


def _titles(team, name):
    resp = team.client.get("/api/notifications", headers=team.headers(name))
    return [n["title"] for n in resp.json()["data"]["items"]]


def test_comment_notifies_assignee_creator_and_managers_but_not_author(team):
    client = team.client
    _, task = _setup(team)
    before = {name: _titles(team, name).count("New comment") for name in ("dev", "dev2", "manager")}
    assert before == {"dev": 0, "dev2": 0, "manager": 0}

    resp = client.post(
        "/api/comments",
        json={"task_id": task["id"], "content": "Looks good to me"},
        headers=team.headers("dev2"),
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["author"]["id"] == team.ids["dev2"]

    assert _titles(team, "dev").count("New comment") == 1
    assert _titles(team, "manager").count("New comment") == 1
    assert _titles(team, "dev2").count("New comment") == 0


def test_comment_listing_and_ownership(team):
    client = team.client
    _, task = _setup(team)
    created = client.post(
        f"/api/tasks/{task['id']}/comments",
        json={"content": "First"},
        headers=team.headers("dev"),
    ).json()["data"]

    listed = client.get(f"/api/comments/task/{task['id']}", headers=team.headers("dev2")).json()["data"]
    assert [c["content"] for c in listed] == ["First"]
    assert client.get(f"/api/tasks/{task['id']}/comments", headers=team.headers("dev")).json()["data"] == listed

    other = client.put(f"/api/comments/{created['id']}", json={"content": "Edited"}, headers=team.headers("dev2"))
    assert other.status_code == 403
    own = client.put(f"/api/comments/{created['id']}", json={"content": "Edited"}, headers=team.headers("dev"))
    assert own.json()["data"]["content"] == "Edited"

    assert client.delete(f"/api/comments/{created['id']}", headers=team.headers("admin")).status_code == 200
    assert client.get(f"/api/comments/{created['id']}", headers=team.headers("dev")).status_code == 404


def test_blank_comment_rejected(team):
    client = team.client
    _, task = _setup(team)
    for content in ("", "   ", "\n\t"):
        resp = client.post("/api/comments", json={"task_id": task["id"], "content": content}, headers=team.headers("dev"))
        assert resp.status_code == 400, content

    created = client.post(
        "/api/comments",
        json={"task_id": task["id"], "content": "  padded  "},
        headers=team.headers("dev"),
    ).json()["data"]
    assert created["content"] == "padded"

    edited = client.put(f"/api/comments/{created['id']}", json={"content": "   "}, headers=team.headers("dev"))
    assert edited.status_code == 400
    assert client.get(f"/api/comments/{created['id']}", headers=team.headers("dev")).json()["data"]["content"] == "padded"


def test_notification_read_flow_is_scoped_to_owner(team):
    client = team.client
    for title in ("One", "Two"):
        resp = client.post(
            "/api/notifications",
            json={"user_id": team.ids["dev"], "title": title, "message": "hello", "type": "warning"},
            headers=team.headers("manager"),
        )
        assert resp.status_code == 201

    assert client.post(
        "/api/notifications",
        json={"user_id": team.ids["dev2"], "title": "x", "message": "y"},
        headers=team.headers("dev"),
    ).status_code == 403

    unread = client.get("/api/notifications/unread-count", headers=team.headers("dev")).json()["data"]
    assert unread == {"count": 2}

    items = client.get("/api/notifications", params={"type": "warning"}, headers=team.headers("dev")).json()["data"]["items"]
    first_id = items[0]["id"]
    assert client.get(f"/api/notifications/{first_id}", headers=team.headers("dev2")).status_code == 404

    read = client.patch(f"/api/notifications/{first_id}/read", headers=team.headers("dev")).json()["data"]
    assert read["is_read"] is True
    assert read["read_at"] is not None

    unread_only = client.get("/api/notifications", params={"is_read": "false"}, headers=team.headers("dev"))
    assert len(unread_only.json()["data"]["items"]) == 1

    marked = client.patch("/api/notifications/mark-all-read", headers=team.headers("dev")).json()["data"]
    assert marked == {"updated": 1}
    assert client.get("/api/notifications/unread-count", headers=team.headers("dev")).json()["data"]["count"] == 0

    assert client.delete(f"/api/notifications/{first_id}", headers=team.headers("dev")).status_code == 200
    assert client.get(f"/api/notifications/{first_id}", headers=team.headers("dev")).status_code == 404

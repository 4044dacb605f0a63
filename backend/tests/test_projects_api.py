# ruff: noqa

from conftest import add_member, create_project


def test_launch_project_lifecycle(team):
    client = team.client
    headers = team.headers("manager")

    created = create_project(team)
    project_id = created["id"]
    assert created["name"] == "Launch"
    assert created["status"] == "planning"
    assert created["priority"] == "high"

    fetched = client.get(f"/api/projects/{project_id}", headers=headers).json()["data"]
    assert (fetched["name"], fetched["status"], fetched["priority"]) == ("Launch", "planning", "high")
    # The creator joins as a manager member.
    assert [(m["user_id"], m["role"]) for m in fetched["members"]] == [(team.ids["manager"], "manager")]

    updated = client.put(f"/api/projects/{project_id}", json={"status": "active"}, headers=headers)
    assert updated.status_code == 200
    assert client.get(f"/api/projects/{project_id}", headers=headers).json()["data"]["status"] == "active"

    assert client.delete(f"/api/projects/{project_id}", headers=headers).status_code == 200
    missing = client.get(f"/api/projects/{project_id}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["success"] is False


def test_developer_cannot_delete_other_managers_project(team):
    client = team.client
    project = create_project(team)
    add_member(team, project["id"], "dev")

    resp = client.delete(f"/api/projects/{project['id']}", headers=team.headers("dev"))
    assert resp.status_code == 403

    still_there = client.get(f"/api/projects/{project['id']}", headers=team.headers("manager"))
    assert still_there.status_code == 200
    assert still_there.json()["data"]["name"] == "Launch"


def test_developer_cannot_create_project(team):
    resp = team.client.post("/api/projects", json={"name": "Nope"}, headers=team.headers("dev"))
    assert resp.status_code == 403


def test_end_date_must_follow_start_date(team):
    resp = team.client.post(
        "/api/projects",
        json={"name": "Dated", "start_date": "2026-05-01", "end_date": "2026-04-01"},
        headers=team.headers("manager"),
    )
    assert resp.status_code == 400

    project = create_project(team, start_date="2026-05-01")
    resp = team.client.put(
        f"/api/projects/{project['id']}",
        json={"end_date": "2026-04-01"},
        headers=team.headers("manager"),
    )
    assert resp.status_code == 400


def test_developers_only_see_member_projects(team):
    client = team.client
    visible = create_project(team, name="Visible")
    create_project(team, name="Hidden")
    add_member(team, visible["id"], "dev")

    names = [p["name"] for p in client.get("/api/projects", headers=team.headers("dev")).json()["data"]["items"]]
    assert names == ["Visible"]
    all_names = {p["name"] for p in client.get("/api/projects", headers=team.headers("admin")).json()["data"]["items"]}
    assert all_names == {"Visible", "Hidden"}

    hidden_id = next(
        p["id"]
        for p in client.get("/api/projects", headers=team.headers("admin")).json()["data"]["items"]
        if p["name"] == "Hidden"
    )
    assert client.get(f"/api/projects/{hidden_id}", headers=team.headers("dev")).status_code == 403


def test_pagination_is_contiguous_and_sorted(team):
    client = team.client
    for name in ["Delta", "Alpha", "Charlie", "Bravo", "Echo"]:
        create_project(team, name=name)

    def page(n):
        resp = client.get(
            "/api/projects",
            params={"page": n, "limit": 2, "sortBy": "name", "sortOrder": "asc"},
            headers=team.headers("manager"),
        )
        return resp.json()["data"]

    first, second, third = page(1), page(2), page(3)
    names = [p["name"] for chunk in (first, second, third) for p in chunk["items"]]
    assert names == ["Alpha", "Bravo", "Charlie", "Delta", "Echo"]
    assert len(first["items"]) == 2
    assert first["pagination"]["total_items"] == 5
    assert first["pagination"]["total_pages"] == 3
    assert third["pagination"]["has_next_page"] is False


def test_deep_pagination_is_rejected(team):
    resp = team.client.get("/api/projects", params={"page": 101, "limit": 100}, headers=team.headers("manager"))
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "pagination"


def test_unknown_sort_key_falls_back(team):
    create_project(team, name="Only")
    resp = team.client.get("/api/projects", params={"sortBy": "password_hash"}, headers=team.headers("manager"))
    assert resp.status_code == 200


def test_member_management(team):
    client = team.client
    project = create_project(team)
    project_id = project["id"]
    add_member(team, project_id, "dev")

    duplicate = client.post(
        f"/api/projects/{project_id}/members",
        json={"user_id": team.ids["dev"]},
        headers=team.headers("manager"),
    )
    assert duplicate.status_code == 409

    bad_role = client.post(
        f"/api/projects/{project_id}/members",
        json={"user_id": team.ids["dev2"], "role": "owner"},
        headers=team.headers("manager"),
    )
    assert bad_role.status_code == 400

    by_dev = client.post(
        f"/api/projects/{project_id}/members",
        json={"user_id": team.ids["dev2"]},
        headers=team.headers("dev"),
    )
    assert by_dev.status_code == 403

    role = client.put(
        f"/api/projects/{project_id}/members/{team.ids['dev']}/role",
        json={"role": "tester"},
        headers=team.headers("manager"),
    )
    assert role.json()["data"]["role"] == "tester"

    owner = client.delete(f"/api/projects/{project_id}/members/{team.ids['manager']}", headers=team.headers("admin"))
    assert owner.status_code == 400

    removed = client.delete(f"/api/projects/{project_id}/members/{team.ids['dev']}", headers=team.headers("manager"))
    assert removed.status_code == 200
    members = client.get(f"/api/projects/{project_id}/members", headers=team.headers("manager")).json()["data"]
    assert [m["user_id"] for m in members] == [team.ids["manager"]]


def test_added_member_is_notified(team):
    project = create_project(team)
    add_member(team, project["id"], "dev")
    items = team.client.get("/api/notifications", headers=team.headers("dev")).json()["data"]["items"]
    assert items[0]["title"] == "Added to project"
    assert items[0]["related_entity_id"] == project["id"]


def test_delete_project_is_owner_or_admin(team):
    client = team.client
    project = create_project(team)
    assert client.delete(f"/api/projects/{project['id']}", headers=team.headers("manager2")).status_code == 403
    assert client.delete(f"/api/projects/{project['id']}", headers=team.headers("admin")).status_code == 200


def test_list_search_treats_wildcards_literally(team):
    create_project(team, name="Launch")
    create_project(team, name="Ship 100% of scope")
    create_project(team, name="snake_case rename")

    def names(term):
        resp = team.client.get("/api/projects", params={"search": term}, headers=team.headers("admin"))
        return sorted(p["name"] for p in resp.json()["data"]["items"])

    assert names("%") == ["Ship 100% of scope"]
    assert names("_") == ["snake_case rename"]
    assert names("launch") == ["Launch"]

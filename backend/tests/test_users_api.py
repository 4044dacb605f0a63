# ruff: noqa


def test_user_listing_is_privileged_only(team):
    client = team.client
    assert client.get("/api/users", headers=team.headers("dev")).status_code == 403
    resp = client.get("/api/users", params={"role": "developer"}, headers=team.headers("manager"))
    assert resp.status_code == 200
    emails = {item["email"] for item in resp.json()["data"]["items"]}
    assert emails == {"dev@example.com", "dev2@example.com"}


def test_manager_creates_only_developers(team):
    client = team.client
    body = {
        "email": "lead@example.com",
        "password": "Secret123",
        "first_name": "Lea",
        "last_name": "Lead",
        "role": "manager",
    }
    assert client.post("/api/users", json=body, headers=team.headers("manager")).status_code == 403
    assert client.post("/api/users", json=body, headers=team.headers("admin")).status_code == 201


def test_profile_access_is_self_or_privileged(team):
    client = team.client
    dev_id = team.ids["dev"]
    assert client.get(f"/api/users/{dev_id}", headers=team.headers("dev")).status_code == 200
    assert client.get(f"/api/users/{dev_id}", headers=team.headers("dev2")).status_code == 403
    assert client.get(f"/api/users/{dev_id}", headers=team.headers("manager")).status_code == 200


def test_update_cannot_change_role(team):
    client = team.client
    dev_id = team.ids["dev"]
    resp = client.put(
        f"/api/users/{dev_id}",
        json={"first_name": "Devon", "role": "admin"},
        headers=team.headers("dev"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["first_name"] == "Devon"
    assert resp.json()["data"]["role"] == "developer"


def test_soft_delete_and_reactivate(team):
    client = team.client
    dev_id = team.ids["dev"]
    assert client.delete(f"/api/users/{dev_id}", headers=team.headers("dev2")).status_code == 403
    assert client.delete(f"/api/users/{dev_id}", headers=team.headers("admin")).status_code == 200

    profile = client.get(f"/api/users/{dev_id}", headers=team.headers("admin")).json()["data"]
    assert profile["is_active"] is False

    resp = client.post(f"/api/users/{dev_id}/reactivate", headers=team.headers("admin"))
    assert resp.json()["data"]["is_active"] is True


def test_role_change_is_admin_only(team):
    client = team.client
    dev_id = team.ids["dev"]
    body = {"role": "manager"}
    assert client.put(f"/api/users/{dev_id}/role", json=body, headers=team.headers("manager")).status_code == 403
    resp = client.put(f"/api/users/{dev_id}/role", json=body, headers=team.headers("admin"))
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "manager"


def test_user_stats(team):
    resp = team.client.get("/api/users/stats", headers=team.headers("admin"))
    data = resp.json()["data"]
    assert data["total"] == 5
    assert data["by_role"] == {"admin": 1, "manager": 2, "developer": 2}

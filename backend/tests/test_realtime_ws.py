# ruff: noqa

import pytest
from fastapi import WebSocketDisconnect

from conftest import add_member, create_project, create_task


def _ws_url(team, name):
    return f"/ws?token={team.tokens[name]}"


def test_handshake_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws?token=not-a-jwt"):
            pass
    assert exc_info.value.code == 4001


def test_handshake_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws"):
            pass
    assert exc_info.value.code == 4001


def test_typing_flows_between_project_members(team):
    project = create_project(team)
    add_member(team, project["id"], "dev")
    room = f"project_{project['id']}"

    with team.client.websocket_connect(_ws_url(team, "manager")) as alice:
        first = alice.receive_json()
        assert first["event"] == "online_users"
        assert team.ids["manager"] in first["data"]["user_ids"]

        with team.client.websocket_connect(_ws_url(team, "dev")) as bob:
            assert bob.receive_json()["event"] == "online_users"
            online = alice.receive_json()
            assert online == {"event": "user_online", "data": {"user_id": team.ids["dev"], "name": "Dev User"}}

            alice.send_json({"event": "join_project", "data": {"project_id": project["id"]}})
            joined = alice.receive_json()
            assert joined["event"] == "joined_project"
            assert joined["data"]["room"] == room

            bob.send_json({"event": "join_project", "data": {"project_id": project["id"]}})
            assert bob.receive_json()["data"]["online_user_ids"] == sorted([team.ids["manager"], team.ids["dev"]])

            typing = {"event": "typing_start", "data": {"room": room, "context": "task", "context_id": 1}}
            alice.send_json(typing)
            started = bob.receive_json()
            assert started["event"] == "typing_start"
            assert started["data"]["user_id"] == team.ids["manager"]

            # A repeated start with the same context is not re-announced.
            alice.send_json(typing)
            alice.send_json({"event": "typing_stop", "data": {"room": room}})
            stopped = bob.receive_json()
            assert stopped["event"] == "typing_stop"
            assert team.client.app.state.hub.active_typers(room) == []


def test_join_requires_project_access(team):
    project = create_project(team)
    with team.client.websocket_connect(_ws_url(team, "dev2")) as ws:
        ws.receive_json()
        ws.send_json({"event": "join_project", "data": {"project_id": project["id"]}})
        reply = ws.receive_json()
        assert reply["event"] == "error"
        assert reply["data"]["event"] == "join_project"

        ws.send_json({"event": "typing_start", "data": {"room": f"project_{project['id']}"}})
        assert ws.receive_json()["data"]["message"] == "Join the project before typing in it"


def test_malformed_and_unknown_frames_get_errors(team):
    with team.client.websocket_connect(_ws_url(team, "dev")) as ws:
        ws.receive_json()
        ws.send_text("{not json")
        assert ws.receive_json() == {"event": "error", "data": {"message": "Malformed frame", "event": None}}
        ws.send_json({"event": "dance", "data": {}})
        assert ws.receive_json()["data"]["message"] == "Unknown event: dance"


def test_status_update_over_socket_is_broadcast_to_room(team):
    project = create_project(team)
    add_member(team, project["id"], "dev")
    task = create_task(team, project["id"], assigned_to=team.ids["dev"])

    with team.client.websocket_connect(_ws_url(team, "dev")) as ws:
        ws.receive_json()
        ws.send_json({"event": "join_project", "data": {"project_id": project["id"]}})
        ws.receive_json()
        ws.send_json({"event": "task_status_update", "data": {"task_id": task["id"], "status": "review"}})
        update = ws.receive_json()
        assert update["event"] == "task_status_updated"
        assert update["data"]["status"] == "in_review"
        assert update["data"]["previous_status"] == "todo"
        assert update["data"]["updated_by"] == team.ids["dev"]

    resp = team.client.get(f"/api/tasks/{task['id']}", headers=team.headers("dev"))
    assert resp.json()["data"]["status"] == "in_review"

# ruff: noqa

import json

import httpx

from teamboard.integrations.llm import LLMClient, LLMConfig
from teamboard.integrations.prompts import USER_STORIES_TEMPLATE, render_prompt

from conftest import add_member, create_project, create_task


def _install_llm(client, handler):
    config = LLMConfig(api_key="test-key", base_url="https://llm.test/v1/chat/completions", model="test-model")
    transport = httpx.MockTransport(handler)
    client.app.state.llm = LLMClient(config, client=httpx.AsyncClient(transport=transport))


def test_generate_without_configuration_returns_503(team):
    resp = team.client.post("/api/ai/generate", json={"prompt": "hello"}, headers=team.headers("dev"))
    assert resp.status_code == 503
    assert resp.json()["success"] is False


def test_generate_returns_completion(team):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Ship it.  "}}]})

    _install_llm(team.client, handler)
    resp = team.client.post("/api/ai/generate", json={"prompt": "Summarize"}, headers=team.headers("dev"))
    assert resp.status_code == 200
    assert resp.json()["data"] == {"text": "Ship it."}
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["messages"][0]["role"] == "system"
    assert seen["body"]["messages"][-1] == {"role": "user", "content": "Summarize"}


def test_upstream_failure_maps_to_503(team):
    _install_llm(team.client, lambda request: httpx.Response(500, json={"error": "boom"}))
    resp = team.client.post("/api/ai/generate", json={"prompt": "Summarize"}, headers=team.headers("dev"))
    assert resp.status_code == 503


def test_malformed_completion_maps_to_503(team):
    _install_llm(team.client, lambda request: httpx.Response(200, json={"choices": []}))
    resp = team.client.post("/api/ai/generate", json={"prompt": "Summarize"}, headers=team.headers("dev"))
    assert resp.status_code == 503


def test_user_stories_prompt_includes_project_tasks(team):
    project = create_project(team, name="Billing revamp", description="Move invoices to the new ledger")
    add_member(team, project["id"], "dev")
    create_task(team, project["id"], title="Export invoices")
    prompts = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["messages"][-1]["content"])
        return httpx.Response(200, json={"choices": [{"message": {"content": "As a user..."}}]})

    _install_llm(team.client, handler)
    resp = team.client.post(
        f"/api/ai/projects/{project['id']}/user-stories",
        json={"count": 3},
        headers=team.headers("dev"),
    )
    assert resp.status_code == 200
    assert "Billing revamp" in prompts[0]
    assert "Export invoices" in prompts[0]

    outsider = team.client.post(
        f"/api/ai/projects/{project['id']}/user-stories",
        json={"count": 3},
        headers=team.headers("dev2"),
    )
    assert outsider.status_code == 403


def test_prompt_templates_render():
    class _Project:
        name = "Atlas"
        status = "planning"
        priority = "low"
        description = None

    text = render_prompt(USER_STORIES_TEMPLATE, project=_Project(), tasks=[], count=2, focus=None)
    assert "Atlas" in text

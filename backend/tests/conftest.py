# ruff: noqa

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from fastapi.testclient import TestClient

from teamboard.core.config import Settings
from teamboard.core.roles import Role
from teamboard.core.security import hash_password
from teamboard.main import create_app
from teamboard.models.users import User

PASSWORD = "Secret123"


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'teamboard-test.db'}",
        "jwt_secret": "test-secret",
        "bcrypt_rounds": 4,
        "rate_limit_enabled": False,
        "typing_ttl_seconds": 0,
        "llm_api_key": "",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def seed_user(
    client: TestClient,
    *,
    email: str,
    role: Role,
    first_name: str = "Test",
    last_name: str = "User",
    is_active: bool = True,
) -> int:
    async def _create() -> int:
        async with client.app.state.session_maker() as session:
            user = User(
                email=email,
                password_hash=hash_password(PASSWORD, rounds=4),
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                is_active=is_active,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user.id

    return client.portal.call(_create)


def token_for(client: TestClient, user_id: int, role: Role) -> str:
    return client.app.state.tokens.issue({"id": user_id, "role": role})


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@dataclass
class Team:
    """A seeded set of accounts with ready-made auth headers."""

    client: TestClient
    ids: dict[str, int] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)

    def headers(self, name: str) -> dict[str, str]:
        return bearer(self.tokens[name])


ACCOUNTS = {
    "admin": Role.ADMIN,
    "manager": Role.MANAGER,
    "manager2": Role.MANAGER,
    "dev": Role.DEVELOPER,
    "dev2": Role.DEVELOPER,
}


@pytest.fixture
def team(client) -> Team:
    seeded = Team(client=client)
    for name, role in ACCOUNTS.items():
        user_id = seed_user(client, email=f"{name}@example.com", role=role, first_name=name.title())
        seeded.ids[name] = user_id
        seeded.tokens[name] = token_for(client, user_id, role)
    return seeded


def create_project(team: Team, owner: str = "manager", **fields) -> dict:
    body = {"name": "Launch", "status": "planning", "priority": "high", **fields}
    resp = team.client.post("/api/projects", json=body, headers=team.headers(owner))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def add_member(team: Team, project_id: int, member: str, *, by: str = "manager", role: str = "developer") -> None:
    resp = team.client.post(
        f"/api/projects/{project_id}/members",
        json={"user_id": team.ids[member], "role": role},
        headers=team.headers(by),
    )
    assert resp.status_code == 201, resp.text


def create_task(team: Team, project_id: int, *, by: str = "manager", **fields) -> dict:
    body = {"title": "Write release notes", "project_id": project_id, **fields}
    resp = team.client.post("/api/tasks", json=body, headers=team.headers(by))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]

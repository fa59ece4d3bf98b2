import os

# Keep test runs off the network and out of logs/, whatever a local .env says.
os.environ["LOG_MODE"] = "stdout"
os.environ["LLM_API_KEY"] = ""
os.environ["ADMIN_EMAIL"] = "admin@iustime.com"
os.environ["ADMIN_PASSWORD"] = "admin"
os.environ["APP_TIMEZONE"] = "Europe/Madrid"

from typing import Any, Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402

from workline import create_app  # noqa: E402
from workline.config import TestingConfig  # noqa: E402
from workline.extensions import shutdown_extensions  # noqa: E402


ADMIN = {"email": "admin@iustime.com", "password": "admin"}


class FakeLLM:
    """Stands in for LLMChains; returns ``reply`` or raises ``error``."""

    def __init__(self, reply: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict[str, Any]]] = []

    async def chat_completions_parse(self, messages, *, pydantic_model, **kwargs):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return pydantic_model.model_validate(self.reply)


@pytest.fixture
async def app(tmp_path):
    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite+aiosqlite:///{(tmp_path / 'workline.sqlite').as_posix()}"

    app = await create_app(Config)
    yield app
    await shutdown_extensions(app)


@pytest.fixture
def client(app):
    return app.test_client()


async def login(client, email: str = ADMIN["email"], password: str = ADMIN["password"]):
    resp = await client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, await resp.get_json()
    return (await resp.get_json())["data"]


@pytest.fixture
async def admin_client(client):
    await login(client)
    return client


@pytest.fixture
async def line_id(admin_client) -> str:
    resp = await admin_client.get("/lines")
    return (await resp.get_json())["data"][0]["id"]


async def create_project(client, line_id: str, **overrides) -> Dict[str, Any]:
    body = {
        "name": "Portal",
        "start_date": "2024-05-01",
        "end_date": "2024-06-30",
        **overrides,
    }
    resp = await client.post(f"/lines/{line_id}/projects", json=body)
    assert resp.status_code == 201, await resp.get_json()
    return (await resp.get_json())["data"]


async def create_task(client, line_id: str, project_id: str, **overrides) -> Dict[str, Any]:
    body = {
        "project_id": project_id,
        "title": "Task",
        "start_date": "2024-05-02",
        "end_date": "2024-05-10",
        **overrides,
    }
    resp = await client.post(f"/lines/{line_id}/tasks", json=body)
    assert resp.status_code == 201, await resp.get_json()
    return (await resp.get_json())["data"]


async def create_user(client, **overrides) -> Dict[str, Any]:
    body = {"name": "Lucía", "email": "lucia@iustime.com", "password": "secret", **overrides}
    resp = await client.post("/users", json=body)
    assert resp.status_code == 201, await resp.get_json()
    return (await resp.get_json())["data"]

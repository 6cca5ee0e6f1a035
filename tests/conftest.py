"""Shared fixtures: an app bound to a temporary database and upload folder."""

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

PASSWORD = "secret123"


@dataclass
class Account:
    id: int
    username: str
    token: str

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret="test-secret",
        database_path=str(tmp_path / "test.sqlite3"),
        upload_folder=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app, client):
    # client fixture runs the lifespan, so the schema exists
    return app.state.db


def register(client, username: str, email: str | None = None, password: str = PASSWORD):
    return client.post(
        "/api/register",
        json={"username": username, "email": email or f"{username}@example.com", "password": password},
    )


def login(client, username: str, password: str = PASSWORD):
    return client.post("/api/login", json={"username": username, "password": password})


@pytest.fixture
def make_account(client):
    def _make(username: str) -> Account:
        resp = register(client, username)
        assert resp.status_code == 201, resp.text
        token = login(client, username).json()["token"]
        return Account(id=resp.json()["user"]["id"], username=username, token=token)

    return _make


@pytest.fixture
def alice(make_account) -> Account:
    return make_account("alice")


@pytest.fixture
def bob(make_account) -> Account:
    return make_account("bob")


@pytest.fixture
def admin(make_account, db) -> Account:
    account = make_account("root_admin")
    with db.connect() as conn:
        conn.execute("UPDATE users SET role = 'admin' WHERE id = ?", (account.id,))
        conn.commit()
    return account


@pytest.fixture
def make_post(client):
    def _make(account: Account, community: str = "/gen/", **extra) -> dict:
        body = {"title": "Hello", "content": "First post", "community": community}
        body.update(extra)
        resp = client.post("/api/posts", json=body, headers=account.headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


def count_rows(db, table: str) -> int:
    with db.connect() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

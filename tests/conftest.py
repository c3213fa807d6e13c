import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test database and secrets before importing the app
os.environ["DATABASE_PATH"] = "test_data/test.db"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["CODESTRAL_API_URL"] = ""
os.environ["CODESTRAL_API_KEY"] = ""


@pytest.fixture(autouse=True)
def test_db(tmp_path):
    import coderush.db as db_module

    db_module.DB_PATH = Path(tmp_path) / "test.db"
    db_module.init_db()
    yield db_module.DB_PATH


@pytest.fixture
def client(test_db):
    from coderush.main import app

    with TestClient(app) as c:
        yield c


def signup(client, username="alice", email="alice@example.com", password="password123"):
    return client.post(
        "/signup",
        data={"username": username, "email": email, "password": password},
        follow_redirects=False,
    )


def user_id(username: str) -> int:
    from coderush.db import get_connection

    with get_connection() as conn:
        return conn.execute("SELECT id FROM users WHERE username = ?", (username,)).fetchone()["id"]


@pytest.fixture
def auth_client(client):
    resp = signup(client)
    assert resp.status_code == 303
    return client


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_data():
    yield
    import shutil

    test_dir = Path("test_data")
    if test_dir.exists():
        shutil.rmtree(test_dir)

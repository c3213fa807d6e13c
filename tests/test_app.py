def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_db_init(client):
    from coderush.db import get_connection

    with get_connection() as conn:
        tables = conn.execute(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
        ).fetchall()
        names = [t["name"] for t in tables]

    assert "users" in names
    assert "profiles" in names
    assert "attempts" in names
    assert "api_usage" in names
    assert "public_leaderboard" in names


def test_init_db_is_idempotent(client):
    from coderush.db import init_db

    init_db()
    init_db()


def test_home_renders_problem_cards(auth_client):
    resp = auth_client.get("/")
    assert resp.status_code == 200
    assert "Welcome, alice!" in resp.text
    assert "Reverse String" in resp.text
    assert "Solved 0 / 3" in resp.text
    assert 'href="/problem1"' in resp.text
    assert 'href="/problem2"' not in resp.text


def test_cors_preflight_on_verify(client):
    resp = client.options(
        "/functions/v1/verify-code",
        headers={
            "Origin": "http://localhost:8080",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )
    assert resp.status_code == 200
    assert "access-control-allow-origin" in resp.headers

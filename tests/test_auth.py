from conftest import signup, user_id

from coderush.auth.utils import create_token, decode_token, hash_password, verify_password
from coderush.db import get_profile


def test_password_hash():
    password = "testpassword123"
    hashed = hash_password(password)
    assert hashed != password
    assert verify_password(password, hashed)
    assert not verify_password("wrong", hashed)


def test_jwt_token():
    token = create_token(42)
    assert token
    assert decode_token(token) == 42


def test_invalid_token():
    assert decode_token("invalid") is None
    assert decode_token("") is None
    assert decode_token(None) is None


def test_signup_signs_in(client):
    resp = signup(client)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"
    assert "auth_token" in resp.cookies
    assert "coderush_user" in resp.cookies


def test_signup_creates_profile(client):
    signup(client, username="bob", email="Bob@Example.com")
    profile = get_profile(user_id("bob"))
    assert profile["username"] == "bob"
    assert profile["email"] == "bob@example.com"
    assert profile["time_easy_ms"] is None


def test_signup_short_password(client):
    resp = signup(client, password="short")
    assert resp.status_code == 400
    assert "at least 8 characters" in resp.text


def test_signup_username_taken(client):
    signup(client)
    client.cookies.clear()
    resp = signup(client, email="other@example.com")
    assert resp.status_code == 400
    assert "Username already taken" in resp.text


def test_signup_email_taken(client):
    signup(client)
    client.cookies.clear()
    resp = signup(client, username="other")
    assert resp.status_code == 400


def test_signup_missing_fields(client):
    resp = client.post("/signup", data={"username": "x", "email": "", "password": "password123"})
    assert resp.status_code == 400


def test_login(client):
    signup(client)
    client.cookies.clear()
    resp = client.post(
        "/login",
        data={"username": "alice", "email": "alice@example.com", "password": "password123"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert "auth_token" in resp.cookies


def test_login_updates_profile_username(client):
    signup(client)
    uid = user_id("alice")
    client.cookies.clear()
    client.post(
        "/login",
        data={"username": "ally", "email": "alice@example.com", "password": "password123"},
    )
    assert get_profile(uid)["username"] == "ally"


def test_login_invalid(client):
    resp = client.post(
        "/login",
        data={"username": "noexist", "email": "no@example.com", "password": "wrongpass"},
    )
    assert resp.status_code == 401
    assert "Invalid email or password" in resp.text


def test_login_page_redirects_when_signed_in(auth_client):
    resp = auth_client.get("/login", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "/"


def test_signup_view(client):
    resp = client.get("/login?view=signup")
    assert resp.status_code == 200
    assert "Create your account" in resp.text


def test_logout_clears_state(auth_client):
    resp = auth_client.post("/logout", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"

    resp = auth_client.get("/", follow_redirects=False)
    assert resp.headers["location"] == "/login"


def test_signup_rejects_password_over_bcrypt_limit(client):
    resp = signup(client, password="p" * 80)
    assert resp.status_code == 400
    assert "at most 72 bytes" in resp.text
    assert "auth_token" not in client.cookies


def test_login_rejects_password_over_bcrypt_limit(client):
    signup(client)
    client.cookies.clear()
    resp = client.post(
        "/login",
        data={"username": "alice", "email": "alice@example.com", "password": "é" * 40},
    )
    assert resp.status_code == 400
    assert "at most 72 bytes" in resp.text


def test_verify_password_refuses_long_input():
    hashed = hash_password("password123")
    assert verify_password("x" * 100, hashed) is False

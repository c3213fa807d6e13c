import sqlite3

from conftest import signup, user_id

import coderush.db as db_module
import coderush.leaderboard.router as leaderboard_router
from coderush.db import fetch_leaderboard_rows, save_problem_time, upsert_profile
from coderush.leaderboard.router import _sort_key, build_leaderboard, display_name
from coderush.models import LeaderboardEntry


def row(username, easy=None, medium=None, hard=None, **extra):
    return {
        "id": extra.get("id", 1),
        "username": username,
        "email": extra.get("email"),
        "time_easy_ms": easy,
        "time_medium_ms": medium,
        "time_hard_ms": hard,
    }


def test_display_name_fallbacks():
    assert display_name({"username": "ann", "email": "a@x.io", "id": 1}) == "ann"
    assert display_name({"username": None, "email": "a@x.io", "id": 1}) == "a@x.io"
    assert display_name({"username": None, "email": None, "id": 9}) == "9"
    assert display_name({}) == "Anonymous"


def test_display_name_keeps_empty_username():
    assert display_name({"username": "", "email": "a@x.io", "id": 1}) == ""


def test_ordering_by_solved_then_time_then_name():
    rows = [
        row("dave", easy=1000),
        row("carol", easy=1000, medium=1000, hard=7000),
        row("bob", easy=1000, medium=1000, hard=1000),
        row("erin"),
        row("alice", easy=500, medium=500),
        row("Aaron", easy=1000, medium=1000, hard=1000),
    ]
    entries = build_leaderboard(rows)

    assert [e.username for e in entries] == ["Aaron", "bob", "carol", "alice", "dave", "erin"]
    assert [e.rank for e in entries] == [1, 2, 3, 4, 5, 6]
    assert [e.solved for e in entries] == [3, 3, 3, 2, 1, 0]
    assert [e.total_time_ms for e in entries] == [3000, 3000, 9000, 1000, 1000, None]


def test_null_totals_sort_last():
    timed = LeaderboardEntry(rank=0, username="zed", solved=0, total_time_ms=5000)
    untimed = LeaderboardEntry(rank=0, username="amy", solved=0, total_time_ms=None)
    assert sorted([untimed, timed], key=_sort_key) == [timed, untimed]


def test_fetch_failure_renders_empty_board(auth_client, monkeypatch):
    def broken():
        raise sqlite3.OperationalError("no such table: public_leaderboard")

    monkeypatch.setattr(leaderboard_router, "fetch_leaderboard_rows", broken)
    resp = auth_client.get("/leaderboard")
    assert resp.status_code == 200
    assert "No entries yet." in resp.text


def test_save_problem_time_swallows_storage_errors(monkeypatch):
    def broken():
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(db_module, "get_connection", broken)
    assert save_problem_time(1, "easy", 1000) is False


def test_view_total_equals_sum_when_all_solved(client):
    signup(client, username="sum", email="sum@example.com")
    uid = user_id("sum")
    save_problem_time(uid, "easy", 1000)
    save_problem_time(uid, "medium", 2000)
    save_problem_time(uid, "hard", 3000)

    (r,) = [r for r in fetch_leaderboard_rows() if r["id"] == uid]
    assert r["total_time_ms"] == 6000


def test_view_total_null_before_any_solve(client):
    signup(client, username="fresh", email="fresh@example.com")
    (r,) = [r for r in fetch_leaderboard_rows() if r["id"] == user_id("fresh")]
    assert r["total_time_ms"] is None


def test_save_problem_time_keeps_other_tiers(client):
    upsert_profile(50, "kim", "kim@example.com")
    save_problem_time(50, "easy", 1500)
    save_problem_time(50, "medium", 2500)
    save_problem_time(50, "easy", 900)

    (r,) = [r for r in fetch_leaderboard_rows() if r["id"] == 50]
    assert r["time_easy_ms"] == 900
    assert r["time_medium_ms"] == 2500
    assert r["time_hard_ms"] is None
    assert r["username"] == "kim"


def test_leaderboard_page(auth_client):
    uid = user_id("alice")
    save_problem_time(uid, "easy", 65_000)

    resp = auth_client.get("/leaderboard")
    assert resp.status_code == 200
    assert "alice" in resp.text
    assert "01:05" in resp.text


def test_leaderboard_requires_login(client):
    resp = client.get("/leaderboard", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"] == "/login"

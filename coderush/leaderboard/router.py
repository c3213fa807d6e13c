"""Leaderboard built from the aggregated public_leaderboard view."""

import logging
import sqlite3
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from coderush.auth.router import guard_route
from coderush.db import fetch_leaderboard_rows
from coderush.local_state import save_user
from coderush.models import LeaderboardEntry
from coderush.progress import format_duration, total_time

logger = logging.getLogger(__name__)
templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))

router = APIRouter(tags=["leaderboard"])

TIME_COLUMNS = ("time_easy_ms", "time_medium_ms", "time_hard_ms")


def display_name(row: dict) -> str:
    for key in ("username", "email", "id"):
        if row.get(key) is not None:
            return str(row[key])
    return "Anonymous"


def _sort_key(entry: LeaderboardEntry):
    # solved desc, total time asc with nulls last, then username asc
    no_time = entry.total_time_ms is None
    return (
        -entry.solved,
        no_time,
        entry.total_time_ms if not no_time else 0,
        entry.username.casefold(),
        entry.username,
    )


def build_leaderboard(rows: list[dict]) -> list[LeaderboardEntry]:
    entries = [
        LeaderboardEntry(
            rank=0,
            username=display_name(row),
            solved=sum(1 for col in TIME_COLUMNS if row.get(col) is not None),
            total_time_ms=total_time(*(row.get(col) for col in TIME_COLUMNS)),
        )
        for row in rows
    ]
    entries.sort(key=_sort_key)
    for i, entry in enumerate(entries, start=1):
        entry.rank = i
    return entries


def fetch_leaderboard() -> list[LeaderboardEntry]:
    try:
        rows = fetch_leaderboard_rows()
    except sqlite3.Error as e:
        logger.error(f"Failed to fetch leaderboard: {e}")
        return []
    return build_leaderboard(rows)


@router.get("/leaderboard", response_class=HTMLResponse)
async def leaderboard(request: Request):
    user, redirect = guard_route(request, "/leaderboard")
    if redirect:
        return redirect

    entries = fetch_leaderboard()
    resp = templates.TemplateResponse(
        request,
        "leaderboard.html",
        {
            "user": user,
            "entries": [
                {
                    "rank": e.rank,
                    "username": e.username,
                    "solved": e.solved,
                    "total_time": "-" if e.total_time_ms is None else format_duration(e.total_time_ms),
                }
                for e in entries
            ],
        },
    )
    save_user(resp, user)
    return resp

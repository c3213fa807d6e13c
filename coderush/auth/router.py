import logging
import sqlite3
from pathlib import Path

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from coderush.auth.utils import (
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    create_token,
    decode_token,
    hash_password,
    normalize_email,
    password_too_long,
    verify_password,
)
from coderush.db import get_connection, get_profile, upsert_profile
from coderush.local_state import get_auth_token, load_user, save_user, set_auth_token
from coderush.models import User
from coderush.progress import LOGIN_PATH, resolve_route, solved_from_profile

logger = logging.getLogger(__name__)
templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))

router = APIRouter(tags=["auth"])


def _render_form(request: Request, view: str, error: str | None, status_code: int, **values):
    return templates.TemplateResponse(
        request,
        "login.html",
        {"view": view, "error": error, **values},
        status_code=status_code,
    )


def _signed_in_response(user: User) -> RedirectResponse:
    resp = RedirectResponse("/", status_code=303)
    set_auth_token(resp, create_token(user.id))
    save_user(resp, user)
    return resp


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, view: str = "login"):
    user = get_current_user(request)
    target = resolve_route(LOGIN_PATH, user is not None, user.solved if user else None)
    if target:
        return RedirectResponse(target)

    view = "signup" if view == "signup" else "login"
    return templates.TemplateResponse(request, "login.html", {"view": view, "error": None})


@router.post("/login")
async def login(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
):
    username = username.strip()
    email = normalize_email(email)
    if not username or not email or not password:
        return _render_form(
            request, "login", "Username, email and password are required", 400,
            username=username, email=email,
        )

    if password_too_long(password):
        return _render_form(
            request, "login", f"Password must be at most {MAX_PASSWORD_BYTES} bytes", 400,
            username=username, email=email,
        )

    with get_connection() as conn:
        row = conn.execute(
            "SELECT id, password_hash FROM users WHERE email = ?", (email,)
        ).fetchone()

    if not row or not verify_password(password, row["password_hash"]):
        return _render_form(
            request, "login", "Invalid email or password", 401, username=username, email=email
        )

    try:
        upsert_profile(row["id"], username, email)
    except sqlite3.Error as e:
        logger.error(f"Profile upsert failed for user {row['id']}: {e}")
        return _render_form(
            request, "login", f"Failed to save profile: {e}", 500, username=username, email=email
        )

    user = User(id=row["id"], name=username)
    user.solved = solved_from_profile(get_profile(user.id))
    logger.info(f"User {user.id} signed in")
    return _signed_in_response(user)


@router.post("/signup")
async def signup(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
):
    username = username.strip()
    email = normalize_email(email)
    if not username or not email or not password:
        return _render_form(
            request, "signup", "Username, email and password are required", 400,
            username=username, email=email,
        )

    if len(password) < MIN_PASSWORD_LENGTH:
        return _render_form(
            request, "signup", f"Password must be at least {MIN_PASSWORD_LENGTH} characters", 400,
            username=username, email=email,
        )

    if password_too_long(password):
        return _render_form(
            request, "signup", f"Password must be at most {MAX_PASSWORD_BYTES} bytes", 400,
            username=username, email=email,
        )

    with get_connection() as conn:
        if conn.execute("SELECT id FROM users WHERE username = ?", (username,)).fetchone():
            return _render_form(
                request, "signup", "Username already taken", 400, username=username, email=email
            )
        if conn.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone():
            return _render_form(
                request, "signup", "Email already registered", 400, username=username, email=email
            )

        cursor = conn.execute(
            "INSERT INTO users (username, email, password_hash) VALUES (?, ?, ?)",
            (username, email, hash_password(password)),
        )
        user_id = cursor.lastrowid

    upsert_profile(user_id, username, email)
    logger.info(f"User {user_id} signed up")
    return _signed_in_response(User(id=user_id, name=username))


@router.post("/logout")
async def logout():
    resp = RedirectResponse(LOGIN_PATH, status_code=303)
    set_auth_token(resp, None)
    save_user(resp, None)
    return resp


def get_current_user(request: Request) -> User | None:
    """Resolve the signed-in user and refresh their progress from the profile."""
    user_id = decode_token(get_auth_token(request))
    if not user_id:
        return None

    with get_connection() as conn:
        row = conn.execute("SELECT id, username FROM users WHERE id = ?", (user_id,)).fetchone()
    if not row:
        return None

    stored = load_user(request)
    user = stored if stored and stored.id == row["id"] else User(id=row["id"], name=row["username"])

    try:
        profile = get_profile(user.id)
    except sqlite3.Error as e:
        logger.warning(f"Could not sync progress for user {user.id}: {e}")
        return user

    if profile:
        user.solved = solved_from_profile(profile)
    return user


def guard_route(request: Request, path: str) -> tuple[User | None, RedirectResponse | None]:
    """Apply the navigation rules for ``path``; returns (user, redirect)."""
    user = get_current_user(request)
    target = resolve_route(path, user is not None, user.solved if user else None)
    if target:
        return user, RedirectResponse(target)
    return user, None

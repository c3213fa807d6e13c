import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from coderush.auth.router import get_current_user, guard_route
from coderush.db import (
    code_digest,
    finish_attempt,
    get_attempt,
    save_problem_time,
    set_verified_code,
    start_attempt,
)
from coderush.editor.keys import (
    EditorState,
    KeyEvent,
    from_utf16_offset,
    handle_key,
    to_utf16_offset,
    utf16_length,
)
from coderush.local_state import save_user
from coderush.models import Problem, User
from coderush.problems import LANGUAGES, get_problem_by_route
from coderush.verify.client import VerificationError, verify_code

logger = logging.getLogger(__name__)
templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))

router = APIRouter(tags=["editor"])

MSG_NO_PROBLEM = "No active problem selected."
MSG_EMPTY_CODE = "Write some code before verifying."
MSG_VERIFIED = "Code verified! You can now submit."
MSG_INCORRECT = "Code incorrect. Please fix before submitting."
MSG_VERIFY_FAILED = "Verification failed. Please try again."
MSG_NOT_VERIFIED = "Please verify your code before submitting."


def _language(value: str | None) -> str:
    return value if value in LANGUAGES else "python"


def _open_problem(request: Request, number: int) -> tuple[User | None, Problem | None, RedirectResponse | None]:
    path = f"/problem{number}"
    user, redirect = guard_route(request, path)
    if redirect:
        return user, None, redirect

    problem = get_problem_by_route(path)
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return user, problem, None


def _render_editor(
    request: Request,
    user: User,
    problem: Problem,
    started_at_ms: int,
    code: str = "",
    language: str = "python",
    verified: bool = False,
    error: str | None = None,
    notice: str | None = None,
    status_code: int = 200,
):
    resp = templates.TemplateResponse(
        request,
        "editor.html",
        {
            "user": user,
            "problem": problem,
            "languages": LANGUAGES,
            "language": language,
            "code": code,
            "verified": verified,
            "error": error,
            "notice": notice,
            "started_at_ms": started_at_ms,
        },
        status_code=status_code,
    )
    save_user(resp, user)
    return resp


@router.get("/problem{number:int}", response_class=HTMLResponse)
async def editor_page(request: Request, number: int, language: str = "python"):
    user, problem, redirect = _open_problem(request, number)
    if redirect:
        return redirect

    # Entering the editor restarts the attempt timer
    started = start_attempt(user.id, problem.level)
    user.active_problem = problem.id
    logger.info(f"User {user.id} opened {problem.id}")
    return _render_editor(request, user, problem, started, language=_language(language))


@router.post("/problem{number:int}/verify", response_class=HTMLResponse)
def verify_submission(
    request: Request,
    number: int,
    code: str = Form(""),
    language: str = Form("python"),
):
    user, problem, redirect = _open_problem(request, number)
    if redirect:
        return redirect

    language = _language(language)
    attempt = get_attempt(user.id, problem.level)
    if not attempt:
        return RedirectResponse(problem.route, status_code=303)

    render = {
        "started_at_ms": attempt["started_at_ms"],
        "code": code,
        "language": language,
    }
    user.active_problem = problem.id

    if not code.strip():
        return _render_editor(request, user, problem, error=MSG_EMPTY_CODE, status_code=400, **render)

    try:
        is_correct = verify_code(code, problem.description, language, user_id=user.id)
    except VerificationError as e:
        logger.warning(f"Verification failed for user {user.id} on {problem.id}: {e}")
        set_verified_code(user.id, problem.level, None, language)
        return _render_editor(
            request, user, problem, error=MSG_VERIFY_FAILED, status_code=502, **render
        )

    if is_correct:
        set_verified_code(user.id, problem.level, code, language)
        return _render_editor(request, user, problem, verified=True, notice=MSG_VERIFIED, **render)

    set_verified_code(user.id, problem.level, None, language)
    return _render_editor(request, user, problem, error=MSG_INCORRECT, **render)


@router.post("/problem{number:int}/submit", response_class=HTMLResponse)
async def submit_solution(
    request: Request,
    number: int,
    code: str = Form(""),
    language: str = Form("python"),
):
    user, problem, redirect = _open_problem(request, number)
    if redirect:
        return redirect

    attempt = get_attempt(user.id, problem.level)
    if not attempt:
        return RedirectResponse(problem.route, status_code=303)

    language = _language(language)
    digest = code_digest(code, language)
    if attempt["verified_digest"] is None or attempt["verified_digest"] != digest:
        user.active_problem = problem.id
        return _render_editor(
            request,
            user,
            problem,
            attempt["started_at_ms"],
            code=code,
            language=language,
            error=MSG_NOT_VERIFIED,
            status_code=400,
        )

    duration = finish_attempt(user.id, problem.level)
    user.solved[problem.level] = True
    user.active_problem = None
    if duration is not None:
        save_problem_time(user.id, problem.level, duration)
    logger.info(f"User {user.id} solved {problem.id} in {duration}ms")

    resp = RedirectResponse("/?submitted=1", status_code=303)
    save_user(resp, user)
    return resp


class KeystrokeRequest(BaseModel):
    value: str
    selection_start: int
    selection_end: int
    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    language: str = "python"


@router.post("/api/editor/keystroke")
async def keystroke(payload: KeystrokeRequest, user=Depends(get_current_user)):
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")

    # Selection offsets travel as UTF-16 code units, as the browser reports them
    value = payload.value
    if not 0 <= payload.selection_start <= payload.selection_end <= utf16_length(value):
        raise HTTPException(status_code=400, detail="Invalid selection")

    state = EditorState(
        value,
        from_utf16_offset(value, payload.selection_start),
        from_utf16_offset(value, payload.selection_end),
    )
    event = KeyEvent(payload.key, shift=payload.shift, ctrl=payload.ctrl, meta=payload.meta)
    edited = handle_key(state, event, _language(payload.language))

    if edited is None:
        return {"handled": False}

    # Any handled edit invalidates an earlier verification
    return {
        "handled": True,
        "value": edited.value,
        "selection_start": to_utf16_offset(edited.value, edited.selection_start),
        "selection_end": to_utf16_offset(edited.value, edited.selection_end),
        "verified": False,
    }
